import uuid
from enum import Enum
from typing import Annotated, Any, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IN = "in"
    NOT_IN = "not_in"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


VALUELESS_OPERATORS = {ConditionOperator.IS_NULL.value, ConditionOperator.IS_NOT_NULL.value}
ORDERING_OPERATORS = {ConditionOperator.GREATER_THAN.value, ConditionOperator.LESS_THAN.value}
LIST_OPERATORS = {ConditionOperator.IN.value, ConditionOperator.NOT_IN.value}


def _new_condition_id() -> str:
    return uuid.uuid4().hex


class Condition(BaseModel):
    """
    A single comparison of a record column against a value.

    `logical_operator` records how the condition joins the one before it in the
    flat editor form; it is meaningless inside a tree.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=_new_condition_id)
    field: str = Field(..., description="Column key of the trigger table, dotted paths allowed")
    operator: str = Field(default=ConditionOperator.EQUALS.value, description="Identifier registered in condition registry")
    value: Any = ""
    logical_operator: Optional[LogicalOperator] = Field(default=None, alias="logicalOperator")

    @property
    def requires_value(self) -> bool:
        return self.operator not in VALUELESS_OPERATORS

    def values(self) -> List[str]:
        """Split the comma separated value used by the `in` / `not_in` operators."""
        if isinstance(self.value, (list, tuple)):
            return [str(item).strip() for item in self.value if str(item).strip()]
        if self.value is None:
            return []
        return [part.strip() for part in str(self.value).split(",") if part.strip()]


ConditionNode = Annotated[Union["ConditionGroup", Condition], Field(union_mode="left_to_right")]


class ConditionGroup(BaseModel):
    """Boolean node of the condition tree. An empty group is always satisfied."""

    operator: LogicalOperator = LogicalOperator.AND
    conditions: List[ConditionNode]

    @classmethod
    def empty(cls) -> "ConditionGroup":
        return cls(operator=LogicalOperator.AND, conditions=[])

    @classmethod
    def from_flat(cls, conditions: List[Union[Condition, Dict[str, Any]]]) -> "ConditionGroup":
        """
        Build a tree from the flat editor list. AND binds tighter than OR, so the
        list is split on OR into AND groups joined by an OR root.
        """
        groups: List[List[Condition]] = []
        for raw in conditions:
            condition = raw if isinstance(raw, Condition) else Condition.model_validate(raw)
            if not groups or condition.logical_operator == LogicalOperator.OR:
                groups.append([])
            groups[-1].append(condition)

        if not groups:
            return cls.empty()
        if len(groups) == 1:
            return cls(operator=LogicalOperator.AND, conditions=groups[0])
        return cls(
            operator=LogicalOperator.OR,
            conditions=[cls(operator=LogicalOperator.AND, conditions=group) for group in groups],
        )

    def to_flat(self) -> List[Condition]:
        """
        Inverse of `from_flat`. Only trees shaped as an OR of AND groups (or a
        single AND group) have a flat form; anything else raises ValueError.
        """
        if self.operator == LogicalOperator.AND:
            and_groups = [self]
        else:
            and_groups = []
            for child in self.conditions:
                if isinstance(child, Condition):
                    and_groups.append(ConditionGroup(operator=LogicalOperator.AND, conditions=[child]))
                elif child.operator == LogicalOperator.AND:
                    and_groups.append(child)
                else:
                    raise ValueError("Nested OR groups have no flat form")

        flat: List[Condition] = []
        for group_index, group in enumerate(and_groups):
            for index, child in enumerate(group.conditions):
                if not isinstance(child, Condition):
                    raise ValueError("Nested groups inside an AND group have no flat form")
                if not flat:
                    joiner = None
                elif index == 0 and group_index > 0:
                    joiner = LogicalOperator.OR
                else:
                    joiner = LogicalOperator.AND
                flat.append(child.model_copy(update={"logical_operator": joiner}))
        return flat

    def iter_conditions(self) -> Iterator[Condition]:
        for child in self.conditions:
            if isinstance(child, Condition):
                yield child
            else:
                yield from child.iter_conditions()

    def is_empty(self) -> bool:
        return not any(True for _ in self.iter_conditions())


ConditionGroup.model_rebuild()


def coerce_condition_tree(raw: Any) -> ConditionGroup:
    """
    Accept every shape the backend has stored for jsonb conditions: None, the
    legacy empty object, the flat editor list, or a serialized tree.
    """
    if raw is None or raw == {} or raw == []:
        return ConditionGroup.empty()
    if isinstance(raw, ConditionGroup):
        return raw
    if isinstance(raw, list):
        return ConditionGroup.from_flat(raw)
    if isinstance(raw, dict) and "conditions" in raw:
        return ConditionGroup.model_validate(raw)
    if isinstance(raw, dict) and "field" in raw:
        return ConditionGroup.from_flat([raw])
    raise ValueError(f"Unsupported condition structure: {type(raw).__name__}")
