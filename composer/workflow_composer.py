"""
In-memory editing of a workflow's condition list and action chain.

Every function returns new objects; the inputs are left untouched so callers
can keep the previous state for undo or diffing.
"""

import uuid
from typing import Any, Dict, List, Literal, Optional

from models import (
    DRAFT_ID_PREFIX,
    Condition,
    ConditionOperator,
    LogicalOperator,
    WorkflowAction,
)

Direction = Literal["up", "down"]


def new_draft_id() -> str:
    return f"{DRAFT_ID_PREFIX}{uuid.uuid4().hex}"


def add_condition(
    conditions: List[Condition],
    field: str = "",
    operator: str = ConditionOperator.EQUALS.value,
    value: Any = "",
    logical_operator: LogicalOperator = LogicalOperator.AND,
) -> List[Condition]:
    condition = Condition(
        field=field,
        operator=operator,
        value=value,
        logical_operator=logical_operator if conditions else None,
    )
    return [*conditions, condition]


def update_condition(conditions: List[Condition], condition_id: str, **changes: Any) -> List[Condition]:
    if "logicalOperator" in changes:
        changes["logical_operator"] = changes.pop("logicalOperator")
    updated = []
    for condition in conditions:
        if condition.id == condition_id:
            condition = Condition.model_validate({**condition.model_dump(), **changes})
        updated.append(condition)
    return _normalize_joiners(updated)


def remove_condition(conditions: List[Condition], condition_id: str) -> List[Condition]:
    return _normalize_joiners([condition for condition in conditions if condition.id != condition_id])


def _normalize_joiners(conditions: List[Condition]) -> List[Condition]:
    # the first condition never joins anything; every later one needs a joiner
    normalized = []
    for index, condition in enumerate(conditions):
        if index == 0 and condition.logical_operator is not None:
            condition = condition.model_copy(update={"logical_operator": None})
        elif index > 0 and condition.logical_operator is None:
            condition = condition.model_copy(update={"logical_operator": LogicalOperator.AND})
        normalized.append(condition)
    return normalized


def _renumber(actions: List[WorkflowAction]) -> List[WorkflowAction]:
    return [action.model_copy(update={"action_order": index}) for index, action in enumerate(actions, start=1)]


def add_action(
    actions: List[WorkflowAction],
    action_type: str,
    configuration: Optional[Dict[str, Any]] = None,
    name: Optional[str] = None,
    organization_id: str = "",
    **fields: Any,
) -> List[WorkflowAction]:
    """Append a draft action at the end of the chain."""
    action = WorkflowAction.model_validate(
        {
            "retry_count": 0,
            "max_retries": 3,
            "is_enabled": True,
            **fields,
            "id": new_draft_id(),
            "action_type": action_type,
            "configuration": configuration or {},
            "action_order": len(actions) + 1,
            "organization_id": organization_id,
            "name": name or f"{action_type} Action",
        }
    )
    return [*actions, action]


def upsert_action(actions: List[WorkflowAction], action: WorkflowAction) -> List[WorkflowAction]:
    """
    Replace the action with the same id, or append it as a new step. Draft ids
    are always treated as new unless they are already present in the chain.
    """
    if action.id and any(existing.id == action.id for existing in actions):
        return _renumber([action if existing.id == action.id else existing for existing in actions])
    appended = action if action.id else action.model_copy(update={"id": new_draft_id()})
    return _renumber([*actions, appended])


def remove_action(actions: List[WorkflowAction], action_id: str) -> List[WorkflowAction]:
    return _renumber([action for action in actions if action.id != action_id])


def move_action(actions: List[WorkflowAction], action_id: str, direction: Direction) -> List[WorkflowAction]:
    index = next((i for i, action in enumerate(actions) if action.id == action_id), -1)
    if index == -1:
        return list(actions)
    target = index - 1 if direction == "up" else index + 1
    if target < 0 or target >= len(actions):
        return list(actions)
    reordered = list(actions)
    reordered[index], reordered[target] = reordered[target], reordered[index]
    return _renumber(reordered)
