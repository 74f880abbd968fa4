from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from .conditions import ConditionGroup, coerce_condition_tree

DEFAULT_SCHEMA = "public"


class TriggerType(str, Enum):
    ON_CREATE = "on_create"
    ON_UPDATE = "on_update"
    BOTH = "both"
    CRON = "cron"


class ConditionType(str, Enum):
    JSONB = "jsonb"
    SQL = "sql"


class WorkflowPriority(IntEnum):
    LOW = -1
    NORMAL = 0
    HIGH = 1
    CRITICAL = 2


def split_table_name(table: str) -> Tuple[str, str]:
    """Split `schema.table`; unqualified names live in the public schema."""
    if "." in table:
        schema, name = table.split(".", 1)
        return schema, name
    return DEFAULT_SCHEMA, table


class WorkflowRule(BaseModel):
    id: Optional[str] = None
    organization_id: str = Field(..., description="Owning organization")
    name: str = Field(..., description="Human friendly name for the workflow")
    description: Optional[str] = None
    trigger_table: str = Field(..., description="Monitored table, optionally schema qualified")
    trigger_type: str = Field(default=TriggerType.ON_CREATE.value, description="Identifier registered in trigger registry")
    condition_type: ConditionType = ConditionType.JSONB
    conditions: Union[ConditionGroup, str] = Field(
        default_factory=ConditionGroup.empty,
        description="Condition tree, or a SQL predicate when condition_type is sql",
    )
    actions: List[str] = Field(default_factory=list, description="Ordered action ids")
    cron_config: Optional[str] = None
    cron_description: Optional[str] = None
    version: int = Field(default=1, ge=1)
    is_active: bool = True
    priority: int = WorkflowPriority.NORMAL.value
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    last_executed_at: Optional[datetime] = None
    error_notification_config: Optional[Dict[str, Any]] = None
    workflow_definition_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("trigger_type", mode="before")
    @classmethod
    def unwrap_trigger_enum(cls, value: Any) -> Any:
        return value.value if isinstance(value, Enum) else value

    @field_validator("conditions", mode="before")
    @classmethod
    def normalize_conditions(cls, value: Any, info: ValidationInfo) -> Any:
        condition_type = info.data.get("condition_type", ConditionType.JSONB)
        if condition_type == ConditionType.SQL:
            if value is None or value == {}:
                return ""
            return value
        if isinstance(value, str):
            raise ValueError("jsonb conditions must be a condition list or tree, not a string")
        return coerce_condition_tree(value)

    @property
    def is_scheduled(self) -> bool:
        return self.trigger_type == TriggerType.CRON.value

    def split_trigger_table(self) -> Tuple[str, str]:
        return split_table_name(self.trigger_table)

    def condition_tree(self) -> Optional[ConditionGroup]:
        """The jsonb condition tree, or None for SQL conditions."""
        return self.conditions if isinstance(self.conditions, ConditionGroup) else None

    def conditions_payload(self) -> Any:
        if isinstance(self.conditions, ConditionGroup):
            return self.conditions.model_dump(mode="json", by_alias=True)
        return self.conditions
