from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, EmailStr, Field, SerializeAsAny, model_validator

DRAFT_ID_PREFIX = "temp-"


class ActionType(str, Enum):
    SEND_EMAIL = "send_email"
    ASSIGN_TASK = "assign_task"
    CREATE_RECORD = "create_record"
    ADD_TAGS = "add_tags"
    UPDATE_FIELDS = "update_fields"
    ASSIGN_OWNER = "assign_owner"
    CREATE_ACTIVITY = "create_activity"
    MANAGE_TAGS = "manage_tags"
    TRIGGER_WORKFLOW_EVENT = "trigger_workflow_event"


class AssignmentRule(str, Enum):
    ROUND_ROBIN = "round_robin"
    LEAST_BUSY = "least_busy"
    RANDOM = "random"
    SPECIFIC_USER = "specific_user"


class ActionGuard(BaseModel):
    rule: str = Field(..., description="Expression the runner checks before executing the action")


class ActionConfig(BaseModel):
    """Base for per-kind action payloads. Unknown keys are kept as-is."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    condition: Optional[ActionGuard] = None


class SendEmailConfig(ActionConfig):
    to: str = Field(..., min_length=1, description="Record placeholder, literal address, or 'custom'")
    custom_to: Optional[EmailStr] = Field(default=None, alias="customTo")
    cc_team_id: Optional[str] = Field(default=None, alias="ccTeamId")
    cc_team_name: Optional[str] = Field(default=None, alias="_ccTeamName")
    template_id: str = Field(..., min_length=1, alias="templateId")

    @model_validator(mode="after")
    def custom_recipient_needs_address(self) -> "SendEmailConfig":
        if self.to == "custom" and not self.custom_to:
            raise ValueError("customTo is required when sending to a custom address")
        return self


class AssignOwnerConfig(ActionConfig):
    field: str = Field(..., min_length=1, description="Column receiving the assigned user id")
    assignment_rule: AssignmentRule = Field(..., alias="assignmentRule")
    team_id: Optional[str] = Field(default=None, alias="teamId")
    user_id: Optional[str] = Field(default=None, alias="userId")

    @model_validator(mode="after")
    def assignee_source_present(self) -> "AssignOwnerConfig":
        if self.assignment_rule == AssignmentRule.SPECIFIC_USER:
            if not self.user_id:
                raise ValueError("userId is required for the specific_user rule")
        elif not self.team_id:
            raise ValueError(f"teamId is required for the {self.assignment_rule.value} rule")
        return self


class FieldUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: str = Field(..., min_length=1)
    value: Any = ""
    value_type: Literal["static", "dynamic", "expression"] = Field(default="static", alias="valueType")


class UpdateFieldsConfig(ActionConfig):
    updates: List[FieldUpdate] = Field(..., min_length=1)


class AddTagsConfig(ActionConfig):
    tags: List[str] = Field(..., min_length=1)


class ManageTagsConfig(ActionConfig):
    add: List[str] = Field(default_factory=list)
    remove: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def something_to_do(self) -> "ManageTagsConfig":
        if not self.add and not self.remove:
            raise ValueError("manage_tags needs at least one tag to add or remove")
        return self


class CreateActivityConfig(ActionConfig):
    activity_type: str = Field(..., min_length=1, alias="activityType")
    subject: str = Field(..., min_length=1)
    due_in_hours: Optional[float] = Field(default=None, ge=0, alias="dueInHours")
    assign_to: Optional[str] = Field(default=None, alias="assignTo")


class CreateRecordConfig(ActionConfig):
    target_table: str = Field(..., min_length=1, alias="targetTable")
    field_mappings: Dict[str, Any] = Field(..., min_length=1, alias="fieldMappings")


class AssignTaskConfig(ActionConfig):
    title: str = Field(..., min_length=1)
    assignee_id: Optional[str] = Field(default=None, alias="assigneeId")
    team_id: Optional[str] = Field(default=None, alias="teamId")
    due_in_hours: Optional[float] = Field(default=None, ge=0, alias="dueInHours")


class TriggerWorkflowEventConfig(ActionConfig):
    event_name: str = Field(..., min_length=1, alias="eventName")
    payload: Dict[str, Any] = Field(default_factory=dict)


ACTION_CONFIG_MODELS: Dict[str, Type[ActionConfig]] = {
    ActionType.SEND_EMAIL.value: SendEmailConfig,
    ActionType.ASSIGN_TASK.value: AssignTaskConfig,
    ActionType.CREATE_RECORD.value: CreateRecordConfig,
    ActionType.ADD_TAGS.value: AddTagsConfig,
    ActionType.UPDATE_FIELDS.value: UpdateFieldsConfig,
    ActionType.ASSIGN_OWNER.value: AssignOwnerConfig,
    ActionType.CREATE_ACTIVITY.value: CreateActivityConfig,
    ActionType.MANAGE_TAGS.value: ManageTagsConfig,
    ActionType.TRIGGER_WORKFLOW_EVENT.value: TriggerWorkflowEventConfig,
}


class RateLimit(BaseModel):
    max_executions: int = Field(..., gt=0)
    period_seconds: int = Field(..., gt=0)


class WorkflowAction(BaseModel):
    """
    One step of a workflow. `configuration` is parsed into the payload model
    registered for `action_type`; unregistered types keep the generic base so
    the registry check can report them.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    x_workflow_id: Optional[str] = None
    action_type: str = Field(..., description="Identifier registered in action registry")
    configuration: SerializeAsAny[ActionConfig] = Field(default_factory=ActionConfig)
    action_order: int = Field(default=1, ge=1)
    retry_count: int = Field(default=0, ge=0)
    max_retries: int = Field(default=3, ge=0, le=10)
    rate_limit: Optional[RateLimit] = None
    is_enabled: bool = True
    last_executed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    organization_id: str = ""
    name: str = Field(..., description="Human friendly name for the action")
    metadata: Optional[Dict[str, Any]] = None

    @model_validator(mode="before")
    @classmethod
    def parse_configuration(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        action_type = values.get("action_type")
        if isinstance(action_type, Enum):
            values = {**values, "action_type": action_type.value}
            action_type = action_type.value
        config = values.get("configuration")
        config_model = ACTION_CONFIG_MODELS.get(action_type)
        if config_model is None:
            return values
        if config is None:
            config = {}
        if isinstance(config, dict):
            values = {**values, "configuration": config_model.model_validate(config)}
        elif isinstance(config, ActionConfig) and not isinstance(config, config_model):
            values = {**values, "configuration": config_model.model_validate(config.model_dump(by_alias=True))}
        return values

    @property
    def is_draft(self) -> bool:
        return not self.id or self.id.startswith(DRAFT_ID_PREFIX)

    def configuration_dict(self) -> Dict[str, Any]:
        return self.configuration.model_dump(mode="json", by_alias=True, exclude_none=True)
