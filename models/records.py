"""
Reference records the console reads from the backend: table metadata, email
templates, teams and execution logs.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .workflow import split_table_name

UNKNOWN_ACTION = "Unknown Action"
NUMERIC_TYPES = {"integer", "numeric", "bigint", "smallint", "real", "double precision", "float", "decimal"}


class ForeignKeyRef(BaseModel):
    source_table: str
    source_column: str
    display_column: str


class TableMetadata(BaseModel):
    key: str
    type: str = "text"
    display_name: str = ""
    is_filterable: bool = True
    is_displayable: bool = True
    semantic_type: Optional[Dict[str, Any]] = None
    foreign_key: Optional[ForeignKeyRef] = None

    @property
    def is_numeric(self) -> bool:
        return self.type in NUMERIC_TYPES

    @property
    def is_temporal(self) -> bool:
        return self.type == "date" or "timestamp" in self.type


class ViewConfig(BaseModel):
    id: str
    entity_type: str
    entity_schema: Optional[str] = None
    metadata: List[TableMetadata] = Field(default_factory=list)
    is_active: bool = True
    created_at: Optional[datetime] = None

    def matches(self, table: str) -> bool:
        if table == self.entity_type:
            return True
        schema, name = split_table_name(table)
        return name == self.entity_type and schema == (self.entity_schema or "public")

    def column(self, key: str) -> Optional[TableMetadata]:
        return next((field for field in self.metadata if field.key == key), None)


class EmailTemplateDetails(BaseModel):
    subject: str = ""
    body: str = ""


class EmailTemplate(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    placeholders: Optional[Any] = None
    details: EmailTemplateDetails = Field(default_factory=EmailTemplateDetails)
    is_active: bool = True
    organization_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Team(BaseModel):
    id: str
    organization_id: str
    name: str
    location_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class LogStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"
    RUNNING = "running"


class WorkflowLog(BaseModel):
    id: str
    organization_id: Optional[str] = None
    workflow_id: str
    action_id: Optional[str] = None
    event_id: Optional[str] = None
    status: LogStatus
    execution_time: datetime
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None
    trigger_data: Optional[Any] = None
    conditions_checked: Optional[Any] = None
    actions_executed: Optional[Any] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    retry_attempt: int = 0
    log_level: str = "info"
    workflow_stage: Optional[str] = None

    @property
    def action_label(self) -> str:
        return self.context.get("action_name") or self.workflow_stage or UNKNOWN_ACTION

    @property
    def has_known_action(self) -> bool:
        action_name = self.context.get("action_name")
        action_type = self.context.get("action_type")
        return bool(
            (action_name and action_name != UNKNOWN_ACTION)
            or (action_type and action_type != "N/A")
            or (self.workflow_stage and self.workflow_stage != UNKNOWN_ACTION)
        )

    def formatted_duration(self) -> str:
        if not self.duration_ms:
            return "N/A"
        if self.duration_ms < 1000:
            return f"{self.duration_ms}ms"
        return f"{self.duration_ms / 1000:.2f}s"


class ValidationContext(BaseModel):
    """Reference data loaded from the backend to cross-check a workflow."""

    view_configs: List[ViewConfig] = Field(default_factory=list)
    email_templates: List[EmailTemplate] = Field(default_factory=list)
    teams: List[Team] = Field(default_factory=list)

    def table(self, name: str) -> Optional[ViewConfig]:
        return next((config for config in self.view_configs if config.matches(name)), None)

    def template(self, template_id: str) -> Optional[EmailTemplate]:
        return next((template for template in self.email_templates if template.id == template_id), None)

    def team(self, team_id: str) -> Optional[Team]:
        return next((team for team in self.teams if team.id == team_id), None)
