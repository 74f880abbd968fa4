"""
Process definitions: state-machine shaped groupings of stages and transitions
layered on top of workflow rules for long-lived entity lifecycles.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .actions import ActionGuard


class ProcessType(str, Enum):
    STATE_DRIVEN = "STATE_DRIVEN"
    APPROVAL = "APPROVAL"
    ESCALATION = "ESCALATION"


class StatusCategory(str, Enum):
    NEW = "NEW"
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    CLOSED_WON = "CLOSED_WON"
    CLOSED_LOST = "CLOSED_LOST"
    CANCELLED = "CANCELLED"


class TransitionTrigger(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    EVENT = "event"
    TIME_ELAPSED_IN_STATE = "time_elapsed_in_state"


class Raci(BaseModel):
    responsible: List[str] = Field(default_factory=list)
    accountable: List[str] = Field(default_factory=list)
    consulted: List[str] = Field(default_factory=list)
    informed: List[str] = Field(default_factory=list)


class WorkflowStage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    display_label: str = Field(default="", alias="displayLabel")
    sequence: int = Field(default=1, ge=1)
    system_status_category: StatusCategory = Field(default=StatusCategory.IN_PROGRESS, alias="systemStatusCategory")
    on_entry_event_name: str = ""
    on_exit_event_name: str = ""
    raci: Raci = Field(default_factory=Raci)

    @model_validator(mode="after")
    def fill_defaults(self) -> "WorkflowStage":
        if not self.display_label:
            self.display_label = self.name
        if not self.on_entry_event_name:
            self.on_entry_event_name = f"{self.id.lower()}.entered"
        if not self.on_exit_event_name:
            self.on_exit_event_name = f"{self.id.lower()}.exited"
        return self


class WorkflowTransition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    from_stage: Union[str, List[str]] = Field(..., alias="from")
    to_stage: str = Field(..., alias="to")
    trigger: TransitionTrigger = TransitionTrigger.MANUAL
    condition: Optional[ActionGuard] = None
    time_threshold_hours: Optional[float] = Field(default=None, alias="timeThresholdHours")

    def sources(self) -> List[str]:
        if isinstance(self.from_stage, list):
            return list(self.from_stage)
        return [self.from_stage]

    def touches(self, stage_id: str) -> bool:
        return self.to_stage == stage_id or stage_id in self.sources()


class ProcessDefinitionBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    description: Optional[str] = None
    process_type: ProcessType = Field(default=ProcessType.STATE_DRIVEN, alias="processType")
    start_state_id: str = Field(default="", alias="startStateId")
    stages: List[WorkflowStage] = Field(default_factory=list)
    transitions: List[WorkflowTransition] = Field(default_factory=list)

    def stage(self, stage_id: str) -> Optional[WorkflowStage]:
        return next((stage for stage in self.stages if stage.id == stage_id), None)


class WorkflowDefinition(BaseModel):
    id: Optional[str] = None
    organization_id: str
    name: str
    entity_type: str
    entity_schema: str = "public"
    description: Optional[str] = None
    is_active: bool = True
    version: int = Field(default=1, ge=1)
    type: Optional[str] = None
    definitions: ProcessDefinitionBody = Field(default_factory=ProcessDefinitionBody)
    initial_template: Dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("definitions", "initial_template", mode="before")
    @classmethod
    def decode_json_column(cls, value: Any) -> Any:
        # the backend stores these as serialized JSON text
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        if value is None:
            return {}
        return value

    @property
    def qualified_entity(self) -> str:
        return f"{self.entity_schema}.{self.entity_type}"


class PertTime(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    optimistic_hours: float = Field(default=0.1, ge=0, alias="optimisticHours")
    most_likely_hours: float = Field(default=1, ge=0, alias="mostLikelyHours")
    pessimistic_hours: float = Field(default=4, ge=0, alias="pessimisticHours")

    def expected(self) -> float:
        return (self.optimistic_hours + 4 * self.most_likely_hours + self.pessimistic_hours) / 6


class PertCost(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    optimistic_usd: float = Field(default=5, ge=0, alias="optimisticUsd")
    most_likely_usd: float = Field(default=20, ge=0, alias="mostLikelyUsd")
    pessimistic_usd: float = Field(default=50, ge=0, alias="pessimisticUsd")

    def expected(self) -> float:
        return (self.optimistic_usd + 4 * self.most_likely_usd + self.pessimistic_usd) / 6


class AspirationalMetrics(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_time_hours: float = Field(default=0.5, ge=0, alias="targetTimeHours")
    target_cost_usd: float = Field(default=15, ge=0, alias="targetCostUsd")


class StageMetric(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stage_id: str
    pert_time: PertTime = Field(default_factory=PertTime, alias="pertTime")
    pert_cost: PertCost = Field(default_factory=PertCost, alias="pertCost")
    aspirational_metrics: AspirationalMetrics = Field(default_factory=AspirationalMetrics, alias="aspirationalMetrics")
    required_skills: List[str] = Field(default_factory=list, alias="requiredSkills")
    resource_requirements: List[Dict[str, Any]] = Field(default_factory=list, alias="resourceRequirements")


class StageMetrics(BaseModel):
    id: Optional[str] = None
    organization_id: str = ""
    process_definition_id: Optional[str] = None
    entity_type: str = ""
    metrics_data: List[StageMetric] = Field(default_factory=list)

    @field_validator("metrics_data", mode="before")
    @classmethod
    def decode_metrics(cls, value: Any) -> Any:
        if isinstance(value, str):
            return json.loads(value) if value.strip() else []
        return value or []

    def for_stage(self, stage_id: str) -> Optional[StageMetric]:
        return next((metric for metric in self.metrics_data if metric.stage_id == stage_id), None)
