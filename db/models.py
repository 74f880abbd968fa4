"""
SQLAlchemy ORM models for the persistence layer.
Tables mirror the backend the workflow engine reads from. Condition trees,
action configurations and other variable-shaped payloads are stored as JSON.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise a timestamp to aware UTC; naive values (SQLite hands those back) are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class WorkflowModel(Base):
    """
    A workflow rule. `actions` holds the ordered ids of its rows in wf_actions;
    `conditions` is a condition tree for jsonb rules or a predicate string for
    sql rules.
    """

    __tablename__ = "wf_workflows"

    id = Column(String, primary_key=True, default=_new_id)
    organization_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    trigger_table = Column(String, nullable=False)
    trigger_type = Column(String, nullable=False)
    condition_type = Column(String, nullable=False, default="jsonb")
    conditions = Column(JSON)
    actions = Column(JSON, default=list, nullable=False)
    cron_config = Column(String)
    cron_description = Column(String)
    version = Column(Integer, default=1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
    created_by = Column(String)
    last_executed_at = Column(DateTime(timezone=True))
    error_notification_config = Column(JSON)
    workflow_definition_id = Column(String, index=True)
    # `metadata` is reserved on declarative classes
    metadata_ = Column("metadata", JSON)

    def __repr__(self) -> str:
        return f"<WorkflowModel(id={self.id}, name={self.name})>"


class WorkflowActionModel(Base):
    __tablename__ = "wf_actions"

    id = Column(String, primary_key=True, default=_new_id)
    x_workflow_id = Column(String, index=True)
    organization_id = Column(String, nullable=False, default="")
    name = Column(String)
    action_type = Column(String, nullable=False)
    configuration = Column(JSON, default=dict, nullable=False)
    action_order = Column(Integer, nullable=False, default=1)
    retry_count = Column(Integer, nullable=False, default=0)
    max_retries = Column(Integer, nullable=False, default=3)
    rate_limit = Column(JSON)
    is_enabled = Column(Boolean, default=True, nullable=False)
    last_executed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
    metadata_ = Column("metadata", JSON)

    def __repr__(self) -> str:
        return f"<WorkflowActionModel(id={self.id}, action_type={self.action_type})>"


class WorkflowLogModel(Base):
    """One execution record written by the engine."""

    __tablename__ = "wf_logs"

    id = Column(String, primary_key=True, default=_new_id)
    organization_id = Column(String, index=True)
    workflow_id = Column(String, nullable=False, index=True)
    action_id = Column(String)
    event_id = Column(String)
    status = Column(String, nullable=False)
    execution_time = Column(DateTime(timezone=True), nullable=False, index=True)
    duration_ms = Column(Integer)
    error_message = Column(Text)
    trigger_data = Column(JSON)
    conditions_checked = Column(JSON)
    actions_executed = Column(JSON)
    context = Column(JSON, default=dict, nullable=False)
    retry_attempt = Column(Integer, default=0, nullable=False)
    log_level = Column(String, default="info", nullable=False)
    workflow_stage = Column(String)


class WorkflowDefinitionModel(Base):
    """
    A process definition. `definitions` is stored as serialized JSON text,
    the way the backend column holds it.
    """

    __tablename__ = "dynamic_workflow_definitions"

    id = Column(String, primary_key=True, default=_new_id)
    organization_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_schema = Column(String, nullable=False, default="public")
    description = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False)
    version = Column(Integer, default=1, nullable=False)
    type = Column(String)
    definitions = Column(Text, nullable=False)
    initial_template = Column(JSON, default=dict)
    created_by = Column(String)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class StageMetricsModel(Base):
    __tablename__ = "dynamic_stage_metrics"

    id = Column(String, primary_key=True, default=_new_id)
    organization_id = Column(String, nullable=False, default="")
    process_definition_id = Column(String, nullable=False, index=True)
    entity_type = Column(String, nullable=False, default="")
    metrics_data = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class EmailTemplateModel(Base):
    __tablename__ = "email_templates"

    id = Column(String, primary_key=True, default=_new_id)
    organization_id = Column(String, index=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    placeholders = Column(JSON)
    details = Column(JSON, default=dict, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class ViewConfigModel(Base):
    """Column metadata for a table a workflow can watch or write to."""

    __tablename__ = "y_view_config"

    id = Column(String, primary_key=True, default=_new_id)
    entity_type = Column(String, nullable=False, index=True)
    entity_schema = Column(String)
    metadata_ = Column("metadata", JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class TeamModel(Base):
    __tablename__ = "teams"

    id = Column(String, primary_key=True, default=_new_id)
    organization_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    location_id = Column(String)
    details = Column(JSON)
