from .models import (
    Base,
    EmailTemplateModel,
    StageMetricsModel,
    TeamModel,
    ViewConfigModel,
    WorkflowActionModel,
    WorkflowDefinitionModel,
    WorkflowLogModel,
    WorkflowModel,
)
from .repository import (
    InMemoryWorkflowRepository,
    LogFilter,
    RecordNotFoundError,
    SqlAlchemyWorkflowRepository,
    WorkflowRepository,
)
from .session import create_db_engine, create_session_factory, init_db

__all__ = [
    "Base",
    "EmailTemplateModel",
    "InMemoryWorkflowRepository",
    "LogFilter",
    "RecordNotFoundError",
    "SqlAlchemyWorkflowRepository",
    "StageMetricsModel",
    "TeamModel",
    "ViewConfigModel",
    "WorkflowActionModel",
    "WorkflowDefinitionModel",
    "WorkflowLogModel",
    "WorkflowModel",
    "WorkflowRepository",
    "create_db_engine",
    "create_session_factory",
    "init_db",
]
