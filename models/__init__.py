from .actions import (
    ACTION_CONFIG_MODELS,
    DRAFT_ID_PREFIX,
    ActionConfig,
    ActionGuard,
    ActionType,
    AddTagsConfig,
    AssignmentRule,
    AssignOwnerConfig,
    AssignTaskConfig,
    CreateActivityConfig,
    CreateRecordConfig,
    FieldUpdate,
    ManageTagsConfig,
    RateLimit,
    SendEmailConfig,
    TriggerWorkflowEventConfig,
    UpdateFieldsConfig,
    WorkflowAction,
)
from .conditions import (
    Condition,
    ConditionGroup,
    ConditionOperator,
    LogicalOperator,
    coerce_condition_tree,
)
from .process import (
    ProcessDefinitionBody,
    ProcessType,
    Raci,
    StageMetric,
    StageMetrics,
    StatusCategory,
    TransitionTrigger,
    WorkflowDefinition,
    WorkflowStage,
    WorkflowTransition,
)
from .records import (
    EmailTemplate,
    EmailTemplateDetails,
    LogStatus,
    TableMetadata,
    Team,
    ValidationContext,
    ViewConfig,
    WorkflowLog,
)
from .workflow import ConditionType, TriggerType, WorkflowPriority, WorkflowRule, split_table_name

__all__ = [
    "ACTION_CONFIG_MODELS",
    "DRAFT_ID_PREFIX",
    "ActionConfig",
    "ActionGuard",
    "ActionType",
    "AddTagsConfig",
    "AssignmentRule",
    "AssignOwnerConfig",
    "AssignTaskConfig",
    "Condition",
    "ConditionGroup",
    "ConditionOperator",
    "ConditionType",
    "CreateActivityConfig",
    "CreateRecordConfig",
    "EmailTemplate",
    "EmailTemplateDetails",
    "FieldUpdate",
    "LogStatus",
    "LogicalOperator",
    "ManageTagsConfig",
    "ProcessDefinitionBody",
    "ProcessType",
    "Raci",
    "RateLimit",
    "SendEmailConfig",
    "StageMetric",
    "StageMetrics",
    "StatusCategory",
    "TableMetadata",
    "Team",
    "TransitionTrigger",
    "TriggerType",
    "TriggerWorkflowEventConfig",
    "UpdateFieldsConfig",
    "ValidationContext",
    "ViewConfig",
    "WorkflowAction",
    "WorkflowDefinition",
    "WorkflowLog",
    "WorkflowPriority",
    "WorkflowRule",
    "WorkflowStage",
    "WorkflowTransition",
    "coerce_condition_tree",
    "split_table_name",
]
