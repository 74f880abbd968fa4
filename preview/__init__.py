from .evaluator import ConditionResult, ConditionTrace, evaluate_condition, evaluate_conditions, resolve_field
from .schedule import InvalidCronExpressionError, next_run_times, parse_cron
from .templates import PLACEHOLDER_ROOTS, TemplateRenderError, TemplateRenderer
from .workflow_preview import (
    ActionPreview,
    EmailPreview,
    TriggerEvent,
    WorkflowPreview,
    changed_fields,
    describe_trigger,
    preview_workflow,
    trigger_fires,
)

__all__ = [
    "PLACEHOLDER_ROOTS",
    "ActionPreview",
    "ConditionResult",
    "ConditionTrace",
    "EmailPreview",
    "InvalidCronExpressionError",
    "TemplateRenderError",
    "TemplateRenderer",
    "TriggerEvent",
    "WorkflowPreview",
    "changed_fields",
    "describe_trigger",
    "evaluate_condition",
    "evaluate_conditions",
    "next_run_times",
    "parse_cron",
    "preview_workflow",
    "resolve_field",
    "trigger_fires",
]
