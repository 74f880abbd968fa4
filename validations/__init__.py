from .issues import (
    ProcessValidationError,
    UnknownRegistryTypeError,
    ValidationIssue,
    WorkflowValidationError,
)
from .process_validator import ensure_valid_process_definition, validate_process_definition
from .workflow_validator import (
    SYSTEM_COLUMNS,
    ensure_valid_workflow,
    parse_and_validate_action,
    parse_and_validate_workflow,
    validate_workflow,
)

__all__ = [
    "SYSTEM_COLUMNS",
    "ProcessValidationError",
    "UnknownRegistryTypeError",
    "ValidationIssue",
    "WorkflowValidationError",
    "ensure_valid_process_definition",
    "ensure_valid_workflow",
    "parse_and_validate_action",
    "parse_and_validate_workflow",
    "validate_process_definition",
    "validate_workflow",
]
