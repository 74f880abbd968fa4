from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class UnknownRegistryTypeError(ValueError):
    """Raised when a workflow references an unknown trigger, condition, or action type."""


class IssuesError(ValueError):
    """Base for errors that carry every issue found, not just the first one."""

    subject = "Definition"

    def __init__(self, issues: List[ValidationIssue]):
        self.issues = list(issues)
        summary = "; ".join(str(issue) for issue in self.issues)
        super().__init__(f"{self.subject} is invalid: {summary}")


class WorkflowValidationError(IssuesError):
    subject = "Workflow"


class ProcessValidationError(IssuesError):
    subject = "Process definition"
