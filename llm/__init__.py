from .drafting import WorkflowDraft, draft_from_text, draft_workflow
from .openai_client import OpenAIWorkflowLLM
from .parser import LlmWorkflowParser

__all__ = [
    "LlmWorkflowParser",
    "OpenAIWorkflowLLM",
    "WorkflowDraft",
    "draft_from_text",
    "draft_workflow",
]
