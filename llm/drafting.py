"""
Natural language to validated workflow draft.

The draft is never saved here; callers decide whether to persist it.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from models import ValidationContext, WorkflowAction, WorkflowRule
from registry import Registry, create_default_registries
from validations import parse_and_validate_workflow

from .openai_client import OpenAIWorkflowLLM
from .parser import LlmWorkflowParser

logger = logging.getLogger(__name__)


@dataclass
class WorkflowDraft:
    rule: WorkflowRule
    actions: List[WorkflowAction]


def draft_from_text(
    llm_text: str,
    organization_id: str,
    registries: Optional[Dict[str, Registry]] = None,
    context: Optional[ValidationContext] = None,
) -> WorkflowDraft:
    """Parse and validate LLM output. Actions come back unsaved, without ids."""
    registries = registries or create_default_registries()
    payload = LlmWorkflowParser().parse(llm_text)
    payload["organization_id"] = organization_id
    rule, actions = parse_and_validate_workflow(payload, registries, context)
    return WorkflowDraft(rule=rule, actions=actions)


def draft_workflow(
    user_input: str,
    organization_id: str,
    llm: Optional[OpenAIWorkflowLLM] = None,
    registries: Optional[Dict[str, Registry]] = None,
    context: Optional[ValidationContext] = None,
) -> WorkflowDraft:
    registries = registries or create_default_registries()
    llm = llm or OpenAIWorkflowLLM()
    llm_text = llm.generate_workflow_json(user_input, registries, context)
    logger.debug("LLM returned %d characters", len(llm_text))
    return draft_from_text(llm_text, organization_id, registries, context)
