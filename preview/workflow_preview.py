import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from models import (
    ActionType,
    SendEmailConfig,
    TriggerType,
    ValidationContext,
    WorkflowAction,
    WorkflowRule,
)
from registry import Registry, create_default_registries

from .evaluator import ConditionTrace, evaluate_conditions
from .templates import TemplateRenderer

logger = logging.getLogger(__name__)


class TriggerEvent(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    SCHEDULE = "schedule"


_FIRING_EVENTS = {
    TriggerType.ON_CREATE.value: {TriggerEvent.INSERT},
    TriggerType.ON_UPDATE.value: {TriggerEvent.UPDATE},
    TriggerType.BOTH.value: {TriggerEvent.INSERT, TriggerEvent.UPDATE},
    TriggerType.CRON.value: {TriggerEvent.SCHEDULE},
}


@dataclass
class EmailPreview:
    to: Optional[str]
    cc_team: Optional[str]
    subject: Optional[str]
    body: Optional[str]


@dataclass
class ActionPreview:
    action_id: Optional[str]
    name: str
    action_type: str
    label: str
    order: int
    configuration: Dict[str, Any]
    email: Optional[EmailPreview] = None


@dataclass
class WorkflowPreview:
    trigger_fires: bool
    conditions_passed: Optional[bool]
    trace: Optional[ConditionTrace]
    changes: List[str] = field(default_factory=list)
    actions: List[ActionPreview] = field(default_factory=list)
    skipped_actions: List[str] = field(default_factory=list)

    @property
    def would_run(self) -> Optional[bool]:
        """None when the outcome depends on SQL conditions only the backend can evaluate."""
        if not self.trigger_fires:
            return False
        return self.conditions_passed


def trigger_fires(rule: WorkflowRule, event: TriggerEvent) -> bool:
    return TriggerEvent(event) in _FIRING_EVENTS.get(rule.trigger_type, set())


def changed_fields(old: Optional[Dict[str, Any]], new: Optional[Dict[str, Any]]) -> List[str]:
    if not old:
        return []
    new = new or {}
    keys = list(dict.fromkeys([*old.keys(), *new.keys()]))
    return [key for key in keys if old.get(key) != new.get(key)]


def describe_trigger(rule: WorkflowRule, registries: Optional[Dict[str, Registry]] = None) -> str:
    registries = registries or create_default_registries()
    label = registries["trigger"].label_for(rule.trigger_type)
    if rule.is_scheduled:
        schedule = rule.cron_description or rule.cron_config or "no schedule"
        return f"{label}: {schedule} ({rule.trigger_table})"
    return f"{label} on {rule.trigger_table}"


def _email_preview(
    config: SendEmailConfig,
    context: Optional[ValidationContext],
    renderer: TemplateRenderer,
    variables: Dict[str, Any],
) -> EmailPreview:
    recipient = config.custom_to if config.to == "custom" else renderer.render(config.to, **variables)
    team_name = config.cc_team_name
    template = context.template(config.template_id) if context else None
    if context and config.cc_team_id:
        team = context.team(config.cc_team_id)
        team_name = team.name if team else team_name
    if template is None:
        return EmailPreview(to=recipient, cc_team=team_name, subject=None, body=None)
    return EmailPreview(
        to=recipient,
        cc_team=team_name,
        subject=renderer.render(template.details.subject, **variables),
        body=renderer.render(template.details.body, **variables),
    )


def preview_workflow(
    rule: WorkflowRule,
    actions: List[WorkflowAction],
    new: Optional[Dict[str, Any]],
    old: Optional[Dict[str, Any]] = None,
    event: TriggerEvent = TriggerEvent.INSERT,
    context: Optional[ValidationContext] = None,
    user: Optional[Dict[str, Any]] = None,
    organization: Optional[Dict[str, Any]] = None,
    registries: Optional[Dict[str, Registry]] = None,
    renderer: Optional[TemplateRenderer] = None,
) -> WorkflowPreview:
    """
    Show what the runner would do for one event on a sample record: whether
    the trigger fires, how each condition resolves, and the enabled actions in
    order with their placeholders filled in.
    """
    registries = registries or create_default_registries()
    renderer = renderer or TemplateRenderer()
    variables = {"new": new, "old": old, "user": user, "organization": organization}

    fires = trigger_fires(rule, event)
    tree = rule.condition_tree()
    if tree is None:
        trace = None
        conditions_passed = None
    else:
        table = context.table(rule.trigger_table) if context else None
        trace = evaluate_conditions(tree, new, table.metadata if table else None)
        conditions_passed = trace.passed

    preview = WorkflowPreview(
        trigger_fires=fires,
        conditions_passed=conditions_passed,
        trace=trace,
        changes=changed_fields(old, new) if event == TriggerEvent.UPDATE else [],
    )

    for action in sorted(actions, key=lambda item: item.action_order):
        if not action.is_enabled:
            preview.skipped_actions.append(action.name)
            continue
        email = None
        if action.action_type == ActionType.SEND_EMAIL.value and isinstance(action.configuration, SendEmailConfig):
            email = _email_preview(action.configuration, context, renderer, variables)
        preview.actions.append(
            ActionPreview(
                action_id=action.id,
                name=action.name,
                action_type=action.action_type,
                label=registries["action"].label_for(action.action_type),
                order=action.action_order,
                configuration=renderer.render_value(action.configuration_dict(), **variables),
                email=email,
            )
        )

    logger.debug(
        "Previewed workflow %s: fires=%s conditions=%s actions=%d",
        rule.name,
        fires,
        conditions_passed,
        len(preview.actions),
    )
    return preview
