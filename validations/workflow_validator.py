import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from models import (
    AssignOwnerConfig,
    AssignTaskConfig,
    Condition,
    CreateRecordConfig,
    SendEmailConfig,
    TriggerType,
    UpdateFieldsConfig,
    ValidationContext,
    ViewConfig,
    WorkflowAction,
    WorkflowRule,
)
from models.conditions import ORDERING_OPERATORS
from preview import PLACEHOLDER_ROOTS, InvalidCronExpressionError, TemplateRenderer, TemplateRenderError, parse_cron
from registry import Registry

from .issues import UnknownRegistryTypeError, ValidationIssue, WorkflowValidationError

logger = logging.getLogger(__name__)

SYSTEM_COLUMNS = {"id", "created_at", "updated_at", "organization_id", "location_id"}

_placeholder_parser = TemplateRenderer()


def _validate_against_registries(
    rule: WorkflowRule,
    actions: Iterable[WorkflowAction],
    registries: Dict[str, Registry],
) -> WorkflowRule:
    trigger_registry = registries["trigger"]
    condition_registry = registries["condition"]
    action_registry = registries["action"]

    if rule.trigger_type not in trigger_registry.items:
        raise UnknownRegistryTypeError(f"Unknown trigger type: {rule.trigger_type}")

    tree = rule.condition_tree()
    if tree is not None:
        for condition in tree.iter_conditions():
            if condition.operator not in condition_registry.items:
                raise UnknownRegistryTypeError(f"Unknown condition operator: {condition.operator}")

    for action in actions:
        if action.action_type not in action_registry.items:
            raise UnknownRegistryTypeError(f"Unknown action type: {action.action_type}")

    return rule


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


def _check_placeholders(
    text: Any,
    path: str,
    rule: WorkflowRule,
    table: Optional[ViewConfig],
) -> List[ValidationIssue]:
    if not isinstance(text, str) or "{{" not in text:
        return []
    try:
        placeholders = _placeholder_parser.placeholders(text)
    except TemplateRenderError as exc:
        return [ValidationIssue(path, str(exc))]

    issues = []
    for placeholder in placeholders:
        root, _, rest = placeholder.partition(".")
        if root not in PLACEHOLDER_ROOTS:
            issues.append(ValidationIssue(path, f"Unknown placeholder root '{root}' in {{{{{placeholder}}}}}"))
            continue
        if root == "old" and rule.trigger_type == TriggerType.ON_CREATE.value:
            issues.append(ValidationIssue(path, "{{old.*}} is not available for on_create workflows"))
        if root in ("new", "old") and rest and table is not None:
            column = rest.split(".")[0]
            if table.column(column) is None:
                issues.append(ValidationIssue(path, f"Column '{column}' does not exist on {rule.trigger_table}"))
    return issues


def _check_column(
    key: str,
    path: str,
    table: Optional[ViewConfig],
    table_name: str,
    updatable: bool = False,
) -> List[ValidationIssue]:
    if not key:
        return [ValidationIssue(path, "A column is required")]
    if updatable and key in SYSTEM_COLUMNS:
        return [ValidationIssue(path, f"System column '{key}' cannot be changed by a workflow")]
    if table is not None and table.column(key) is None:
        return [ValidationIssue(path, f"Column '{key}' does not exist on {table_name}")]
    return []


def _validate_conditions(rule: WorkflowRule, table: Optional[ViewConfig]) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    tree = rule.condition_tree()
    if tree is None:
        if _is_blank(rule.conditions):
            issues.append(ValidationIssue("conditions", "SQL conditions need a predicate"))
        return issues

    for index, condition in enumerate(tree.iter_conditions()):
        path = f"conditions[{index}]"
        issues.extend(_check_condition(condition, path, rule, table))
    return issues


def _check_condition(
    condition: Condition,
    path: str,
    rule: WorkflowRule,
    table: Optional[ViewConfig],
) -> List[ValidationIssue]:
    issues = _check_column(condition.field, f"{path}.field", table, rule.trigger_table)
    if condition.requires_value and _is_blank(condition.value):
        issues.append(ValidationIssue(f"{path}.value", f"Operator '{condition.operator}' needs a value"))
    if condition.operator in ORDERING_OPERATORS and table is not None:
        column = table.column(condition.field)
        if column is not None and not (column.is_numeric or column.is_temporal):
            issues.append(
                ValidationIssue(
                    f"{path}.operator",
                    f"'{condition.operator}' needs a numeric or date column, '{column.key}' is {column.type}",
                )
            )
    return issues


def _validate_action(
    action: WorkflowAction,
    path: str,
    rule: WorkflowRule,
    table: Optional[ViewConfig],
    context: Optional[ValidationContext],
) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    if _is_blank(action.name):
        issues.append(ValidationIssue(f"{path}.name", "Action name is required"))

    config = action.configuration
    config_path = f"{path}.configuration"

    if isinstance(config, SendEmailConfig):
        issues.extend(_check_placeholders(config.to, f"{config_path}.to", rule, table))
        if context is not None:
            template = context.template(config.template_id)
            if template is None:
                issues.append(ValidationIssue(f"{config_path}.templateId", f"Unknown email template {config.template_id}"))
            else:
                issues.extend(_check_placeholders(template.details.subject, f"{config_path}.template.subject", rule, table))
                issues.extend(_check_placeholders(template.details.body, f"{config_path}.template.body", rule, table))
            if config.cc_team_id and context.team(config.cc_team_id) is None:
                issues.append(ValidationIssue(f"{config_path}.ccTeamId", f"Unknown team {config.cc_team_id}"))

    elif isinstance(config, AssignOwnerConfig):
        issues.extend(_check_column(config.field, f"{config_path}.field", table, rule.trigger_table, updatable=True))
        if context is not None and config.team_id and context.team(config.team_id) is None:
            issues.append(ValidationIssue(f"{config_path}.teamId", f"Unknown team {config.team_id}"))

    elif isinstance(config, UpdateFieldsConfig):
        seen = set()
        for index, update in enumerate(config.updates):
            update_path = f"{config_path}.updates[{index}]"
            issues.extend(_check_column(update.field, f"{update_path}.field", table, rule.trigger_table, updatable=True))
            if update.field in seen:
                issues.append(ValidationIssue(f"{update_path}.field", f"Column '{update.field}' is updated twice"))
            seen.add(update.field)
            if update.value_type == "dynamic":
                issues.extend(_check_placeholders(update.value, f"{update_path}.value", rule, table))

    elif isinstance(config, CreateRecordConfig):
        target = context.table(config.target_table) if context is not None else None
        if context is not None and target is None:
            issues.append(ValidationIssue(f"{config_path}.targetTable", f"Unknown table {config.target_table}"))
        for column, value in config.field_mappings.items():
            mapping_path = f"{config_path}.fieldMappings.{column}"
            if target is not None and target.column(column) is None:
                issues.append(ValidationIssue(mapping_path, f"Column '{column}' does not exist on {config.target_table}"))
            issues.extend(_check_placeholders(value, mapping_path, rule, table))

    elif isinstance(config, AssignTaskConfig):
        if context is not None and config.team_id and context.team(config.team_id) is None:
            issues.append(ValidationIssue(f"{config_path}.teamId", f"Unknown team {config.team_id}"))

    return issues


def validate_workflow(
    rule: WorkflowRule,
    actions: List[WorkflowAction],
    context: Optional[ValidationContext] = None,
) -> List[ValidationIssue]:
    """
    Collect every semantic problem with a workflow and its action chain.

    Cross-references (tables, columns, templates, teams) are only checked when
    a context is given; without one only the self-contained rules apply.
    """
    issues: List[ValidationIssue] = []

    if _is_blank(rule.name):
        issues.append(ValidationIssue("name", "Workflow name is required"))
    if _is_blank(rule.trigger_table):
        issues.append(ValidationIssue("trigger_table", "Trigger table is required"))
    if _is_blank(rule.trigger_type):
        issues.append(ValidationIssue("trigger_type", "Trigger type is required"))

    if rule.is_scheduled:
        if _is_blank(rule.cron_config):
            issues.append(ValidationIssue("cron_config", "Scheduled workflows need a cron expression"))
        else:
            try:
                parse_cron(rule.cron_config)
            except InvalidCronExpressionError as exc:
                issues.append(ValidationIssue("cron_config", str(exc)))

    table = None
    if context is not None and not _is_blank(rule.trigger_table):
        table = context.table(rule.trigger_table)
        if table is None:
            issues.append(ValidationIssue("trigger_table", f"Unknown table {rule.trigger_table}"))

    issues.extend(_validate_conditions(rule, table))

    if not actions:
        issues.append(ValidationIssue("actions", "At least one action is required"))
    orders = [action.action_order for action in actions]
    if sorted(orders) != list(range(1, len(actions) + 1)):
        issues.append(ValidationIssue("actions", f"Action order must run 1..{len(actions)}, got {sorted(orders)}"))

    for index, action in enumerate(actions):
        issues.extend(_validate_action(action, f"actions[{index}]", rule, table, context))

    return issues


def ensure_valid_workflow(
    rule: WorkflowRule,
    actions: List[WorkflowAction],
    context: Optional[ValidationContext] = None,
) -> WorkflowRule:
    issues = validate_workflow(rule, actions, context)
    if issues:
        logger.warning("Rejected workflow %r with %d issue(s)", rule.name, len(issues))
        raise WorkflowValidationError(issues)
    return rule


def parse_and_validate_action(
    payload: dict,
    registries: Dict[str, Registry],
) -> WorkflowAction:
    """
    Convert parsed JSON into a WorkflowAction and check its type is registered.
    Raises ValidationError or UnknownRegistryTypeError on failure.
    """
    action_type = payload.get("action_type")
    if action_type not in registries["action"].items:
        raise UnknownRegistryTypeError(f"Unknown action type: {action_type}")
    return WorkflowAction.model_validate(payload)


def _resolve_saved_action(
    action_id: str,
    path: str,
    workflow_id: Optional[str],
    resolve_action: Optional[Callable[[str], WorkflowAction]],
) -> Tuple[Optional[WorkflowAction], Optional[ValidationIssue]]:
    if resolve_action is None:
        return None, ValidationIssue(path, f"Saved action {action_id} cannot be looked up here")
    try:
        action = resolve_action(action_id)
    except LookupError:
        return None, ValidationIssue(path, f"Saved action {action_id} not found")
    if action.x_workflow_id and action.x_workflow_id != workflow_id:
        return None, ValidationIssue(path, f"Saved action {action_id} belongs to workflow {action.x_workflow_id}")
    return action, None


def parse_and_validate_workflow(
    payload: dict,
    registries: Dict[str, Registry],
    context: Optional[ValidationContext] = None,
    resolve_action: Optional[Callable[[str], WorkflowAction]] = None,
) -> tuple[WorkflowRule, List[WorkflowAction]]:
    """
    Convert a parsed document into a WorkflowRule plus its actions and run every
    check. The document is the rule's columns with an optional `actions` list
    whose entries are saved action ids, full action objects, or a mix of both.

    Saved ids are looked up with `resolve_action` (a repository's `get_action`).
    Every action is numbered by its position in the document, so the returned
    list is the complete chain in document order.

    Raises ValidationError, UnknownRegistryTypeError or WorkflowValidationError.
    """
    rule_payload = dict(payload)
    raw_actions = rule_payload.pop("actions", None) or []

    try:
        rule = WorkflowRule.model_validate({**rule_payload, "actions": []})
    except ValidationError:
        logger.warning("Workflow payload failed schema validation")
        raise

    issues: List[ValidationIssue] = []
    entries: List[Any] = []
    for index, item in enumerate(raw_actions):
        if isinstance(item, str):
            action, issue = _resolve_saved_action(item, f"actions[{index}]", rule.id, resolve_action)
            if issue is not None:
                issues.append(issue)
            else:
                entries.append(action)
        elif isinstance(item, dict):
            entries.append(item)
        else:
            issues.append(ValidationIssue(f"actions[{index}]", "Expected an action id or an action object"))

    actions: List[WorkflowAction] = []
    try:
        for position, entry in enumerate(entries, start=1):
            if isinstance(entry, WorkflowAction):
                actions.append(entry.model_copy(update={"action_order": position}))
            else:
                actions.append(
                    parse_and_validate_action(
                        {"action_order": position, "organization_id": rule.organization_id, **entry},
                        registries,
                    )
                )
    except ValidationError:
        logger.warning("Workflow payload failed schema validation")
        raise
    rule.actions = [action.id for action in actions if not action.is_draft]

    _validate_against_registries(rule, actions, registries)
    issues.extend(validate_workflow(rule, actions, context))
    if issues:
        logger.warning("Rejected workflow %r with %d issue(s)", rule.name, len(issues))
        raise WorkflowValidationError(issues)
    return rule, actions
