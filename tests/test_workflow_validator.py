import copy

import pytest
from pydantic import ValidationError

from models import WorkflowAction, WorkflowRule
from validations import (
    UnknownRegistryTypeError,
    WorkflowValidationError,
    ensure_valid_workflow,
    parse_and_validate_action,
    parse_and_validate_workflow,
    validate_workflow,
)


def _messages(issues):
    return [str(issue) for issue in issues]


def _rule(**overrides) -> WorkflowRule:
    data = {"organization_id": "org-1", "name": "Rule", "trigger_table": "public.leads"}
    data.update(overrides)
    return WorkflowRule.model_validate(data)


def _tag_action(**fields) -> WorkflowAction:
    return WorkflowAction.model_validate(
        {"action_type": "add_tags", "name": "Tag", "configuration": {"tags": ["a"]}, **fields}
    )


def test_valid_payload_parses_with_context(workflow_payload, registries, context):
    rule, actions = parse_and_validate_workflow(workflow_payload, registries, context)

    assert rule.name == "Welcome new leads"
    assert rule.actions == []
    assert [a.action_order for a in actions] == [1, 2]
    assert all(a.organization_id == "org-1" for a in actions)


def test_unknown_trigger_type_is_rejected(workflow_payload, registries):
    workflow_payload["trigger_type"] = "on_delete"

    with pytest.raises(UnknownRegistryTypeError):
        parse_and_validate_workflow(workflow_payload, registries)


def test_unknown_operator_is_rejected(workflow_payload, registries):
    workflow_payload["conditions"][0]["operator"] = "matches_regex"

    with pytest.raises(UnknownRegistryTypeError):
        parse_and_validate_workflow(workflow_payload, registries)


def test_unknown_action_type_is_rejected(registries):
    with pytest.raises(UnknownRegistryTypeError):
        parse_and_validate_action({"action_type": "send_sms", "name": "x"}, registries)


def test_shape_errors_surface_as_validation_error(workflow_payload, registries):
    workflow_payload["actions"][0]["configuration"] = {"to": "custom", "templateId": "tpl-welcome"}

    with pytest.raises(ValidationError):
        parse_and_validate_workflow(workflow_payload, registries)


def test_all_issues_are_reported_together(registries):
    payload = {
        "organization_id": "org-1",
        "name": " ",
        "trigger_table": "public.leads",
        "trigger_type": "cron",
        "conditions": [{"field": "status", "operator": "equals", "value": ""}],
        "actions": [],
    }

    with pytest.raises(WorkflowValidationError) as excinfo:
        parse_and_validate_workflow(payload, registries)

    paths = [issue.path for issue in excinfo.value.issues]
    assert "name" in paths
    assert "cron_config" in paths
    assert "conditions[0].value" in paths
    assert "actions" in paths


def test_cron_expression_must_parse():
    issues = validate_workflow(_rule(trigger_type="cron", cron_config="61 * * * *"), [_tag_action()])

    assert [issue.path for issue in issues] == ["cron_config"]


def test_valid_cron_rule_passes():
    assert validate_workflow(_rule(trigger_type="cron", cron_config="0 9 * * 1-5"), [_tag_action()]) == []


def test_action_order_must_be_contiguous():
    issues = validate_workflow(_rule(), [_tag_action(action_order=1), _tag_action(action_order=3)])

    assert any("Action order" in issue.message for issue in issues)


def test_sql_rule_needs_predicate():
    issues = validate_workflow(_rule(condition_type="sql", conditions=""), [_tag_action()])

    assert _messages(issues) == ["conditions: SQL conditions need a predicate"]


def test_unknown_table_and_column(context):
    issues = validate_workflow(_rule(trigger_table="public.deals"), [_tag_action()], context)
    assert _messages(issues) == ["trigger_table: Unknown table public.deals"]

    rule = _rule(conditions=[{"field": "budget", "operator": "equals", "value": "1"}])
    issues = validate_workflow(rule, [_tag_action()], context)
    assert _messages(issues) == ["conditions[0].field: Column 'budget' does not exist on public.leads"]


def test_ordering_operator_needs_numeric_or_date_column(context):
    rule = _rule(conditions=[{"field": "status", "operator": "greater_than", "value": "1"}])

    issues = validate_workflow(rule, [_tag_action()], context)

    assert [issue.path for issue in issues] == ["conditions[0].operator"]


def test_old_placeholders_are_rejected_on_create(workflow_payload, registries, context):
    payload = copy.deepcopy(workflow_payload)
    payload["actions"][0]["configuration"]["to"] = "{{old.email}}"

    with pytest.raises(WorkflowValidationError) as excinfo:
        parse_and_validate_workflow(payload, registries, context)

    assert "not available for on_create" in str(excinfo.value)

    payload["trigger_type"] = "on_update"
    rule, _ = parse_and_validate_workflow(payload, registries, context)
    assert rule.trigger_type == "on_update"


def test_unknown_placeholder_root_and_column(context):
    action = WorkflowAction.model_validate(
        {
            "action_type": "update_fields",
            "name": "Update",
            "configuration": {
                "updates": [
                    {"field": "status", "value": "{{record.status}}", "valueType": "dynamic"},
                    {"field": "name", "value": "{{new.nickname}}", "valueType": "dynamic"},
                ]
            },
        }
    )

    messages = _messages(validate_workflow(_rule(), [action], context))

    assert any("Unknown placeholder root 'record'" in message for message in messages)
    assert any("Column 'nickname' does not exist" in message for message in messages)


def test_system_columns_cannot_be_updated():
    action = WorkflowAction.model_validate(
        {"action_type": "update_fields", "name": "Update", "configuration": {"updates": [{"field": "id"}]}}
    )

    issues = validate_workflow(_rule(), [action])

    assert [issue.path for issue in issues] == ["actions[0].configuration.updates[0].field"]


def test_email_cross_references(context):
    action = WorkflowAction.model_validate(
        {
            "action_type": "send_email",
            "name": "Mail",
            "configuration": {"to": "{{new.email}}", "templateId": "tpl-missing", "ccTeamId": "team-missing"},
        }
    )

    paths = [issue.path for issue in validate_workflow(_rule(), [action], context)]

    assert paths == ["actions[0].configuration.templateId", "actions[0].configuration.ccTeamId"]


def test_create_record_checks_target_table(context):
    action = WorkflowAction.model_validate(
        {
            "action_type": "create_record",
            "name": "Task",
            "configuration": {
                "targetTable": "crm.tasks",
                "fieldMappings": {"title": "Call {{new.name}}", "priority": "high"},
            },
        }
    )

    messages = _messages(validate_workflow(_rule(), [action], context))

    assert messages == ["actions[0].configuration.fieldMappings.priority: Column 'priority' does not exist on crm.tasks"]


def test_checks_without_context_skip_cross_references():
    action = WorkflowAction.model_validate(
        {"action_type": "send_email", "name": "Mail", "configuration": {"to": "{{new.email}}", "templateId": "tpl-x"}}
    )

    assert validate_workflow(_rule(trigger_table="anything"), [action]) == []


def _saved_actions():
    return {
        "act-1": _tag_action(id="act-1", action_order=1),
        "act-2": WorkflowAction.model_validate(
            {"id": "act-2", "action_type": "manage_tags", "name": "Untag", "configuration": {"remove": ["cold"]}, "action_order": 2}
        ),
        "act-other": _tag_action(id="act-other", x_workflow_id="wf-other"),
    }


def _lookup(action_id):
    try:
        return _saved_actions()[action_id]
    except KeyError:
        raise LookupError(action_id) from None


def test_document_with_only_saved_action_ids(workflow_payload, registries):
    workflow_payload["actions"] = ["act-2", "act-1"]

    rule, actions = parse_and_validate_workflow(workflow_payload, registries, resolve_action=_lookup)

    assert rule.actions == ["act-2", "act-1"]
    assert [(a.id, a.action_order) for a in actions] == [("act-2", 1), ("act-1", 2)]


def test_mixed_document_keeps_document_order(workflow_payload, registries):
    inline = workflow_payload["actions"][1]
    workflow_payload["actions"] = ["act-1", inline, "act-2"]

    rule, actions = parse_and_validate_workflow(workflow_payload, registries, resolve_action=_lookup)

    assert [a.action_order for a in actions] == [1, 2, 3]
    assert [a.name for a in actions] == ["Tag", "Tag lead", "Untag"]
    assert actions[1].is_draft
    assert rule.actions == ["act-1", "act-2"]


def test_saved_ids_that_cannot_be_resolved(workflow_payload, registries):
    workflow_payload["actions"] = ["act-1", "missing", "act-other"]

    with pytest.raises(WorkflowValidationError) as exc_info:
        parse_and_validate_workflow(workflow_payload, registries, resolve_action=_lookup)

    messages = _messages(exc_info.value.issues)
    assert "actions[1]: Saved action missing not found" in messages
    assert "actions[2]: Saved action act-other belongs to workflow wf-other" in messages
    assert not any("Action order" in message for message in messages)


def test_saved_ids_need_a_lookup(workflow_payload, registries):
    workflow_payload["actions"] = ["act-1"]

    with pytest.raises(WorkflowValidationError) as exc_info:
        parse_and_validate_workflow(workflow_payload, registries)

    assert "actions[0]: Saved action act-1 cannot be looked up here" in _messages(exc_info.value.issues)


def test_ensure_valid_workflow_raises_with_every_issue():
    assert ensure_valid_workflow(_rule(), [_tag_action()]).name == "Rule"

    with pytest.raises(WorkflowValidationError) as exc_info:
        ensure_valid_workflow(_rule(name=""), [])

    assert "name: Workflow name is required" in _messages(exc_info.value.issues)
    assert "actions: At least one action is required" in _messages(exc_info.value.issues)
