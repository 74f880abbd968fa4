import pytest
from pydantic import ValidationError

from models import (
    ActionConfig,
    ActionType,
    AssignmentRule,
    AssignOwnerConfig,
    SendEmailConfig,
    UpdateFieldsConfig,
    WorkflowAction,
)


def _action(action_type, configuration, **fields) -> WorkflowAction:
    return WorkflowAction.model_validate(
        {"action_type": action_type, "name": "Step", "configuration": configuration, **fields}
    )


def test_configuration_is_parsed_per_action_kind():
    action = _action("send_email", {"to": "{{new.email}}", "templateId": "tpl-1", "_ccTeamName": "Sales"})

    assert isinstance(action.configuration, SendEmailConfig)
    assert action.configuration.template_id == "tpl-1"
    assert action.configuration.cc_team_name == "Sales"


def test_enum_action_type_is_accepted():
    action = _action(ActionType.ADD_TAGS, {"tags": ["vip"]})

    assert action.action_type == "add_tags"


def test_custom_recipient_requires_address():
    with pytest.raises(ValidationError):
        _action("send_email", {"to": "custom", "templateId": "tpl-1"})

    action = _action("send_email", {"to": "custom", "customTo": "ops@acme.io", "templateId": "tpl-1"})
    assert action.configuration.custom_to == "ops@acme.io"


def test_custom_recipient_must_be_an_email():
    with pytest.raises(ValidationError):
        _action("send_email", {"to": "custom", "customTo": "not-an-address", "templateId": "tpl-1"})


def test_assign_owner_needs_team_or_user():
    with pytest.raises(ValidationError):
        _action("assign_owner", {"field": "owner_id", "assignmentRule": "round_robin"})
    with pytest.raises(ValidationError):
        _action("assign_owner", {"field": "owner_id", "assignmentRule": "specific_user"})

    action = _action("assign_owner", {"field": "owner_id", "assignmentRule": "specific_user", "userId": "u1"})
    assert isinstance(action.configuration, AssignOwnerConfig)
    assert action.configuration.assignment_rule == AssignmentRule.SPECIFIC_USER


def test_update_fields_needs_at_least_one_update():
    with pytest.raises(ValidationError):
        _action("update_fields", {"updates": []})

    action = _action("update_fields", {"updates": [{"field": "status", "value": "contacted"}]})
    assert isinstance(action.configuration, UpdateFieldsConfig)
    assert action.configuration.updates[0].value_type == "static"


def test_manage_tags_needs_something_to_do():
    with pytest.raises(ValidationError):
        _action("manage_tags", {})


def test_unknown_action_type_keeps_generic_config():
    action = _action("send_sms", {"phone": "123"})

    assert type(action.configuration) is ActionConfig
    assert action.configuration_dict() == {"phone": "123"}


def test_retry_defaults_and_bounds():
    action = _action("add_tags", {"tags": ["a"]})

    assert action.max_retries == 3
    assert action.retry_count == 0
    with pytest.raises(ValidationError):
        _action("add_tags", {"tags": ["a"]}, max_retries=11)


def test_rate_limit_must_be_positive():
    with pytest.raises(ValidationError):
        _action("add_tags", {"tags": ["a"]}, rate_limit={"max_executions": 0, "period_seconds": 60})


def test_draft_ids():
    assert _action("add_tags", {"tags": ["a"]}).is_draft
    assert _action("add_tags", {"tags": ["a"]}, id="temp-123").is_draft
    assert not _action("add_tags", {"tags": ["a"]}, id="c0ffee").is_draft


def test_configuration_dict_uses_stored_key_names():
    action = _action(
        "assign_owner",
        {"field": "owner_id", "assignmentRule": "round_robin", "teamId": "team-1", "condition": {"rule": "x > 1"}},
    )

    assert action.configuration_dict() == {
        "condition": {"rule": "x > 1"},
        "field": "owner_id",
        "assignmentRule": "round_robin",
        "teamId": "team-1",
    }
