from composer import (
    add_action,
    add_condition,
    move_action,
    remove_action,
    remove_condition,
    update_condition,
    upsert_action,
)
from models import LogicalOperator, WorkflowAction


def _chain():
    actions = add_action([], "send_email", {"to": "{{new.email}}", "templateId": "tpl-1"}, organization_id="org-1")
    actions = add_action(actions, "add_tags", {"tags": ["a"]})
    return add_action(actions, "update_fields", {"updates": [{"field": "status", "value": "x"}]})


def test_first_condition_has_no_joiner():
    conditions = add_condition([], field="status", value="new")
    conditions = add_condition(conditions, field="amount", operator="greater_than", value=5)

    assert conditions[0].logical_operator is None
    assert conditions[1].logical_operator == LogicalOperator.AND


def test_update_condition_accepts_stored_joiner_key():
    conditions = add_condition(add_condition([], field="a"), field="b")

    updated = update_condition(conditions, conditions[1].id, logicalOperator="OR", value="2")

    assert updated[1].logical_operator == LogicalOperator.OR
    assert updated[1].value == "2"
    assert conditions[1].logical_operator == LogicalOperator.AND


def test_removing_first_condition_clears_new_first_joiner():
    conditions = add_condition(add_condition([], field="a"), field="b", logical_operator=LogicalOperator.OR)

    remaining = remove_condition(conditions, conditions[0].id)

    assert [c.field for c in remaining] == ["b"]
    assert remaining[0].logical_operator is None


def test_added_actions_are_numbered_drafts():
    actions = _chain()

    assert [a.action_order for a in actions] == [1, 2, 3]
    assert all(a.is_draft for a in actions)
    assert actions[0].name == "send_email Action"
    assert actions[0].max_retries == 3
    assert actions[0].organization_id == "org-1"


def test_remove_action_renumbers():
    actions = _chain()

    remaining = remove_action(actions, actions[0].id)

    assert [a.action_type for a in remaining] == ["add_tags", "update_fields"]
    assert [a.action_order for a in remaining] == [1, 2]


def test_move_action_swaps_and_renumbers():
    actions = _chain()

    moved = move_action(actions, actions[2].id, "up")

    assert [a.action_type for a in moved] == ["send_email", "update_fields", "add_tags"]
    assert [a.action_order for a in moved] == [1, 2, 3]


def test_move_action_at_edge_is_a_no_op():
    actions = _chain()

    assert [a.id for a in move_action(actions, actions[0].id, "up")] == [a.id for a in actions]
    assert [a.id for a in move_action(actions, actions[2].id, "down")] == [a.id for a in actions]


def test_upsert_replaces_matching_id_and_appends_new():
    actions = _chain()
    renamed = actions[1].model_copy(update={"name": "Tag it"})

    replaced = upsert_action(actions, renamed)
    assert replaced[1].name == "Tag it"
    assert len(replaced) == 3

    extra = WorkflowAction.model_validate({"action_type": "add_tags", "name": "More", "configuration": {"tags": ["b"]}})
    appended = upsert_action(replaced, extra)
    assert len(appended) == 4
    assert appended[3].is_draft
    assert appended[3].id is not None
    assert appended[3].action_order == 4
