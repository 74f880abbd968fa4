import pytest

from models import StageMetrics, WorkflowDefinition
from validations import ProcessValidationError, ensure_valid_process_definition, validate_process_definition


def _definition(**body_overrides) -> WorkflowDefinition:
    body = {
        "name": "Lead",
        "startStateId": "New",
        "stages": [{"id": "New", "name": "New"}, {"id": "Won", "name": "Won", "sequence": 2}],
        "transitions": [{"id": "T_WIN", "name": "win", "from": "New", "to": "Won"}],
    }
    body.update(body_overrides)
    return WorkflowDefinition(organization_id="org-1", name="Lead lifecycle", entity_type="leads", definitions=body)


def test_valid_definition_has_no_issues():
    assert validate_process_definition(_definition()) == []


def test_start_stage_must_exist():
    issues = validate_process_definition(_definition(startStateId="Missing"))

    assert [issue.path for issue in issues] == ["definitions.startStateId"]


def test_transitions_must_reference_stages():
    issues = validate_process_definition(
        _definition(transitions=[{"id": "T_X", "name": "x", "from": ["New", "Ghost"], "to": "Nowhere"}])
    )

    assert [issue.path for issue in issues] == ["definitions.transitions[0].from", "definitions.transitions[0].to"]


def test_duplicate_stage_ids_are_reported():
    issues = validate_process_definition(
        _definition(stages=[{"id": "New", "name": "New"}, {"id": "New", "name": "Again"}], transitions=[])
    )

    assert any("used 2 times" in issue.message for issue in issues)


def test_time_based_transition_needs_threshold():
    issues = validate_process_definition(
        _definition(
            transitions=[{"id": "T_WAIT", "name": "wait", "from": "New", "to": "Won", "trigger": "time_elapsed_in_state"}]
        )
    )

    assert [issue.path for issue in issues] == ["definitions.transitions[0].timeThresholdHours"]


def test_metrics_must_reference_stages_and_be_ordered():
    metrics = StageMetrics.model_validate(
        {
            "metrics_data": [
                {"stage_id": "Ghost"},
                {"stage_id": "New", "pertTime": {"optimisticHours": 5, "mostLikelyHours": 1, "pessimisticHours": 4}},
            ]
        }
    )

    issues = validate_process_definition(_definition(), metrics)

    assert [issue.path for issue in issues] == ["metrics_data[0].stage_id", "metrics_data[1].pertTime"]


def test_ensure_valid_raises_with_issues():
    with pytest.raises(ProcessValidationError) as excinfo:
        ensure_valid_process_definition(_definition(stages=[], transitions=[], startStateId=""))

    assert excinfo.value.issues[0].path == "definitions.stages"
