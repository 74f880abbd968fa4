import logging
from collections import Counter
from typing import List, Optional

from models import StageMetrics, TransitionTrigger, WorkflowDefinition

from .issues import ProcessValidationError, ValidationIssue

logger = logging.getLogger(__name__)


def validate_process_definition(
    definition: WorkflowDefinition,
    metrics: Optional[StageMetrics] = None,
) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    body = definition.definitions

    if not definition.name.strip():
        issues.append(ValidationIssue("name", "Process name is required"))
    if not definition.entity_type.strip():
        issues.append(ValidationIssue("entity_type", "Entity type is required"))
    if not body.name.strip():
        issues.append(ValidationIssue("definitions.name", "Process body needs a name"))

    if not body.stages:
        issues.append(ValidationIssue("definitions.stages", "At least one stage is required"))

    stage_ids = [stage.id for stage in body.stages]
    for stage_id, count in Counter(stage_ids).items():
        if count > 1:
            issues.append(ValidationIssue("definitions.stages", f"Stage id '{stage_id}' is used {count} times"))

    if body.stages and body.start_state_id not in stage_ids:
        issues.append(
            ValidationIssue("definitions.startStateId", f"Start stage '{body.start_state_id}' is not a defined stage")
        )

    transition_ids = [transition.id for transition in body.transitions]
    for transition_id, count in Counter(transition_ids).items():
        if count > 1:
            issues.append(
                ValidationIssue("definitions.transitions", f"Transition id '{transition_id}' is used {count} times")
            )

    known = set(stage_ids)
    for index, transition in enumerate(body.transitions):
        path = f"definitions.transitions[{index}]"
        for source in transition.sources():
            if source not in known:
                issues.append(ValidationIssue(f"{path}.from", f"Unknown stage '{source}'"))
        if transition.to_stage not in known:
            issues.append(ValidationIssue(f"{path}.to", f"Unknown stage '{transition.to_stage}'"))
        if transition.trigger == TransitionTrigger.TIME_ELAPSED_IN_STATE and not (
            transition.time_threshold_hours and transition.time_threshold_hours > 0
        ):
            issues.append(
                ValidationIssue(f"{path}.timeThresholdHours", "Time-based transitions need a positive threshold")
            )

    if metrics is not None:
        for index, metric in enumerate(metrics.metrics_data):
            path = f"metrics_data[{index}]"
            if metric.stage_id not in known:
                issues.append(ValidationIssue(f"{path}.stage_id", f"Unknown stage '{metric.stage_id}'"))
            time = metric.pert_time
            if not time.optimistic_hours <= time.most_likely_hours <= time.pessimistic_hours:
                issues.append(ValidationIssue(f"{path}.pertTime", "Expected optimistic <= most likely <= pessimistic"))
            cost = metric.pert_cost
            if not cost.optimistic_usd <= cost.most_likely_usd <= cost.pessimistic_usd:
                issues.append(ValidationIssue(f"{path}.pertCost", "Expected optimistic <= most likely <= pessimistic"))

    return issues


def ensure_valid_process_definition(
    definition: WorkflowDefinition,
    metrics: Optional[StageMetrics] = None,
) -> WorkflowDefinition:
    issues = validate_process_definition(definition, metrics)
    if issues:
        logger.warning("Rejected process definition %r with %d issue(s)", definition.name, len(issues))
        raise ProcessValidationError(issues)
    return definition
