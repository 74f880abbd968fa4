"""In-memory editing of process definition stages, transitions and metrics."""

import re
from typing import Any, List, Literal

from models import (
    ProcessDefinitionBody,
    StageMetric,
    StageMetrics,
    WorkflowStage,
    WorkflowTransition,
)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")
_REPEATED_UNDERSCORE = re.compile(r"_+")


def stage_id_from_name(name: str) -> str:
    return _REPEATED_UNDERSCORE.sub("_", _NON_ALNUM.sub("_", name)).strip("_")


def transition_id_from_name(name: str) -> str:
    return f"T_{stage_id_from_name(name).upper()}"


def next_sequence(stages: List[WorkflowStage]) -> int:
    return max((stage.sequence for stage in stages), default=0) + 1


def new_stage(body: ProcessDefinitionBody, name: str, **fields: Any) -> WorkflowStage:
    """Build a stage the way the stage editor pre-fills it."""
    return WorkflowStage.model_validate(
        {
            "id": fields.pop("id", None) or stage_id_from_name(name),
            "name": name,
            "sequence": fields.pop("sequence", None) or next_sequence(body.stages),
            **fields,
        }
    )


def upsert_stage(body: ProcessDefinitionBody, stage: WorkflowStage) -> ProcessDefinitionBody:
    if body.stage(stage.id):
        stages = [stage if existing.id == stage.id else existing for existing in body.stages]
    else:
        stages = [*body.stages, stage]
    return body.model_copy(update={"stages": stages})


def remove_stage(body: ProcessDefinitionBody, stage_id: str) -> ProcessDefinitionBody:
    """Drop the stage and every transition that enters or leaves it."""
    return body.model_copy(
        update={
            "stages": [stage for stage in body.stages if stage.id != stage_id],
            "transitions": [transition for transition in body.transitions if not transition.touches(stage_id)],
            "start_state_id": "" if body.start_state_id == stage_id else body.start_state_id,
        }
    )


def move_stage(body: ProcessDefinitionBody, stage_id: str, direction: Literal["up", "down"]) -> ProcessDefinitionBody:
    stages = list(body.stages)
    index = next((i for i, stage in enumerate(stages) if stage.id == stage_id), -1)
    if index == -1:
        return body
    target = index - 1 if direction == "up" else index + 1
    if target < 0 or target >= len(stages):
        return body
    stages[index], stages[target] = stages[target], stages[index]
    resequenced = [stage.model_copy(update={"sequence": position}) for position, stage in enumerate(stages, start=1)]
    return body.model_copy(update={"stages": resequenced})


def set_start_stage(body: ProcessDefinitionBody, stage_id: str) -> ProcessDefinitionBody:
    if not body.stage(stage_id):
        raise KeyError(f"Unknown stage: {stage_id}")
    return body.model_copy(update={"start_state_id": stage_id})


def upsert_transition(body: ProcessDefinitionBody, transition: WorkflowTransition) -> ProcessDefinitionBody:
    if any(existing.id == transition.id for existing in body.transitions):
        transitions = [transition if existing.id == transition.id else existing for existing in body.transitions]
    else:
        transitions = [*body.transitions, transition]
    return body.model_copy(update={"transitions": transitions})


def remove_transition(body: ProcessDefinitionBody, transition_id: str) -> ProcessDefinitionBody:
    return body.model_copy(
        update={"transitions": [transition for transition in body.transitions if transition.id != transition_id]}
    )


def upsert_stage_metric(metrics: StageMetrics, stage_id: str, **updates: Any) -> StageMetrics:
    """
    Merge updates into the stage's metric, creating it from defaults when
    missing. Keys use the stored camelCase names; nested blocks merge shallowly.
    """
    existing = metrics.for_stage(stage_id)
    if existing is None:
        metric = StageMetric.model_validate({"stage_id": stage_id, **updates})
        return metrics.model_copy(update={"metrics_data": [*metrics.metrics_data, metric]})

    merged_data = existing.model_dump(by_alias=True)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged_data.get(key), dict):
            merged_data[key] = {**merged_data[key], **value}
        else:
            merged_data[key] = value
    merged = StageMetric.model_validate({**merged_data, "stage_id": stage_id})
    return metrics.model_copy(
        update={"metrics_data": [merged if metric.stage_id == stage_id else metric for metric in metrics.metrics_data]}
    )


def add_skill(metrics: StageMetrics, stage_id: str, skill: str) -> StageMetrics:
    metric = metrics.for_stage(stage_id)
    skill = skill.strip()
    if metric is None or not skill or skill in metric.required_skills:
        return metrics
    return upsert_stage_metric(metrics, stage_id, requiredSkills=[*metric.required_skills, skill])


def remove_skill(metrics: StageMetrics, stage_id: str, skill: str) -> StageMetrics:
    metric = metrics.for_stage(stage_id)
    if metric is None:
        return metrics
    return upsert_stage_metric(
        metrics, stage_id, requiredSkills=[existing for existing in metric.required_skills if existing != skill]
    )
