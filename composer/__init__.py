from .process_composer import (
    add_skill,
    move_stage,
    new_stage,
    next_sequence,
    remove_skill,
    remove_stage,
    remove_transition,
    set_start_stage,
    stage_id_from_name,
    transition_id_from_name,
    upsert_stage,
    upsert_stage_metric,
    upsert_transition,
)
from .workflow_composer import (
    add_action,
    add_condition,
    move_action,
    new_draft_id,
    remove_action,
    remove_condition,
    update_condition,
    upsert_action,
)

__all__ = [
    "add_action",
    "add_condition",
    "add_skill",
    "move_action",
    "move_stage",
    "new_draft_id",
    "new_stage",
    "next_sequence",
    "remove_action",
    "remove_condition",
    "remove_skill",
    "remove_stage",
    "remove_transition",
    "set_start_stage",
    "stage_id_from_name",
    "transition_id_from_name",
    "update_condition",
    "upsert_action",
    "upsert_stage",
    "upsert_stage_metric",
    "upsert_transition",
]
