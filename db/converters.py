"""
Conversion utilities between Pydantic models and SQLAlchemy DB models.

Column names match the pydantic field names (or their aliases), so conversion
walks the mapped columns instead of listing every field by hand. Timestamp
columns take python datetimes normalised to UTC; everything else is stored in
its JSON form.
"""

import json
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel
from sqlalchemy import DateTime, inspect

from models import (
    EmailTemplate,
    StageMetrics,
    Team,
    ViewConfig,
    WorkflowAction,
    WorkflowDefinition,
    WorkflowLog,
    WorkflowRule,
)

from .models import (
    EmailTemplateModel,
    StageMetricsModel,
    TeamModel,
    ViewConfigModel,
    WorkflowActionModel,
    WorkflowDefinitionModel,
    WorkflowLogModel,
    WorkflowModel,
    as_utc,
)


def _attribute_keys(table_cls: Type[Any]) -> Dict[str, str]:
    """Map column name -> mapped attribute name (they differ for `metadata`)."""
    return {prop.columns[0].name: prop.key for prop in inspect(table_cls).column_attrs}


def _row_values(row: Any) -> Dict[str, Any]:
    keys = _attribute_keys(type(row))
    values = {}
    for column in type(row).__table__.columns:
        value = getattr(row, keys[column.name])
        values[column.name] = as_utc(value) if isinstance(column.type, DateTime) else value
    return values


def _column_values(model: BaseModel, table_cls: Type[Any], **overrides: Any) -> Dict[str, Any]:
    python_values = model.model_dump(by_alias=True)
    json_values = model.model_dump(mode="json", by_alias=True)
    values: Dict[str, Any] = {}
    for column in table_cls.__table__.columns:
        if column.name in overrides:
            values[column.name] = overrides[column.name]
        elif column.name in json_values:
            if isinstance(column.type, DateTime):
                values[column.name] = as_utc(python_values[column.name])
            else:
                values[column.name] = json_values[column.name]
    return values


def _assign(row: Any, values: Dict[str, Any]) -> Any:
    keys = _attribute_keys(type(row))
    for name, value in values.items():
        if name == "id" and value is None:
            # leave the column default in charge of new ids
            continue
        setattr(row, keys[name], value)
    return row


def pydantic_to_db_workflow(rule: WorkflowRule, row: Optional[WorkflowModel] = None) -> WorkflowModel:
    """
    Copy a WorkflowRule onto a WorkflowModel row, creating one if needed.
    The condition tree is stored in its aliased (`logicalOperator`) form.
    """
    values = _column_values(rule, WorkflowModel, conditions=rule.conditions_payload())
    return _assign(row if row is not None else WorkflowModel(), values)


def db_to_pydantic_workflow(row: WorkflowModel) -> WorkflowRule:
    values = _row_values(row)
    values["actions"] = values.get("actions") or []
    return WorkflowRule.model_validate(values)


def pydantic_to_db_action(action: WorkflowAction, row: Optional[WorkflowActionModel] = None) -> WorkflowActionModel:
    values = _column_values(action, WorkflowActionModel, configuration=action.configuration_dict())
    return _assign(row if row is not None else WorkflowActionModel(), values)


def db_to_pydantic_action(row: WorkflowActionModel) -> WorkflowAction:
    values = _row_values(row)
    if not values.get("name"):
        values["name"] = f"{values['action_type']} Action"
    return WorkflowAction.model_validate(values)


def pydantic_to_db_log(log: WorkflowLog) -> WorkflowLogModel:
    return _assign(WorkflowLogModel(), _column_values(log, WorkflowLogModel))


def db_to_pydantic_log(row: WorkflowLogModel) -> WorkflowLog:
    values = _row_values(row)
    values["context"] = values.get("context") or {}
    return WorkflowLog.model_validate(values)


def pydantic_to_db_definition(
    definition: WorkflowDefinition,
    row: Optional[WorkflowDefinitionModel] = None,
) -> WorkflowDefinitionModel:
    """The process body is serialized to JSON text, matching the backend column."""
    body = json.dumps(definition.definitions.model_dump(mode="json", by_alias=True))
    values = _column_values(definition, WorkflowDefinitionModel, definitions=body)
    return _assign(row if row is not None else WorkflowDefinitionModel(), values)


def db_to_pydantic_definition(row: WorkflowDefinitionModel) -> WorkflowDefinition:
    return WorkflowDefinition.model_validate(_row_values(row))


def pydantic_to_db_stage_metrics(
    metrics: StageMetrics,
    row: Optional[StageMetricsModel] = None,
) -> StageMetricsModel:
    data = json.dumps([metric.model_dump(mode="json", by_alias=True) for metric in metrics.metrics_data])
    values = _column_values(metrics, StageMetricsModel, metrics_data=data)
    return _assign(row if row is not None else StageMetricsModel(), values)


def db_to_pydantic_stage_metrics(row: StageMetricsModel) -> StageMetrics:
    return StageMetrics.model_validate(_row_values(row))


def pydantic_to_db_email_template(
    template: EmailTemplate,
    row: Optional[EmailTemplateModel] = None,
) -> EmailTemplateModel:
    values = _column_values(template, EmailTemplateModel)
    return _assign(row if row is not None else EmailTemplateModel(), values)


def db_to_pydantic_email_template(row: EmailTemplateModel) -> EmailTemplate:
    values = _row_values(row)
    values["details"] = values.get("details") or {}
    return EmailTemplate.model_validate(values)


def pydantic_to_db_view_config(config: ViewConfig, row: Optional[ViewConfigModel] = None) -> ViewConfigModel:
    return _assign(row if row is not None else ViewConfigModel(), _column_values(config, ViewConfigModel))


def db_to_pydantic_view_config(row: ViewConfigModel) -> ViewConfig:
    values = _row_values(row)
    values["metadata"] = values.get("metadata") or []
    return ViewConfig.model_validate(values)


def pydantic_to_db_team(team: Team, row: Optional[TeamModel] = None) -> TeamModel:
    return _assign(row if row is not None else TeamModel(), _column_values(team, TeamModel))


def db_to_pydantic_team(row: TeamModel) -> Team:
    return Team.model_validate(_row_values(row))
