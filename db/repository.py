import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from models import (
    EmailTemplate,
    StageMetrics,
    Team,
    ValidationContext,
    ViewConfig,
    WorkflowAction,
    WorkflowDefinition,
    WorkflowLog,
    WorkflowRule,
)
from models.actions import DRAFT_ID_PREFIX

from .converters import (
    db_to_pydantic_action,
    db_to_pydantic_definition,
    db_to_pydantic_email_template,
    db_to_pydantic_log,
    db_to_pydantic_stage_metrics,
    db_to_pydantic_team,
    db_to_pydantic_view_config,
    db_to_pydantic_workflow,
    pydantic_to_db_action,
    pydantic_to_db_definition,
    pydantic_to_db_email_template,
    pydantic_to_db_log,
    pydantic_to_db_stage_metrics,
    pydantic_to_db_team,
    pydantic_to_db_view_config,
    pydantic_to_db_workflow,
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
    utcnow,
)

logger = logging.getLogger(__name__)

ALL_STATUSES = "all"


class RecordNotFoundError(LookupError):
    """Raised when a requested row does not exist."""


@dataclass
class LogFilter:
    organization_id: str
    workflow_id: Optional[str] = None
    status: str = ALL_STATUSES
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    # Engine bookkeeping rows carry no action details and are hidden by default
    include_unknown_actions: bool = False
    limit: Optional[int] = None


def _prepare_rule(
    rule: WorkflowRule,
    existing: Optional[WorkflowRule],
    user_id: Optional[str],
    now: datetime,
) -> WorkflowRule:
    rule = rule.model_copy(deep=True)
    if existing is None:
        rule.id = rule.id or str(uuid.uuid4())
        rule.created_at = now
        rule.created_by = user_id or rule.created_by
    else:
        rule.created_at = existing.created_at
        rule.created_by = existing.created_by
    rule.updated_at = now
    return rule


def _prepare_actions(rule: WorkflowRule, actions: Iterable[WorkflowAction], now: datetime) -> List[WorkflowAction]:
    """Give drafts real ids and tie every action to the rule."""
    prepared = []
    for action in sorted(actions, key=lambda item: item.action_order):
        action = action.model_copy(deep=True)
        if action.is_draft:
            action.id = str(uuid.uuid4())
            action.created_at = now
        action.created_at = action.created_at or now
        action.updated_at = now
        action.x_workflow_id = rule.id
        action.organization_id = rule.organization_id
        prepared.append(action)
    return prepared


def _stage_metrics_for(definition: WorkflowDefinition, metrics: StageMetrics) -> StageMetrics:
    metrics = metrics.model_copy(deep=True)
    metrics.process_definition_id = definition.id
    metrics.organization_id = definition.organization_id
    metrics.entity_type = definition.qualified_entity
    return metrics


def _persisted_ids(action_ids: Iterable[str]) -> List[str]:
    return [action_id for action_id in action_ids if not action_id.startswith(DRAFT_ID_PREFIX)]


class WorkflowRepository(ABC):
    """
    Abstract persistence boundary. Implementations are responsible for
    durability, conflicts, and connectivity. This layer treats the DB as a
    black box.
    """

    # Workflows ---------------------------------------------------------

    @abstractmethod
    def save_workflow(
        self,
        rule: WorkflowRule,
        actions: List[WorkflowAction],
        user_id: Optional[str] = None,
    ) -> WorkflowRule:
        """
        Insert or update a rule with its action chain and return the saved rule.
        Draft actions are inserted, persisted ones updated, and actions dropped
        from the chain are deleted. The rule's `actions` holds the ordered ids.
        """
        raise NotImplementedError

    @abstractmethod
    def get_workflow(self, workflow_id: str) -> WorkflowRule:
        raise NotImplementedError

    @abstractmethod
    def get_action(self, action_id: str) -> WorkflowAction:
        raise NotImplementedError

    @abstractmethod
    def get_actions(self, workflow_id: str) -> List[WorkflowAction]:
        """The rule's persisted actions ordered by action_order."""
        raise NotImplementedError

    @abstractmethod
    def list_workflows(self, organization_id: str, definition_id: Optional[str] = None) -> List[WorkflowRule]:
        raise NotImplementedError

    @abstractmethod
    def set_active(self, workflow_id: str, is_active: bool) -> WorkflowRule:
        raise NotImplementedError

    @abstractmethod
    def delete_workflow(self, workflow_id: str) -> None:
        raise NotImplementedError

    # Process definitions -----------------------------------------------

    @abstractmethod
    def save_definition(
        self,
        definition: WorkflowDefinition,
        metrics: Optional[StageMetrics] = None,
        user_id: Optional[str] = None,
    ) -> WorkflowDefinition:
        raise NotImplementedError

    @abstractmethod
    def get_definition(self, definition_id: str) -> WorkflowDefinition:
        raise NotImplementedError

    @abstractmethod
    def list_definitions(self, organization_id: str) -> List[WorkflowDefinition]:
        raise NotImplementedError

    @abstractmethod
    def get_stage_metrics(self, definition_id: str) -> Optional[StageMetrics]:
        raise NotImplementedError

    @abstractmethod
    def delete_definition(self, definition_id: str) -> None:
        raise NotImplementedError

    # Execution logs ----------------------------------------------------

    @abstractmethod
    def add_log(self, log: WorkflowLog) -> WorkflowLog:
        raise NotImplementedError

    @abstractmethod
    def list_logs(self, log_filter: LogFilter) -> List[WorkflowLog]:
        """Matching logs, newest first."""
        raise NotImplementedError

    @abstractmethod
    def log_counts(self, workflow_ids: Iterable[str], since: datetime) -> Dict[str, int]:
        """Executions per workflow at or after `since`; every requested id is present."""
        raise NotImplementedError

    # Reference data ----------------------------------------------------

    @abstractmethod
    def save_view_config(self, config: ViewConfig) -> ViewConfig:
        raise NotImplementedError

    @abstractmethod
    def list_view_configs(self) -> List[ViewConfig]:
        raise NotImplementedError

    @abstractmethod
    def save_email_template(self, template: EmailTemplate) -> EmailTemplate:
        raise NotImplementedError

    @abstractmethod
    def list_email_templates(self, organization_id: Optional[str] = None) -> List[EmailTemplate]:
        raise NotImplementedError

    @abstractmethod
    def save_team(self, team: Team) -> Team:
        raise NotImplementedError

    @abstractmethod
    def list_teams(self, organization_id: str) -> List[Team]:
        raise NotImplementedError

    def get_view_config(self, table_name: str) -> ViewConfig:
        config = next((config for config in self.list_view_configs() if config.matches(table_name)), None)
        if config is None:
            raise RecordNotFoundError(f"No view config for table {table_name}")
        return config

    def load_context(self, organization_id: str) -> ValidationContext:
        """Reference data needed to cross-check workflows for one organization."""
        return ValidationContext(
            view_configs=self.list_view_configs(),
            email_templates=self.list_email_templates(organization_id),
            teams=self.list_teams(organization_id),
        )


def _log_matches(log: WorkflowLog, log_filter: LogFilter) -> bool:
    if log.organization_id != log_filter.organization_id:
        return False
    if log_filter.workflow_id and log.workflow_id != log_filter.workflow_id:
        return False
    if log_filter.status != ALL_STATUSES and log.status.value != log_filter.status:
        return False
    executed = as_utc(log.execution_time)
    if log_filter.start is not None and executed < as_utc(log_filter.start):
        return False
    if log_filter.end is not None and executed > as_utc(log_filter.end):
        return False
    return True


def _visible_logs(logs: Iterable[WorkflowLog], log_filter: LogFilter) -> List[WorkflowLog]:
    visible = [log for log in logs if log_filter.include_unknown_actions or log.has_known_action]
    return visible[: log_filter.limit] if log_filter.limit else visible


def _template_visible(template: EmailTemplate, organization_id: Optional[str]) -> bool:
    if not template.is_active:
        return False
    return organization_id is None or template.organization_id in (None, organization_id)


class InMemoryWorkflowRepository(WorkflowRepository):
    """
    Minimal in-memory implementation for local testing. Not intended for prod.
    """

    def __init__(self) -> None:
        self._workflows: Dict[str, WorkflowRule] = {}
        self._actions: Dict[str, WorkflowAction] = {}
        self._definitions: Dict[str, WorkflowDefinition] = {}
        self._metrics: Dict[str, StageMetrics] = {}
        self._logs: List[WorkflowLog] = []
        self._view_configs: Dict[str, ViewConfig] = {}
        self._templates: Dict[str, EmailTemplate] = {}
        self._teams: Dict[str, Team] = {}

    def save_workflow(
        self,
        rule: WorkflowRule,
        actions: List[WorkflowAction],
        user_id: Optional[str] = None,
    ) -> WorkflowRule:
        now = utcnow()
        existing = self._workflows.get(rule.id) if rule.id else None
        saved = _prepare_rule(rule, existing, user_id, now)
        prepared = _prepare_actions(saved, actions, now)
        saved.actions = [action.id for action in prepared]

        if existing is not None:
            for dropped in set(_persisted_ids(existing.actions)) - set(saved.actions):
                self._actions.pop(dropped, None)
        for action in prepared:
            self._actions[action.id] = action
        self._workflows[saved.id] = saved
        logger.info("Saved workflow %s with %d action(s)", saved.id, len(prepared))
        return saved.model_copy(deep=True)

    def get_workflow(self, workflow_id: str) -> WorkflowRule:
        rule = self._workflows.get(workflow_id)
        if rule is None:
            raise RecordNotFoundError(f"Workflow {workflow_id} not found")
        return rule.model_copy(deep=True)

    def get_action(self, action_id: str) -> WorkflowAction:
        action = self._actions.get(action_id)
        if action is None:
            raise RecordNotFoundError(f"Action {action_id} not found")
        return action.model_copy(deep=True)

    def get_actions(self, workflow_id: str) -> List[WorkflowAction]:
        rule = self.get_workflow(workflow_id)
        actions = [self._actions[action_id] for action_id in _persisted_ids(rule.actions) if action_id in self._actions]
        return [action.model_copy(deep=True) for action in sorted(actions, key=lambda item: item.action_order)]

    def list_workflows(self, organization_id: str, definition_id: Optional[str] = None) -> List[WorkflowRule]:
        rules = [
            rule
            for rule in self._workflows.values()
            if rule.organization_id == organization_id
            and (definition_id is None or rule.workflow_definition_id == definition_id)
        ]
        rules.sort(key=lambda rule: rule.created_at, reverse=True)
        return [rule.model_copy(deep=True) for rule in rules]

    def set_active(self, workflow_id: str, is_active: bool) -> WorkflowRule:
        rule = self.get_workflow(workflow_id)
        rule.is_active = is_active
        rule.updated_at = utcnow()
        self._workflows[workflow_id] = rule
        logger.info("Workflow %s is_active=%s", workflow_id, is_active)
        return rule.model_copy(deep=True)

    def delete_workflow(self, workflow_id: str) -> None:
        rule = self.get_workflow(workflow_id)
        for action_id in [key for key, action in self._actions.items() if action.x_workflow_id == workflow_id]:
            del self._actions[action_id]
        del self._workflows[rule.id]
        logger.info("Deleted workflow %s", workflow_id)

    def save_definition(
        self,
        definition: WorkflowDefinition,
        metrics: Optional[StageMetrics] = None,
        user_id: Optional[str] = None,
    ) -> WorkflowDefinition:
        now = utcnow()
        saved = definition.model_copy(deep=True)
        existing = self._definitions.get(saved.id) if saved.id else None
        if existing is None:
            saved.id = saved.id or str(uuid.uuid4())
            saved.created_at = now
            saved.created_by = user_id or saved.created_by
        else:
            saved.created_at = existing.created_at
            saved.created_by = existing.created_by
        saved.updated_at = now
        self._definitions[saved.id] = saved

        if metrics is not None:
            stored = _stage_metrics_for(saved, metrics)
            previous = self._metrics.get(saved.id)
            stored.id = previous.id if previous is not None else (stored.id or str(uuid.uuid4()))
            self._metrics[saved.id] = stored
        logger.info("Saved process definition %s (%s)", saved.id, saved.name)
        return saved.model_copy(deep=True)

    def get_definition(self, definition_id: str) -> WorkflowDefinition:
        definition = self._definitions.get(definition_id)
        if definition is None:
            raise RecordNotFoundError(f"Process definition {definition_id} not found")
        return definition.model_copy(deep=True)

    def list_definitions(self, organization_id: str) -> List[WorkflowDefinition]:
        definitions = [item for item in self._definitions.values() if item.organization_id == organization_id]
        definitions.sort(key=lambda item: item.created_at, reverse=True)
        return [item.model_copy(deep=True) for item in definitions]

    def get_stage_metrics(self, definition_id: str) -> Optional[StageMetrics]:
        metrics = self._metrics.get(definition_id)
        return metrics.model_copy(deep=True) if metrics is not None else None

    def delete_definition(self, definition_id: str) -> None:
        self.get_definition(definition_id)
        del self._definitions[definition_id]
        self._metrics.pop(definition_id, None)
        logger.info("Deleted process definition %s", definition_id)

    def add_log(self, log: WorkflowLog) -> WorkflowLog:
        self._logs.append(log.model_copy(deep=True))
        return log

    def list_logs(self, log_filter: LogFilter) -> List[WorkflowLog]:
        logs = [log for log in self._logs if _log_matches(log, log_filter)]
        logs.sort(key=lambda log: as_utc(log.execution_time), reverse=True)
        logger.debug("Found %d log(s) for organization %s", len(logs), log_filter.organization_id)
        return [log.model_copy(deep=True) for log in _visible_logs(logs, log_filter)]

    def log_counts(self, workflow_ids: Iterable[str], since: datetime) -> Dict[str, int]:
        counts = {workflow_id: 0 for workflow_id in workflow_ids}
        threshold = as_utc(since)
        for log in self._logs:
            if log.workflow_id in counts and as_utc(log.execution_time) >= threshold:
                counts[log.workflow_id] += 1
        return counts

    def save_view_config(self, config: ViewConfig) -> ViewConfig:
        self._view_configs[config.id] = config.model_copy(deep=True)
        return config

    def list_view_configs(self) -> List[ViewConfig]:
        configs = [config for config in self._view_configs.values() if config.is_active]
        return sorted(configs, key=lambda config: config.entity_type)

    def save_email_template(self, template: EmailTemplate) -> EmailTemplate:
        now = utcnow()
        saved = template.model_copy(deep=True)
        previous = self._templates.get(saved.id)
        saved.created_at = previous.created_at if previous is not None else now
        saved.updated_at = now
        self._templates[saved.id] = saved
        logger.info("Saved email template %s", saved.id)
        return saved.model_copy(deep=True)

    def list_email_templates(self, organization_id: Optional[str] = None) -> List[EmailTemplate]:
        templates = [item for item in self._templates.values() if _template_visible(item, organization_id)]
        return [item.model_copy(deep=True) for item in sorted(templates, key=lambda item: item.name)]

    def save_team(self, team: Team) -> Team:
        self._teams[team.id] = team.model_copy(deep=True)
        return team

    def list_teams(self, organization_id: str) -> List[Team]:
        teams = [team for team in self._teams.values() if team.organization_id == organization_id]
        return sorted(teams, key=lambda team: team.name)


class SqlAlchemyWorkflowRepository(WorkflowRepository):
    """Repository backed by the SQLAlchemy tables in db.models."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _require(self, session: Session, table_cls, record_id: str, label: str):
        row = session.get(table_cls, record_id)
        if row is None:
            raise RecordNotFoundError(f"{label} {record_id} not found")
        return row

    def save_workflow(
        self,
        rule: WorkflowRule,
        actions: List[WorkflowAction],
        user_id: Optional[str] = None,
    ) -> WorkflowRule:
        now = utcnow()
        with self._session_factory() as session, session.begin():
            row = session.get(WorkflowModel, rule.id) if rule.id else None
            existing = db_to_pydantic_workflow(row) if row is not None else None
            saved = _prepare_rule(rule, existing, user_id, now)
            prepared = _prepare_actions(saved, actions, now)
            saved.actions = [action.id for action in prepared]

            if existing is not None:
                for dropped in set(_persisted_ids(existing.actions)) - set(saved.actions):
                    dropped_row = session.get(WorkflowActionModel, dropped)
                    if dropped_row is not None:
                        session.delete(dropped_row)
            for action in prepared:
                action_row = session.get(WorkflowActionModel, action.id)
                if action_row is None:
                    session.add(pydantic_to_db_action(action))
                else:
                    pydantic_to_db_action(action, action_row)

            if row is None:
                session.add(pydantic_to_db_workflow(saved))
            else:
                pydantic_to_db_workflow(saved, row)
        logger.info("Saved workflow %s with %d action(s)", saved.id, len(prepared))
        return saved

    def get_workflow(self, workflow_id: str) -> WorkflowRule:
        with self._session_factory() as session:
            return db_to_pydantic_workflow(self._require(session, WorkflowModel, workflow_id, "Workflow"))

    def get_action(self, action_id: str) -> WorkflowAction:
        with self._session_factory() as session:
            return db_to_pydantic_action(self._require(session, WorkflowActionModel, action_id, "Action"))

    def get_actions(self, workflow_id: str) -> List[WorkflowAction]:
        rule = self.get_workflow(workflow_id)
        action_ids = _persisted_ids(rule.actions)
        if not action_ids:
            return []
        with self._session_factory() as session:
            rows = session.scalars(
                select(WorkflowActionModel)
                .where(WorkflowActionModel.id.in_(action_ids))
                .order_by(WorkflowActionModel.action_order)
            ).all()
            return [db_to_pydantic_action(row) for row in rows]

    def list_workflows(self, organization_id: str, definition_id: Optional[str] = None) -> List[WorkflowRule]:
        stmt = select(WorkflowModel).where(WorkflowModel.organization_id == organization_id)
        if definition_id is not None:
            stmt = stmt.where(WorkflowModel.workflow_definition_id == definition_id)
        with self._session_factory() as session:
            rows = session.scalars(stmt.order_by(WorkflowModel.created_at.desc())).all()
            logger.debug("Found %d workflow(s) for organization %s", len(rows), organization_id)
            return [db_to_pydantic_workflow(row) for row in rows]

    def set_active(self, workflow_id: str, is_active: bool) -> WorkflowRule:
        with self._session_factory() as session, session.begin():
            row = self._require(session, WorkflowModel, workflow_id, "Workflow")
            row.is_active = is_active
            row.updated_at = utcnow()
            rule = db_to_pydantic_workflow(row)
        logger.info("Workflow %s is_active=%s", workflow_id, is_active)
        return rule

    def delete_workflow(self, workflow_id: str) -> None:
        with self._session_factory() as session, session.begin():
            row = self._require(session, WorkflowModel, workflow_id, "Workflow")
            for action_row in session.scalars(
                select(WorkflowActionModel).where(WorkflowActionModel.x_workflow_id == workflow_id)
            ):
                session.delete(action_row)
            session.delete(row)
        logger.info("Deleted workflow %s", workflow_id)

    def save_definition(
        self,
        definition: WorkflowDefinition,
        metrics: Optional[StageMetrics] = None,
        user_id: Optional[str] = None,
    ) -> WorkflowDefinition:
        now = utcnow()
        saved = definition.model_copy(deep=True)
        with self._session_factory() as session, session.begin():
            row = session.get(WorkflowDefinitionModel, saved.id) if saved.id else None
            if row is None:
                saved.id = saved.id or str(uuid.uuid4())
                saved.created_at = now
                saved.created_by = user_id or saved.created_by
            else:
                saved.created_at = as_utc(row.created_at)
                saved.created_by = row.created_by
            saved.updated_at = now
            if row is None:
                session.add(pydantic_to_db_definition(saved))
            else:
                pydantic_to_db_definition(saved, row)

            if metrics is not None:
                stored = _stage_metrics_for(saved, metrics)
                metrics_row = session.scalars(
                    select(StageMetricsModel).where(StageMetricsModel.process_definition_id == saved.id)
                ).first()
                if metrics_row is None:
                    stored.id = stored.id or str(uuid.uuid4())
                    session.add(pydantic_to_db_stage_metrics(stored))
                else:
                    stored.id = metrics_row.id
                    pydantic_to_db_stage_metrics(stored, metrics_row)
                    metrics_row.updated_at = now
        logger.info("Saved process definition %s (%s)", saved.id, saved.name)
        return saved

    def get_definition(self, definition_id: str) -> WorkflowDefinition:
        with self._session_factory() as session:
            row = self._require(session, WorkflowDefinitionModel, definition_id, "Process definition")
            return db_to_pydantic_definition(row)

    def list_definitions(self, organization_id: str) -> List[WorkflowDefinition]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(WorkflowDefinitionModel)
                .where(WorkflowDefinitionModel.organization_id == organization_id)
                .order_by(WorkflowDefinitionModel.created_at.desc())
            ).all()
            return [db_to_pydantic_definition(row) for row in rows]

    def get_stage_metrics(self, definition_id: str) -> Optional[StageMetrics]:
        with self._session_factory() as session:
            row = session.scalars(
                select(StageMetricsModel).where(StageMetricsModel.process_definition_id == definition_id)
            ).first()
            return db_to_pydantic_stage_metrics(row) if row is not None else None

    def delete_definition(self, definition_id: str) -> None:
        with self._session_factory() as session, session.begin():
            row = self._require(session, WorkflowDefinitionModel, definition_id, "Process definition")
            for metrics_row in session.scalars(
                select(StageMetricsModel).where(StageMetricsModel.process_definition_id == definition_id)
            ):
                session.delete(metrics_row)
            session.delete(row)
        logger.info("Deleted process definition %s", definition_id)

    def add_log(self, log: WorkflowLog) -> WorkflowLog:
        with self._session_factory() as session, session.begin():
            session.add(pydantic_to_db_log(log))
        return log

    def list_logs(self, log_filter: LogFilter) -> List[WorkflowLog]:
        stmt = select(WorkflowLogModel).where(WorkflowLogModel.organization_id == log_filter.organization_id)
        if log_filter.workflow_id:
            stmt = stmt.where(WorkflowLogModel.workflow_id == log_filter.workflow_id)
        if log_filter.status != ALL_STATUSES:
            stmt = stmt.where(WorkflowLogModel.status == log_filter.status)
        if log_filter.start is not None:
            stmt = stmt.where(WorkflowLogModel.execution_time >= as_utc(log_filter.start))
        if log_filter.end is not None:
            stmt = stmt.where(WorkflowLogModel.execution_time <= as_utc(log_filter.end))
        with self._session_factory() as session:
            rows = session.scalars(stmt.order_by(WorkflowLogModel.execution_time.desc())).all()
            logger.debug("Found %d log(s) for organization %s", len(rows), log_filter.organization_id)
            logs = [db_to_pydantic_log(row) for row in rows]
        return _visible_logs(logs, log_filter)

    def log_counts(self, workflow_ids: Iterable[str], since: datetime) -> Dict[str, int]:
        counts = {workflow_id: 0 for workflow_id in workflow_ids}
        if not counts:
            return counts
        stmt = (
            select(WorkflowLogModel.workflow_id, func.count())
            .where(WorkflowLogModel.workflow_id.in_(list(counts)))
            .where(WorkflowLogModel.execution_time >= as_utc(since))
            .group_by(WorkflowLogModel.workflow_id)
        )
        with self._session_factory() as session:
            rows: List[Tuple[str, int]] = session.execute(stmt).all()
        for workflow_id, count in rows:
            counts[workflow_id] = count
        return counts

    def save_view_config(self, config: ViewConfig) -> ViewConfig:
        with self._session_factory() as session, session.begin():
            row = session.get(ViewConfigModel, config.id)
            if row is None:
                session.add(pydantic_to_db_view_config(config))
            else:
                pydantic_to_db_view_config(config, row)
        return config

    def list_view_configs(self) -> List[ViewConfig]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(ViewConfigModel).where(ViewConfigModel.is_active.is_(True)).order_by(ViewConfigModel.entity_type)
            ).all()
            return [db_to_pydantic_view_config(row) for row in rows]

    def save_email_template(self, template: EmailTemplate) -> EmailTemplate:
        now = utcnow()
        saved = template.model_copy(deep=True)
        with self._session_factory() as session, session.begin():
            row = session.get(EmailTemplateModel, saved.id)
            saved.created_at = as_utc(row.created_at) if row is not None else now
            saved.updated_at = now
            if row is None:
                session.add(pydantic_to_db_email_template(saved))
            else:
                pydantic_to_db_email_template(saved, row)
        logger.info("Saved email template %s", saved.id)
        return saved

    def list_email_templates(self, organization_id: Optional[str] = None) -> List[EmailTemplate]:
        stmt = select(EmailTemplateModel).where(EmailTemplateModel.is_active.is_(True))
        if organization_id is not None:
            stmt = stmt.where(
                (EmailTemplateModel.organization_id == organization_id) | EmailTemplateModel.organization_id.is_(None)
            )
        with self._session_factory() as session:
            rows = session.scalars(stmt.order_by(EmailTemplateModel.name)).all()
            return [db_to_pydantic_email_template(row) for row in rows]

    def save_team(self, team: Team) -> Team:
        with self._session_factory() as session, session.begin():
            row = session.get(TeamModel, team.id)
            if row is None:
                session.add(pydantic_to_db_team(team))
            else:
                pydantic_to_db_team(team, row)
        return team

    def list_teams(self, organization_id: str) -> List[Team]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(TeamModel).where(TeamModel.organization_id == organization_id).order_by(TeamModel.name)
            ).all()
            return [db_to_pydantic_team(row) for row in rows]
