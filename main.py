import argparse
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config import configure_logging, get_settings
from db import LogFilter, SqlAlchemyWorkflowRepository, WorkflowRepository, create_db_engine, create_session_factory, init_db
from db.models import utcnow
from llm import LlmWorkflowParser, OpenAIWorkflowLLM, draft_workflow
from models import ValidationContext, WorkflowAction, WorkflowRule
from preview import TriggerEvent, WorkflowPreview, describe_trigger, next_run_times, preview_workflow
from registry import create_default_registries
from validations import WorkflowValidationError, parse_and_validate_workflow

logger = logging.getLogger(__name__)


def build_repository(database_url: Optional[str] = None) -> WorkflowRepository:
    engine = create_db_engine(database_url)
    init_db(engine)
    return SqlAlchemyWorkflowRepository(create_session_factory(engine))


def load_context(repository: WorkflowRepository, organization_id: str) -> Optional[ValidationContext]:
    """Reference data for cross-checks, or None when the backend holds no table metadata."""
    context = repository.load_context(organization_id)
    if not context.view_configs:
        logger.warning("No table metadata available; skipping cross-reference checks")
        return None
    return context


def parse_document(
    document: str,
    organization_id: str,
    context: Optional[ValidationContext] = None,
    repository: Optional[WorkflowRepository] = None,
):
    """
    Parse a workflow document (rule columns plus saved action ids and/or inline
    actions) and run every check. The organization from settings fills in when
    the document has none; saved action ids are looked up in the repository.
    """
    payload = LlmWorkflowParser().parse(document)
    payload.setdefault("organization_id", organization_id)
    resolve_action = repository.get_action if repository is not None else None
    return parse_and_validate_workflow(payload, create_default_registries(), context, resolve_action)


def orchestrate_user_input(document: str, repository: WorkflowRepository, user_id: Optional[str] = None) -> WorkflowRule:
    """
    Orchestrate the ingestion of a workflow document:
    1. Parse stringified JSON.
    2. Validate against the schema, registries and backend reference data.
    3. Save the rule and its actions.

    Returns the saved rule.
    """
    settings = get_settings()
    context = load_context(repository, settings.organization_id)
    rule, actions = parse_document(document, settings.organization_id, context, repository)
    return repository.save_workflow(rule, actions, user_id or settings.user_id)


def orchestrate_natural_language(
    user_input: str,
    repository: WorkflowRepository,
    llm: Optional[OpenAIWorkflowLLM] = None,
    save: bool = False,
):
    """
    Full pipeline starting from natural language:
    1. Send NL to OpenAI with registry and table context to get stringified JSON.
    2. Parse and validate the JSON output.
    3. Save when asked to.

    Returns the saved rule, or the unsaved draft.
    """
    settings = get_settings()
    context = load_context(repository, settings.organization_id)
    draft = draft_workflow(user_input, settings.organization_id, llm=llm, context=context)
    if save:
        return repository.save_workflow(draft.rule, draft.actions, settings.user_id)
    return draft


def orchestrate_preview(
    document: str,
    repository: WorkflowRepository,
    new: Dict[str, Any],
    old: Optional[Dict[str, Any]] = None,
    event: TriggerEvent = TriggerEvent.INSERT,
) -> Tuple[WorkflowRule, WorkflowPreview]:
    settings = get_settings()
    context = load_context(repository, settings.organization_id)
    rule, actions = parse_document(document, settings.organization_id, context, repository)
    return rule, preview_workflow(
        rule,
        actions,
        new,
        old=old,
        event=event,
        context=context,
        user={"name": settings.user_id or ""},
    )


def _read_document(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _json_argument(value: Optional[str]) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    text = value if value.lstrip().startswith("{") else Path(value).read_text(encoding="utf-8")
    record = json.loads(text)
    if not isinstance(record, dict):
        raise ValueError("Sample records must be JSON objects")
    return record


def _print_draft(rule: WorkflowRule, actions: List[WorkflowAction]) -> None:
    document = rule.model_dump(mode="json", exclude_none=True)
    document["conditions"] = rule.conditions_payload()
    document["actions"] = [
        {"action_type": action.action_type, "name": action.name, "configuration": action.configuration_dict()}
        for action in actions
    ]
    print(json.dumps(document, indent=2))


def _print_preview(rule_label: str, preview: WorkflowPreview) -> None:
    print(f"Trigger: {rule_label} (fires: {'yes' if preview.trigger_fires else 'no'})")
    if preview.changes:
        print(f"Changed fields: {', '.join(preview.changes)}")
    if preview.trace is None:
        print("Conditions: SQL predicate, evaluated by the backend")
    else:
        print(f"Conditions: {'passed' if preview.trace.passed else 'failed'}")
        for result in preview.trace.results:
            mark = "x" if result.passed else " "
            print(f"  [{mark}] {result.field} {result.operator} {result.expected!r} (actual: {result.actual!r})")
    print("Actions:")
    for action in preview.actions:
        print(f"  {action.order}. {action.name} [{action.label}]")
        if action.email is not None:
            print(f"     to: {action.email.to}")
            if action.email.cc_team:
                print(f"     cc: {action.email.cc_team}")
            if action.email.subject is not None:
                print(f"     subject: {action.email.subject}")
    for name in preview.skipped_actions:
        print(f"  - {name} (disabled)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="workflow-console", description="Author, check and inspect workflow rules")
    parser.add_argument("--database-url", help="Override WORKFLOW_DATABASE_URL")
    parser.add_argument("--log-level", help="Override WORKFLOW_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Check a workflow document")
    validate.add_argument("file", help="Path to a JSON document, or - for stdin")

    preview = subparsers.add_parser("preview", help="Dry-run a workflow document against a sample record")
    preview.add_argument("file")
    preview.add_argument("--record", required=True, help="New record as JSON, or a path to a JSON file")
    preview.add_argument("--old", help="Previous record for update events")
    preview.add_argument("--event", choices=[event.value for event in TriggerEvent], default=TriggerEvent.INSERT.value)

    save = subparsers.add_parser("save", help="Validate and save a workflow document")
    save.add_argument("file")

    draft = subparsers.add_parser("draft", help="Draft a workflow from natural language")
    draft.add_argument("text", nargs="+")
    draft.add_argument("--save", action="store_true", help="Save the draft after validation")

    logs = subparsers.add_parser("logs", help="Show recent execution logs")
    logs.add_argument("--workflow", help="Only logs for this workflow id")
    logs.add_argument("--status", default="all", help="success, failed, pending, running or all")
    logs.add_argument("--days", type=int, default=None, help="Look back this many days")
    logs.add_argument("--limit", type=int, default=50)

    cron = subparsers.add_parser("cron", help="Show upcoming runs of a cron expression")
    cron.add_argument("expression")
    cron.add_argument("--count", type=int, default=5)

    return parser


def run(args: argparse.Namespace, repository: WorkflowRepository) -> int:
    settings = get_settings()

    if args.command == "validate":
        context = load_context(repository, settings.organization_id)
        rule, actions = parse_document(_read_document(args.file), settings.organization_id, context, repository)
        print(f"OK: {rule.name} ({describe_trigger(rule)}, {len(actions)} action(s))")
    elif args.command == "preview":
        rule, preview = orchestrate_preview(
            _read_document(args.file),
            repository,
            _json_argument(args.record),
            old=_json_argument(args.old),
            event=TriggerEvent(args.event),
        )
        _print_preview(describe_trigger(rule), preview)
    elif args.command == "save":
        rule = orchestrate_user_input(_read_document(args.file), repository)
        print(f"Workflow saved with id: {rule.id}")
    elif args.command == "draft":
        result = orchestrate_natural_language(" ".join(args.text), repository, save=args.save)
        if isinstance(result, WorkflowRule):
            print(f"Workflow saved with id: {result.id}")
        else:
            _print_draft(result.rule, result.actions)
    elif args.command == "logs":
        days = args.days or settings.log_window_days
        log_filter = LogFilter(
            organization_id=settings.organization_id,
            workflow_id=args.workflow,
            status=args.status,
            start=utcnow() - timedelta(days=days),
            limit=args.limit,
        )
        for log in repository.list_logs(log_filter):
            print(
                f"{log.execution_time.isoformat()} {log.status.value:<8} {log.workflow_id} "
                f"{log.action_label} {log.formatted_duration()}"
                + (f" {log.error_message}" if log.error_message else "")
            )
    elif args.command == "cron":
        for fire_time in next_run_times(args.expression, count=args.count):
            print(fire_time.isoformat())
    return 0


def main(argv: Optional[Sequence[str]] = None, repository: Optional[WorkflowRepository] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        if repository is None:
            repository = build_repository(args.database_url)
        return run(args, repository)
    except WorkflowValidationError as exc:
        print("error: workflow is invalid", file=sys.stderr)
        for issue in exc.issues:
            print(f"  {issue}", file=sys.stderr)
        return 1
    except (ValueError, LookupError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
