import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from config import get_settings
from db import InMemoryWorkflowRepository, SqlAlchemyWorkflowRepository, create_session_factory, init_db
from models import EmailTemplate, EmailTemplateDetails, TableMetadata, Team, ValidationContext, ViewConfig
from registry import create_default_registries

ORG_ID = "org-1"


@pytest.fixture
def registries():
    return create_default_registries()


@pytest.fixture
def leads_table() -> ViewConfig:
    return ViewConfig(
        id="vc-leads",
        entity_type="leads",
        entity_schema="public",
        metadata=[
            TableMetadata(key="id", type="uuid"),
            TableMetadata(key="status", type="text"),
            TableMetadata(key="email", type="text"),
            TableMetadata(key="name", type="text"),
            TableMetadata(key="amount", type="numeric"),
            TableMetadata(key="created_at", type="timestamp with time zone"),
            TableMetadata(key="owner_id", type="uuid"),
            TableMetadata(key="tags", type="text[]"),
        ],
    )


@pytest.fixture
def tasks_table() -> ViewConfig:
    return ViewConfig(
        id="vc-tasks",
        entity_type="tasks",
        entity_schema="crm",
        metadata=[TableMetadata(key="title", type="text"), TableMetadata(key="lead_id", type="uuid")],
    )


@pytest.fixture
def welcome_template() -> EmailTemplate:
    return EmailTemplate(
        id="tpl-welcome",
        name="Welcome",
        organization_id=ORG_ID,
        details=EmailTemplateDetails(subject="Hello {{new.name}}", body="Status is {{new.status}}"),
    )


@pytest.fixture
def sales_team() -> Team:
    return Team(id="team-sales", organization_id=ORG_ID, name="Sales")


@pytest.fixture
def context(leads_table, tasks_table, welcome_template, sales_team) -> ValidationContext:
    return ValidationContext(
        view_configs=[leads_table, tasks_table],
        email_templates=[welcome_template],
        teams=[sales_team],
    )


@pytest.fixture
def workflow_payload() -> dict:
    return {
        "organization_id": ORG_ID,
        "name": "Welcome new leads",
        "trigger_table": "public.leads",
        "trigger_type": "on_create",
        "conditions": [
            {"field": "status", "operator": "equals", "value": "new"},
            {"field": "amount", "operator": "greater_than", "value": "100", "logicalOperator": "AND"},
        ],
        "actions": [
            {
                "action_type": "send_email",
                "name": "Send welcome",
                "configuration": {"to": "{{new.email}}", "templateId": "tpl-welcome", "ccTeamId": "team-sales"},
            },
            {
                "action_type": "add_tags",
                "name": "Tag lead",
                "configuration": {"tags": ["welcomed"]},
            },
        ],
    }


@pytest.fixture
def memory_repository() -> InMemoryWorkflowRepository:
    return InMemoryWorkflowRepository()


@pytest.fixture
def sql_repository() -> SqlAlchemyWorkflowRepository:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return SqlAlchemyWorkflowRepository(create_session_factory(engine))


@pytest.fixture(params=["memory", "sql"])
def repository(request):
    return request.getfixturevalue(f"{request.param}_repository")


@pytest.fixture
def console_settings(monkeypatch):
    monkeypatch.setenv("WORKFLOW_ORGANIZATION_ID", ORG_ID)
    monkeypatch.setenv("WORKFLOW_USER_ID", "user-1")
    monkeypatch.setenv("WORKFLOW_DATABASE_URL", "sqlite+pysqlite:///:memory:")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()
