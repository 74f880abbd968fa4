import json
from types import SimpleNamespace

import pytest

from llm import LlmWorkflowParser, OpenAIWorkflowLLM, draft_from_text, draft_workflow
from validations import UnknownRegistryTypeError

DOCUMENT = {
    "name": "Tag big deals",
    "trigger_table": "public.leads",
    "trigger_type": "on_create",
    "conditions": [{"field": "amount", "operator": "greater_than", "value": "1000"}],
    "actions": [{"action_type": "add_tags", "name": "Tag", "configuration": {"tags": ["big"]}}],
}


class _FakeCompletions:
    def __init__(self, content: str):
        self.content = content
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _fake_client(content: str):
    return SimpleNamespace(chat=SimpleNamespace(completions=_FakeCompletions(content)))


def test_parser_strips_code_fences():
    text = "```json\n" + json.dumps(DOCUMENT) + "\n```"

    assert LlmWorkflowParser().parse(text)["name"] == "Tag big deals"


def test_parser_rejects_non_objects():
    with pytest.raises(ValueError):
        LlmWorkflowParser().parse("[1, 2]")
    with pytest.raises(json.JSONDecodeError):
        LlmWorkflowParser().parse("not json")


def test_prompt_lists_registries_and_tables(registries, context):
    llm = OpenAIWorkflowLLM(model="test-model", client=_fake_client("{}"))

    prompt = llm._build_prompt("tag big leads", registries, context)

    assert "- send_email: Send an email notification" in prompt
    assert "- greater_than:" in prompt
    assert "public.leads: id (uuid), status (text)" in prompt
    assert "- tpl-welcome: Welcome" in prompt
    assert prompt.rstrip().endswith("}")


def test_generate_uses_configured_model(registries):
    client = _fake_client("  " + json.dumps(DOCUMENT) + "  ")
    llm = OpenAIWorkflowLLM(model="test-model", client=client)

    text = llm.generate_workflow_json("tag big leads", registries)

    assert json.loads(text)["name"] == "Tag big deals"
    assert client.chat.completions.calls[0]["model"] == "test-model"


def test_draft_workflow_validates_without_saving(registries, context):
    llm = OpenAIWorkflowLLM(model="test-model", client=_fake_client(json.dumps(DOCUMENT)))

    draft = draft_workflow("tag big leads", "org-1", llm=llm, registries=registries, context=context)

    assert draft.rule.organization_id == "org-1"
    assert draft.rule.id is None
    assert [action.action_type for action in draft.actions] == ["add_tags"]
    assert draft.actions[0].is_draft


def test_draft_rejects_unknown_types(registries):
    document = {**DOCUMENT, "trigger_type": "on_delete"}

    with pytest.raises(UnknownRegistryTypeError):
        draft_from_text(json.dumps(document), "org-1", registries)
