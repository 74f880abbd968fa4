from typing import Any, Dict, Optional

from openai import OpenAI

from config import get_settings
from models import ValidationContext
from registry import Registry


class OpenAIWorkflowLLM:
    """
    Thin wrapper around OpenAI chat completion to turn natural language into the
    stringified JSON document (rule columns plus inline actions) expected by the
    workflow validation pipeline.
    """

    def __init__(self, model: Optional[str] = None, client: Optional[Any] = None) -> None:
        settings = get_settings()
        if client is None:
            # OpenAI() will also read OPENAI_API_KEY, but prefer our own settings when present.
            client = OpenAI(api_key=settings.openai_api_key) if settings.openai_api_key else OpenAI()
        self.client = client
        self.model = model or settings.openai_model

    def _build_prompt(
        self,
        user_input: str,
        registries: Dict[str, Registry],
        context: Optional[ValidationContext] = None,
    ) -> str:
        def format_registry(name: str, registry: Registry) -> str:
            lines = [f"{name} options:"]
            for item in registry.all():
                lines.append(f"- {item.type}: {item.description}")
            return "\n".join(lines)

        trigger_block = format_registry("Triggers", registries["trigger"])
        condition_block = format_registry("Condition operators", registries["condition"])
        action_block = format_registry("Actions", registries["action"])

        table_block = ""
        if context is not None and context.view_configs:
            lines = ["Tables and their columns:"]
            for config in context.view_configs:
                columns = ", ".join(f"{column.key} ({column.type})" for column in config.metadata)
                lines.append(f"- {config.entity_schema or 'public'}.{config.entity_type}: {columns}")
            if context.email_templates:
                lines.append("Email templates:")
                lines.extend(f"- {template.id}: {template.name}" for template in context.email_templates)
            if context.teams:
                lines.append("Teams:")
                lines.extend(f"- {team.id}: {team.name}" for team in context.teams)
            table_block = "\n".join(lines) + "\n\n"

        instructions = (
            "You are a system that maps natural language requests to a workflow rule JSON.\n"
            "Pick exactly one trigger type, the table it watches, zero or more conditions and one or more actions.\n"
            "Return ONLY valid JSON (no markdown) with fields: name, description, trigger_table, trigger_type, "
            "cron_config, conditions, actions.\n"
            "cron_config is a five-field cron expression and is only set when trigger_type is cron.\n"
            "conditions is a flat list; every condition after the first carries logicalOperator AND or OR, "
            "and AND binds tighter than OR.\n"
            "Each action has action_type, name and a configuration object matching that action kind.\n"
            "Text values may use {{new.<column>}}, {{old.<column>}}, {{user.name}} and {{organization.name}} placeholders.\n"
            "If unsure, pick the closest match but stay consistent with the registry types."
        )

        schema_hint = (
            '{\n'
            '  "name": "<string>",\n'
            '  "trigger_table": "<schema.table>",\n'
            '  "trigger_type": "<trigger_type>",\n'
            '  "cron_config": null,\n'
            '  "conditions": [{"field": "<column>", "operator": "<operator>", "value": "<value>"}, '
            '{"field": "<column>", "operator": "<operator>", "value": "<value>", "logicalOperator": "AND"}],\n'
            '  "actions": [{"action_type": "<action_type>", "name": "<string>", "configuration": {...}}]\n'
            '}'
        )

        return (
            f"{instructions}\n\n"
            f"{trigger_block}\n\n{condition_block}\n\n{action_block}\n\n"
            f"{table_block}"
            f"Natural language request:\n{user_input}\n\n"
            f"Respond with JSON shaped like:\n{schema_hint}"
        )

    def generate_workflow_json(
        self,
        user_input: str,
        registries: Dict[str, Registry],
        context: Optional[ValidationContext] = None,
    ) -> str:
        prompt = self._build_prompt(user_input, registries, context)
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.2,
        )
        return response.choices[0].message.content.strip()
