"""
Rendering of record placeholders such as `{{new.subject}}` or `{{old.status}}`
used in email templates and action configurations.
"""

from typing import Any, Dict, List, Optional

from jinja2 import ChainableUndefined, Environment, StrictUndefined, TemplateSyntaxError, UndefinedError, nodes

PLACEHOLDER_ROOTS = ("new", "old", "user", "organization")


class TemplateRenderError(ValueError):
    """Raised when a template cannot be parsed or references missing values."""


class TemplateRenderer:
    """
    Renders placeholder templates against a sample record.

    Uses Jinja2 with no autoescaping. In strict mode a placeholder that
    resolves to nothing raises TemplateRenderError; otherwise it renders empty.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self._env = Environment(
            autoescape=False,
            undefined=StrictUndefined if strict else ChainableUndefined,
            keep_trailing_newline=True,
        )

    def render(
        self,
        text: str,
        new: Optional[Dict[str, Any]] = None,
        old: Optional[Dict[str, Any]] = None,
        user: Optional[Dict[str, Any]] = None,
        organization: Optional[Dict[str, Any]] = None,
    ) -> str:
        if not text:
            return ""
        variables = {
            "new": new or {},
            "old": old or {},
            "user": user or {},
            "organization": organization or {},
        }
        try:
            return self._env.from_string(text).render(**variables)
        except UndefinedError as e:
            raise TemplateRenderError(f"Missing value for placeholder in {text!r}: {e}") from e
        except TemplateSyntaxError as e:
            raise TemplateRenderError(f"Invalid template syntax in {text!r}: {e}") from e

    def render_value(self, value: Any, **context: Any) -> Any:
        """Render strings, recursing into lists and dicts; other values pass through."""
        if isinstance(value, str):
            return self.render(value, **context) if "{{" in value else value
        if isinstance(value, list):
            return [self.render_value(item, **context) for item in value]
        if isinstance(value, dict):
            return {key: self.render_value(item, **context) for key, item in value.items()}
        return value

    def placeholders(self, text: str) -> List[str]:
        """
        Dotted paths referenced by the template, e.g. `new.receivers.emails`.
        Bare names (`{{ new }}`) are reported as the name alone.
        """
        if not text or "{{" not in text:
            return []
        try:
            ast = self._env.parse(text)
        except TemplateSyntaxError as e:
            raise TemplateRenderError(f"Invalid template syntax in {text!r}: {e}") from e

        paths: List[str] = []
        inner: set = set()
        for node in ast.find_all(nodes.Getattr):
            if isinstance(node.node, nodes.Getattr):
                inner.add(id(node.node))
        for node in ast.find_all(nodes.Getattr):
            if id(node) in inner:
                continue
            path = _attribute_path(node)
            if path and path not in paths:
                paths.append(path)
        for node in ast.find_all(nodes.Name):
            covered = any(path.split(".")[0] == node.name for path in paths)
            if node.ctx == "load" and not covered and node.name not in paths:
                paths.append(node.name)
        return paths


def _attribute_path(node: nodes.Getattr) -> Optional[str]:
    parts = [node.attr]
    current = node.node
    while isinstance(current, nodes.Getattr):
        parts.append(current.attr)
        current = current.node
    if not isinstance(current, nodes.Name):
        return None
    parts.append(current.name)
    return ".".join(reversed(parts))
