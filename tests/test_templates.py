import pytest

from preview import TemplateRenderer, TemplateRenderError


def test_render_fills_record_placeholders():
    renderer = TemplateRenderer()

    text = renderer.render(
        "Hi {{new.name}}, status moved from {{old.status}} to {{new.status}} ({{organization.name}})",
        new={"name": "Jane", "status": "won"},
        old={"status": "open"},
        organization={"name": "Acme"},
    )

    assert text == "Hi Jane, status moved from open to won (Acme)"


def test_missing_values_render_empty_unless_strict():
    assert TemplateRenderer().render("[{{new.owner.name}}]", new={}) == "[]"

    with pytest.raises(TemplateRenderError):
        TemplateRenderer(strict=True).render("[{{new.owner}}]", new={})


def test_no_html_escaping():
    assert TemplateRenderer().render("{{new.note}}", new={"note": "<b>&</b>"}) == "<b>&</b>"


def test_syntax_errors_are_wrapped():
    with pytest.raises(TemplateRenderError):
        TemplateRenderer().render("{{new.name", new={})


def test_render_value_recurses_into_containers():
    rendered = TemplateRenderer().render_value(
        {"title": "Call {{new.name}}", "tags": ["{{new.status}}", 3], "fixed": "plain"},
        new={"name": "Jane", "status": "hot"},
    )

    assert rendered == {"title": "Call Jane", "tags": ["hot", 3], "fixed": "plain"}


def test_placeholders_lists_dotted_paths():
    renderer = TemplateRenderer()

    paths = renderer.placeholders("{{new.receivers.emails}} {{ old.status }} {{user.name}} {{new.receivers.emails}}")

    assert paths == ["new.receivers.emails", "old.status", "user.name"]


def test_placeholders_reports_bare_names():
    assert TemplateRenderer().placeholders("Hello {{ record }}") == ["record"]
    assert TemplateRenderer().placeholders("no placeholders") == []
