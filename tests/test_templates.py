from datetime import date, datetime

import pytest
from markupsafe import Markup

from tessera.errors import MissingVariableError, TemplateError
from tessera.protocols import TemplateRenderer
from tessera.renderers import MarkdownRenderer
from tessera.templates import DEFAULT_TEMPLATE, TemplateEngine


def test_engine_satisfies_renderer_protocol():
    assert isinstance(TemplateEngine(), TemplateRenderer)


def test_undefined_variable_is_an_error():
    engine = TemplateEngine()
    with pytest.raises(MissingVariableError) as exc:
        engine.render_string("Hello {{ missing }}", {})
    assert exc.value.kind == "undefined"
    assert isinstance(exc.value, TemplateError)


def test_error_kinds(tmp_path):
    engine = TemplateEngine(tmp_path)
    with pytest.raises(TemplateError) as exc:
        engine.render_string("{% for %}", {})
    assert exc.value.kind == "syntax"

    with pytest.raises(TemplateError) as exc:
        engine.render("nope.html", {})
    assert exc.value.kind == "loader"
    assert exc.value.template_name == "nope.html"

    with pytest.raises(TemplateError) as exc:
        engine.render_string("{{ 'soon' | date }}", {})
    assert exc.value.kind == "runtime"


def test_user_templates_override_builtin_layouts(tmp_path):
    (tmp_path / DEFAULT_TEMPLATE).write_text(
        "USER {{ current_page.meta.title }}", encoding="utf-8"
    )
    engine = TemplateEngine(tmp_path)
    rendered = engine.render(DEFAULT_TEMPLATE, {"current_page": {"meta": {"title": "Hi"}}})
    assert rendered == "USER Hi"


def test_missing_template_dir_falls_back_to_builtin(tmp_path):
    engine = TemplateEngine(tmp_path / "absent")
    rendered = engine.render("_content.html", {"current_page": {"content": "*hi*"}})
    assert "<em>hi</em>" in rendered


def test_autoescape_and_markdown_filter():
    engine = TemplateEngine()
    assert engine.render_string("{{ x }}", {"x": "<b>"}) == "&lt;b&gt;"
    html = engine.render_string("{{ text | markdown }}", {"text": "# Title\n\nSome **bold**"})
    assert '<h1 id="title">Title</h1>' in html
    assert "<strong>bold</strong>" in html


def test_date_and_regex_filters():
    engine = TemplateEngine()
    stamp = datetime(2024, 1, 15, 12, 30).timestamp()
    assert engine.render_string("{{ d | date }}", {"d": stamp}) == "2024-01-15"
    assert engine.render_string("{{ d | date('%d/%m') }}", {"d": date(2024, 3, 9)}) == "09/03"
    assert (
        engine.render_string("{{ s | regex_replace('[0-9]+', '#') }}", {"s": "a1b22"})
        == "a#b#"
    )


def test_markdown_renderer_headings_and_code():
    renderer = MarkdownRenderer()
    html = renderer.render("# Intro\n\n## Intro\n\n```python\nprint('hi')\n```\n")
    assert '<h1 id="intro">' in html
    assert '<h2 id="intro-1">' in html
    assert 'class="highlight"' in html

    plain = renderer.render("```nosuchlang\na < b\n```\n")
    assert '<code class="language-nosuchlang">a &lt; b' in plain


def test_pygments_css_global():
    engine = TemplateEngine()
    css = engine.render_string("{{ pygments_css() }}", {})
    assert ".highlight" in css
    assert isinstance(engine.env.filters["markdown"]("x"), Markup)
