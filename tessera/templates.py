"""Template rendering engine for Tessera.

This module uses Jinja2 to render page templates and template directives
embedded in Markdown bodies. Undefined variables are errors, never silent
blanks.

Key class:
- TemplateEngine: Loads templates from the user's template directory, then
  the built-in layouts, and renders them with a context mapping.

Filters available in every template:
- markdown: Convert Markdown text to HTML.
- date: Format a timestamp (or datetime) with strftime.
- regex_replace: Substitute a regular expression in a string.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any

import jinja2
from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
    select_autoescape,
)
from markupsafe import Markup

from .errors import MissingVariableError, TemplateError
from .renderers import MarkdownRenderer

__all__ = ["BUILTIN_TEMPLATE_DIR", "CONTENT_TEMPLATE", "DEFAULT_TEMPLATE", "TemplateEngine"]

BUILTIN_TEMPLATE_DIR = Path(__file__).parent / "layouts"
DEFAULT_TEMPLATE = "default.html"
CONTENT_TEMPLATE = "_content.html"


def _format_date(value: Any, fmt: str = "%Y-%m-%d") -> str:
    """Format a timestamp, date or datetime.

    Args:
        value: Unix timestamp, ``date`` or ``datetime``.
        fmt: strftime format string.

    Returns:
        Formatted date string.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = datetime.fromtimestamp(value)
    if isinstance(value, (date, datetime)):
        return value.strftime(fmt)
    raise TypeError(f"date filter expects a timestamp or date, got {type(value).__name__}")


def _regex_replace(value: str, pattern: str, replacement: str) -> str:
    return re.sub(pattern, replacement, str(value))


def _runtime_error(exc: Exception, name: str | None) -> TemplateError:
    """Wrap a Python error raised while a template was rendering."""
    return TemplateError(
        f"{type(exc).__name__}: {exc}",
        kind="runtime",
        template_name=name,
        original_error=exc,
    )


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        template_dir: Directory with user templates, searched first.
        env: Jinja2 environment.
        markdown_renderer: Renderer behind the ``markdown`` filter.
    """

    def __init__(
        self,
        template_dir: Path | None = None,
        markdown_renderer: MarkdownRenderer | None = None,
    ):
        """Initialize the template engine.

        Args:
            template_dir: Optional directory with user templates. Missing
                directories are skipped; built-in layouts are always
                available.
            markdown_renderer: Optional custom Markdown renderer.
        """
        self.template_dir = template_dir
        search_path = [BUILTIN_TEMPLATE_DIR]
        if template_dir is not None and template_dir.is_dir():
            search_path.insert(0, template_dir)
        self.env = Environment(
            loader=FileSystemLoader(search_path),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
        )
        self.markdown_renderer = markdown_renderer or MarkdownRenderer()
        self._install_filters()

    def _install_filters(self) -> None:
        """Install filters and globals in the Jinja environment."""
        self.env.filters["markdown"] = self._markdown
        self.env.filters["date"] = _format_date
        self.env.filters["regex_replace"] = _regex_replace
        self.env.globals["pygments_css"] = self._pygments_css

    def _markdown(self, text: str) -> Markup:
        """Convert Markdown text to safe HTML markup."""
        return Markup(self.markdown_renderer.render(str(text)))

    def _pygments_css(self, style: str = "default") -> Markup:
        return Markup(self.markdown_renderer.pygments_css(style))

    def render(self, name: str, context: dict[str, Any]) -> str:
        """Render a named template.

        Args:
            name: Template name, looked up in the user then built-in dirs.
            context: Variables available to the template.

        Returns:
            Rendered string.

        Raises:
            TemplateError: If the template cannot be loaded or rendered.
            MissingVariableError: If the template uses an undefined variable.
        """
        try:
            template = self.env.get_template(name)
            return template.render(**context)
        except jinja2.TemplateError as exc:
            raise self._translate(exc, name) from exc
        except (TypeError, ValueError, AttributeError, LookupError, ArithmeticError) as exc:
            raise _runtime_error(exc, name) from exc

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        """Render a template string.

        Args:
            template: Template source to render.
            context: Variables to make available in the template.

        Returns:
            Rendered string.

        Raises:
            TemplateError: If the source is invalid or fails to render.
            MissingVariableError: If the source uses an undefined variable.
        """
        try:
            return self.env.from_string(template).render(**context)
        except jinja2.TemplateError as exc:
            raise self._translate(exc, None) from exc
        except (TypeError, ValueError, AttributeError, LookupError, ArithmeticError) as exc:
            raise _runtime_error(exc, None) from exc

    @staticmethod
    def _translate(exc: jinja2.TemplateError, name: str | None) -> TemplateError:
        """Map a Jinja2 exception onto Tessera's template error kinds."""
        if isinstance(exc, UndefinedError):
            return MissingVariableError(
                f"Undefined variable: {exc.message}", template_name=name, original_error=exc
            )
        if isinstance(exc, TemplateNotFound):
            return TemplateError(
                f"Template not found: {exc.name}",
                kind="loader",
                template_name=name,
                original_error=exc,
            )
        if isinstance(exc, TemplateSyntaxError):
            where = exc.name or name or "<string>"
            return TemplateError(
                f"Template syntax error in {where} on line {exc.lineno}: {exc.message}",
                kind="syntax",
                template_name=name,
                original_error=exc,
            )
        return TemplateError(
            f"{type(exc).__name__}: {exc.message}",
            kind="runtime",
            template_name=name,
            original_error=exc,
        )
