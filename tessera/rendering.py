"""Page rendering for Tessera.

A Markdown page is rendered in three steps:

1. The raw body goes through the template engine as a template string, so
   authors can use ``pages``, ``index`` and friends inside their Markdown.
2. The resulting Markdown is converted to HTML by the ``_content.html``
   template, which applies the ``markdown`` filter.
3. The page template (``meta.template``, default ``default.html``) renders
   the final document, and each post-processor may rewrite it.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from markupsafe import Markup

from .collections import BuildMetadata
from .postprocess import apply_post_processors
from .protocols import PostProcessor, TemplateRenderer
from .templates import CONTENT_TEMPLATE, DEFAULT_TEMPLATE

if TYPE_CHECKING:
    from .pagination import OutputPage


def build_context(
    page: OutputPage,
    body: str,
    metadata: BuildMetadata,
    config: Mapping[str, Any],
) -> dict[str, Any]:
    """Assemble the template context for one output page.

    Args:
        page: Output page being rendered.
        body: Raw Markdown body of the source file.
        metadata: Complete build metadata aggregate.
        config: Site configuration.

    Returns:
        Context with ``current_page``, ``config`` and the aggregate's
        ``pages``, ``index`` and ``derived`` mappings.
    """
    context = metadata.as_context()
    context["current_page"] = {
        "meta": page.meta,
        "path": page.path,
        "content": body,
        "pagination": page.pagination,
    }
    context["config"] = config
    return context


def render_page(
    renderer: TemplateRenderer,
    page: OutputPage,
    body: str,
    metadata: BuildMetadata,
    config: Mapping[str, Any],
    post_processors: Sequence[PostProcessor] = (),
) -> str:
    """Render one output page to its final HTML.

    Args:
        renderer: Template engine.
        page: Output page being rendered.
        body: Raw Markdown body of the source file.
        metadata: Complete build metadata aggregate.
        config: Site configuration.
        post_processors: Post-processors applied after the page template.

    Returns:
        Rendered HTML.

    Raises:
        TemplateError: If any template step fails.
    """
    context = build_context(page, body, metadata, config)
    current_page = context["current_page"]

    current_page["content"] = renderer.render_string(body, context)
    current_page["content"] = Markup(renderer.render(CONTENT_TEMPLATE, context))

    template = page.meta.get("template") or DEFAULT_TEMPLATE
    html = renderer.render(str(template), context)
    return apply_post_processors(html, post_processors, metadata)
