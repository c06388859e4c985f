"""Protocol definitions for Tessera.

These are the seams where the build pipeline meets its collaborators: the
template engine that turns a template plus a context into text, and the
post-processors that may rewrite each rendered page.

These protocols enable:
- Swapping the template engine (tests use small fakes)
- Adding post-processing steps without subclassing content files or builds
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .collections import BuildMetadata


@runtime_checkable
class TemplateRenderer(Protocol):
    """Protocol for rendering templates.

    Implementations must treat undefined variables as errors and provide a
    ``markdown`` filter inside templates.
    """

    @abstractmethod
    def render(self, name: str, context: dict[str, Any]) -> str:
        """Render a named template.

        Args:
            name: Template name.
            context: Variables to make available in the template.

        Returns:
            Rendered string.
        """
        ...

    @abstractmethod
    def render_string(self, template: str, context: dict[str, Any]) -> str:
        """Render a template string.

        Args:
            template: Template source to render.
            context: Variables to make available in the template.

        Returns:
            Rendered string.
        """
        ...


@runtime_checkable
class PostProcessor(Protocol):
    """Protocol for rewriting rendered pages.

    A post-processor may derive an auxiliary index once, while the build
    metadata is being compiled. It is then called for every rendered page
    with the final, read-only aggregate.
    """

    name: str

    @abstractmethod
    def derive(self, metadata: BuildMetadata) -> Mapping[str, Any] | None:
        """Compute an auxiliary index from the build metadata.

        Args:
            metadata: Build metadata compiled so far.

        Returns:
            Mapping stored under ``metadata.derived[self.name]``, or None.
        """
        ...

    @abstractmethod
    def process(self, html: str, metadata: BuildMetadata) -> str:
        """Rewrite one rendered page.

        Args:
            html: Fully rendered page HTML.
            metadata: Complete build metadata, including derived indices.

        Returns:
            Possibly modified HTML.
        """
        ...
