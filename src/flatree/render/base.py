"""Base renderer and output format definitions."""

from enum import Enum
from typing import Protocol, Sequence

from flatree.tree.node import Record


class OutputFormat(str, Enum):
    """Output format for rendering."""

    ASCII = "ascii"
    JSON = "json"
    LEVELS = "levels"


class ForestRenderer(Protocol):
    """Protocol for forest renderers."""

    format: OutputFormat

    def render(
        self,
        roots: Sequence[Record],
        *,
        depth: int | None = None,
        **options,
    ) -> str:
        """Render the forest to the target format.

        Args:
            roots: Root records of a built forest
            depth: Maximum depth to render (None for unlimited)
            **options: Additional format-specific options

        Returns:
            Rendered output
        """
        ...
