"""Renderers for built forests.

Example:
    from flatree.render import OutputFormat, render_forest

    print(render_forest(roots, format=OutputFormat.JSON, depth=2))
"""

from typing import Sequence

from flatree.render.ascii import ASCIIRenderer
from flatree.render.base import ForestRenderer, OutputFormat
from flatree.render.json_renderer import JSONRenderer
from flatree.render.levels import LevelsRenderer
from flatree.tree.node import Record


def render_forest(
    roots: Sequence[Record],
    *,
    format: OutputFormat = OutputFormat.ASCII,
    depth: int | None = None,
    **options,
) -> str:
    """Render a forest to the specified format.

    Args:
        roots: Root records of a built forest
        format: Output format (ASCII, JSON, LEVELS)
        depth: Maximum depth to render
        **options: Format-specific options (width, indent, show_keys)

    Returns:
        Rendered output
    """
    format = OutputFormat(format)
    if format == OutputFormat.JSON:
        renderer: ForestRenderer = JSONRenderer()
    elif format == OutputFormat.LEVELS:
        renderer = LevelsRenderer()
    else:
        renderer = ASCIIRenderer()

    return renderer.render(roots, depth=depth, **options)


__all__ = [
    "OutputFormat",
    "ForestRenderer",
    "ASCIIRenderer",
    "JSONRenderer",
    "LevelsRenderer",
    "render_forest",
]
