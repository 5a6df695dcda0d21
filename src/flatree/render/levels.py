"""Level table renderer."""

from typing import Sequence

from rich.console import Console
from rich.table import Table

from flatree.render.base import OutputFormat
from flatree.tree.builder import nodes_by_level
from flatree.tree.node import Record


class LevelsRenderer:
    """Renders one table row per forest level: level, record count, keys."""

    format = OutputFormat.LEVELS

    def render(
        self,
        roots: Sequence[Record],
        *,
        depth: int | None = None,
        **options,
    ) -> str:
        levels = nodes_by_level(roots)

        table = Table(title="Levels")
        table.add_column("Level", justify="right")
        table.add_column("Count", justify="right")
        table.add_column("Keys")

        for level, nodes in sorted(levels.items()):
            if depth is not None and level > depth:
                break
            table.add_row(str(level), str(len(nodes)), ", ".join(str(n.key) for n in nodes))

        console = Console(
            force_terminal=False,
            width=options.get("width", 120),
            record=True,
            color_system=None,
        )
        console.print(table)
        return console.export_text()
