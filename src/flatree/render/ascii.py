"""ASCII forest renderer using Rich for terminal output."""

from typing import Sequence

from rich.console import Console
from rich.text import Text
from rich.tree import Tree

from flatree.render.base import OutputFormat
from flatree.tree.node import Record


class ASCIIRenderer:
    """Renders each root of a forest as a Rich tree."""

    format = OutputFormat.ASCII

    def render(
        self,
        roots: Sequence[Record],
        *,
        depth: int | None = None,
        **options,
    ) -> str:
        """Render the forest as ASCII.

        Args:
            roots: Root records of a built forest
            depth: Maximum depth to render
            **options: Additional options (width, show_keys)

        Returns:
            ASCII string representation of the forest
        """
        console = Console(
            force_terminal=False,
            width=options.get("width", 120),
            record=True,
            color_system=None,
        )
        show_keys = options.get("show_keys", True)

        if not roots:
            console.print(Text("(empty forest)", style="dim"))
            return console.export_text()

        for root in roots:
            console.print(self._create_rich_tree(root, max_depth=depth, show_keys=show_keys))

        return console.export_text()

    def _create_rich_tree(
        self,
        root: Record,
        *,
        max_depth: int | None,
        show_keys: bool,
    ) -> Tree:
        """Create a Rich Tree for one root, walking with an explicit stack."""
        rich_root = Tree(self._build_label(root, show_keys=show_keys))
        stack: list[tuple[Record, Tree, int]] = [(root, rich_root, 0)]

        while stack:
            node, branch, level = stack.pop()
            if max_depth is not None and level >= max_depth:
                if node.children:
                    branch.add(Text(f"… {len(node.children)} more", style="dim"))
                continue
            # Rich keeps insertion order, so add children before descending
            for child in node.children:
                child_branch = branch.add(self._build_label(child, show_keys=show_keys))
                stack.append((child, child_branch, level + 1))

        return rich_root

    def _build_label(self, node: Record, *, show_keys: bool) -> Text:
        """Build the label text for a node."""
        text = Text()
        text.append(node.name or str(node.key), style="bold" if node.children else "")
        if show_keys:
            text.append(f" [{node.key}]", style="dim")
        return text
