"""JSON renderer for forests."""

import json
from typing import Any, Sequence

from flatree.render.base import OutputFormat
from flatree.tree.builder import max_level
from flatree.tree.node import Record


class JSONRenderer:
    """Renders a forest as nested JSON."""

    format = OutputFormat.JSON

    def render(
        self,
        roots: Sequence[Record],
        *,
        depth: int | None = None,
        **options,
    ) -> str:
        """Render the forest as JSON.

        Args:
            roots: Root records of a built forest
            depth: Maximum depth to render
            **options: Additional options (indent)

        Returns:
            JSON string with ``roots`` and ``max_level``
        """
        data = {
            "roots": [self._subtree_dict(root, depth) for root in roots],
            "max_level": max_level(roots),
        }

        indent = options.get("indent", 2)
        return json.dumps(data, indent=indent, default=str)

    def _subtree_dict(self, root: Record, max_depth: int | None) -> dict[str, Any]:
        """Nested dict for one root, cut off below ``max_depth``.

        Records at the cutoff keep a ``childrenCount`` and a
        ``childrenTruncated`` flag in place of their children.
        """
        out = root.to_dict(include_children=False)
        stack: list[tuple[Record, dict[str, Any], int]] = [(root, out, 0)]

        while stack:
            node, node_out, level = stack.pop()
            if not node.children:
                continue
            if max_depth is not None and level >= max_depth:
                node_out["childrenCount"] = len(node.children)
                node_out["childrenTruncated"] = True
                continue
            node_out["children"] = []
            for child in node.children:
                child_out = child.to_dict(include_children=False)
                node_out["children"].append(child_out)
                stack.append((child, child_out, level + 1))

        return out
