# Copyright 2026 Pennyworth Technologies, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Node capabilities and the general-purpose Record dataclass."""

from __future__ import annotations

import re
from collections.abc import Hashable
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar, runtime_checkable

K = TypeVar("K", bound=Hashable)
N = TypeVar("N", bound="TreeNode")

_INT_KEY = re.compile(r"[+-]?\d+")


@runtime_checkable
class TreeNode(Protocol):
    """Capabilities a record needs to take part in a forest build.

    ``children`` holds records of the same concrete type as the parent;
    the builder assigns it a fresh list before linking.
    """

    children: list[Any]

    @property
    def key(self) -> Hashable: ...

    @property
    def parent_key(self) -> Hashable: ...

    def is_root(self) -> bool: ...


@runtime_checkable
class HasID(Protocol):
    @property
    def id(self) -> int | None: ...


@runtime_checkable
class HasName(Protocol):
    @property
    def name(self) -> str: ...


@runtime_checkable
class HasOrder(Protocol):
    @property
    def order(self) -> int: ...


@dataclass(eq=False)
class Record:
    """A flat row with a self-referencing parent key.

    Implements every capability the builder and built-in comparators use.
    ``root_value`` is the parent key that marks a root, in addition to None.
    """

    key: Any
    parent_key: Any = None
    name: str = ""
    order: int = 0
    record_id: int | None = None
    data: dict[str, Any] = field(default_factory=dict)
    root_value: Any = None
    children: list[Record] = field(default_factory=list, repr=False)

    @property
    def id(self) -> int | None:
        """Numeric id: ``record_id``, else an int or numeric-string key, else None."""
        if self.record_id is not None:
            return self.record_id
        if isinstance(self.key, bool):
            return None
        if isinstance(self.key, int):
            return self.key
        if isinstance(self.key, str) and _INT_KEY.fullmatch(self.key.strip()):
            return int(self.key)
        return None

    @property
    def is_leaf(self) -> bool:
        return len(self.children) == 0

    def is_root(self) -> bool:
        return self.parent_key is None or self.parent_key == self.root_value

    def to_dict(self, include_children: bool = True) -> dict[str, Any]:
        """Convert to a nested dictionary for JSON serialization.

        Walks the subtree with an explicit stack so deep chains do not hit
        the recursion limit.
        """
        root = self._own_dict()
        if not include_children:
            return root

        stack: list[tuple[Record, dict[str, Any]]] = [(self, root)]
        while stack:
            node, out = stack.pop()
            if not node.children:
                continue
            out["children"] = []
            for child in node.children:
                child_out = child._own_dict()
                out["children"].append(child_out)
                stack.append((child, child_out))
        return root

    def _own_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "key": self.key,
            "parent_key": None if self.is_root() else self.parent_key,
            "name": self.name,
            "order": self.order,
        }
        if self.record_id is not None:
            result["id"] = self.record_id
        if self.data:
            result["data"] = self.data
        return result
