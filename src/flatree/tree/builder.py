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

"""Forest builder - links flat records into parent-pointer trees."""

from __future__ import annotations

import dataclasses
import logging
from collections import deque
from collections.abc import Hashable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from flatree.tree.comparators import Comparator, sort_key
from flatree.tree.errors import BuilderConfigError, OrphanNodeError

logger = logging.getLogger(__name__)

N = TypeVar("N")

ErrorHandler = Callable[[Any, Hashable, Hashable, Exception], None]


class OrphanPolicy(str, Enum):
    """What happens to a record whose parent key is not in the input."""

    IGNORE = "ignore"  # report, then drop
    COLLECT = "collect"  # report, then promote to root
    ERROR = "error"  # report, then drop; pair with raise_orphan_error to abort


def log_orphan(context: Any, node_key: Hashable, parent_key: Hashable, err: Exception) -> None:
    """Default error handler: log a warning and carry on."""
    logger.warning("Orphan node detected: %s", err)


def ignore_orphan(context: Any, node_key: Hashable, parent_key: Hashable, err: Exception) -> None:
    """Error handler that does nothing."""


def raise_orphan_error(context: Any, node_key: Hashable, parent_key: Hashable, err: Exception) -> None:
    """Error handler that aborts the build on the first orphan."""
    raise err


@dataclass(frozen=True)
class BuilderConfig:
    """Immutable option snapshot owned by a TreeBuilder."""

    comparator: Comparator | None = None
    orphan_policy: OrphanPolicy = OrphanPolicy.IGNORE
    error_handler: ErrorHandler = log_orphan
    context: Any = None

    def validate(self) -> None:
        if self.comparator is not None and not callable(getattr(self.comparator, "compare", None)):
            raise BuilderConfigError(
                f"comparator must define compare(a, b), got {self.comparator!r}"
            )
        if not callable(self.error_handler):
            raise BuilderConfigError(
                f"error_handler must be callable, got {self.error_handler!r}"
            )


@dataclass
class OrphanRecord:
    """One unresolved parent reference seen during a build."""

    key: Hashable
    parent_key: Hashable


@dataclass
class BuildResult(Generic[N]):
    """Everything a build produced, for callers that prefer pull-based warnings."""

    roots: list[N] = field(default_factory=list)
    index: dict[Hashable, N] = field(default_factory=dict)
    orphans: list[OrphanRecord] = field(default_factory=list)
    duplicates: list[Hashable] = field(default_factory=list)
    policy: OrphanPolicy = OrphanPolicy.IGNORE

    @property
    def linked_count(self) -> int:
        """Number of records reachable from the roots."""
        return sum(1 for _ in iter_forest(self.roots))

    @property
    def ok(self) -> bool:
        return not self.orphans and not self.duplicates

    def raise_for_orphans(self) -> None:
        """Raise OrphanNodeError for the first orphan, if any."""
        if self.orphans:
            first = self.orphans[0]
            raise OrphanNodeError(first.key, first.parent_key)


def _coerce_policy(value: OrphanPolicy | str) -> OrphanPolicy:
    try:
        return OrphanPolicy(value)
    except ValueError:
        valid = ", ".join(p.value for p in OrphanPolicy)
        raise BuilderConfigError(
            f"Invalid orphan policy '{value}'. Valid values: {valid}"
        ) from None


class TreeBuilder(Generic[N]):
    """Builds forests from flat records with a self-referencing parent key.

    Every build starts from scratch: the key index and all children
    lists are rebuilt from the input, and the records themselves are
    never copied.

    Example:
        builder = TreeBuilder(
            comparator=CompositeComparator(OrderComparator(), NameComparator()),
            orphan_policy=OrphanPolicy.COLLECT,
        )
        roots = builder.build(records)
        levels = builder.nodes_by_level(roots)
    """

    def __init__(
        self,
        comparator: Comparator | None = None,
        orphan_policy: OrphanPolicy | str = OrphanPolicy.IGNORE,
        error_handler: ErrorHandler | None = None,
        context: Any = None,
    ):
        config = BuilderConfig(
            comparator=comparator,
            orphan_policy=_coerce_policy(orphan_policy),
            error_handler=error_handler if error_handler is not None else log_orphan,
            context=context,
        )
        config.validate()
        self._config = config

    @property
    def config(self) -> BuilderConfig:
        return self._config

    def with_options(self, **changes: Any) -> TreeBuilder[N]:
        """Return a new builder with some options replaced.

        Accepts the same keyword names as the constructor. The current
        builder is left untouched.
        """
        names = [f.name for f in dataclasses.fields(BuilderConfig)]
        unknown = set(changes) - set(names)
        if unknown:
            raise BuilderConfigError(
                f"Unknown builder options: {', '.join(sorted(unknown))}"
            )
        # context and comparator are shared, never copied
        merged = {name: getattr(self._config, name) for name in names}
        merged.update(changes)
        return TreeBuilder(**merged)

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    def build(self, nodes: Sequence[N]) -> list[N]:
        """Link records into a forest and return its roots."""
        return self.build_result(nodes).roots

    def build_with_map(self, nodes: Sequence[N]) -> tuple[list[N], dict[Hashable, N]]:
        """Build the forest and also return the key index used to link it."""
        result = self.build_result(nodes)
        return result.roots, result.index

    def build_result(self, nodes: Sequence[N]) -> BuildResult[N]:
        """Build the forest and report orphans and duplicate keys alongside it."""
        config = self._config
        # The same instance listed twice is linked once
        nodes = list({id(node): node for node in nodes}.values())
        result: BuildResult[N] = BuildResult(policy=config.orphan_policy)
        if not nodes:
            return result

        # Index by key (last write wins) and reset every children list
        index: dict[Hashable, N] = {}
        for node in nodes:
            key = node.key
            if key in index:
                logger.debug("Duplicate key %r: later record replaces earlier one", key)
                result.duplicates.append(key)
            index[key] = node
            node.children = []
        result.index = index

        roots = result.roots
        for node in nodes:
            if node.is_root():
                roots.append(node)
                continue

            parent_key = node.parent_key
            parent = index.get(parent_key)
            if parent is not None:
                parent.children.append(node)
            else:
                self._handle_orphan(node, parent_key, result)

        if config.comparator is not None:
            self._sort_forest(roots)

        logger.debug(
            "Built forest: %d records, %d roots, %d orphans, %d duplicate keys",
            len(nodes),
            len(roots),
            len(result.orphans),
            len(result.duplicates),
        )
        return result

    def _handle_orphan(self, node: N, parent_key: Hashable, result: BuildResult[N]) -> None:
        config = self._config
        result.orphans.append(OrphanRecord(key=node.key, parent_key=parent_key))
        config.error_handler(
            config.context,
            node.key,
            parent_key,
            OrphanNodeError(node.key, parent_key),
        )
        if config.orphan_policy is OrphanPolicy.COLLECT:
            result.roots.append(node)

    def _sort_forest(self, roots: list[N]) -> None:
        """Sort the roots, then every sibling group below them, top-down."""
        key = sort_key(self._config.comparator)
        stack: list[list[N]] = [roots]
        while stack:
            siblings = stack.pop()
            siblings.sort(key=key)
            for node in siblings:
                if node.children:
                    stack.append(node.children)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def nodes_by_level(self, roots: Sequence[N]) -> dict[int, list[N]]:
        """Group records by depth; level 0 is the root layer."""
        return nodes_by_level(roots)

    def max_level(self, roots: Sequence[N]) -> int:
        """Deepest level in the forest, or -1 when it is empty."""
        return max_level(roots)


def nodes_by_level(roots: Sequence[N]) -> dict[int, list[N]]:
    """Breadth-first grouping of a forest by level."""
    result: dict[int, list[N]] = {}
    level = 0
    current = list(roots)
    while current:
        result[level] = current
        current = [child for node in current for child in node.children]
        level += 1
    return result


def max_level(roots: Sequence[N]) -> int:
    """Greatest depth reached by any branch; -1 for an empty forest."""
    deepest = -1
    queue: deque[tuple[int, N]] = deque((0, root) for root in roots)
    while queue:
        level, node = queue.popleft()
        if level > deepest:
            deepest = level
        for child in node.children:
            queue.append((level + 1, child))
    return deepest


def iter_forest(roots: Sequence[N]) -> Iterator[tuple[int, N]]:
    """Yield (level, record) pairs in depth-first pre-order."""
    stack: list[tuple[int, N]] = [(0, root) for root in reversed(roots)]
    while stack:
        level, node = stack.pop()
        yield level, node
        for child in reversed(node.children):
            stack.append((level + 1, child))
