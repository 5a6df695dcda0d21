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

"""Three-way comparators for ordering sibling groups.

A comparator returns a negative number when ``a`` sorts before ``b``,
zero when they tie and a positive number otherwise. Comparators are
stateless and can be shared between builders.

Example:
    by_order_then_name = CompositeComparator(OrderComparator(), NameComparator())
    builder = TreeBuilder(comparator=by_order_then_name)
"""

from __future__ import annotations

import functools
from collections.abc import Iterable, Sequence
from typing import Any, Callable, Generic, Protocol, TypeVar

from flatree.tree.errors import BuilderConfigError

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


class Comparator(Protocol[T_contra]):
    """Protocol for comparators."""

    def compare(self, a: T_contra, b: T_contra) -> int:
        """Compare two records of the same type."""
        ...


def three_way(a: Any, b: Any) -> int:
    """Classic cmp(): -1, 0 or 1."""
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def compare_values(a: Any, b: Any) -> int:
    """three_way() that tolerates mixed types by ordering on type name first."""
    try:
        return three_way(a, b)
    except TypeError:
        return three_way((type(a).__name__, str(a)), (type(b).__name__, str(b)))


_MISSING = object()


def field_value(record: Any, attr: str) -> Any:
    """Attribute value, else the entry in ``record.data``, else None."""
    value = getattr(record, attr, _MISSING)
    if value is not _MISSING:
        return value
    data = getattr(record, "data", None)
    if isinstance(data, dict):
        return data.get(attr)
    return None


class AttributeComparator:
    """Compares records by a single attribute, ascending unless reversed.

    Attributes missing from a record are looked up in its ``data`` dict.
    Records without a value sort after those with one, in either direction.
    """

    # Every record must provide a value for sort-field checks to pass
    required = False

    def __init__(self, attr: str, reverse: bool = False):
        self.attr = attr
        self.reverse = reverse

    def compare(self, a: Any, b: Any) -> int:
        x = field_value(a, self.attr)
        y = field_value(b, self.attr)
        if x is None or y is None:
            return int(x is None) - int(y is None)
        result = compare_values(x, y)
        return -result if self.reverse else result

    def __repr__(self) -> str:
        prefix = "-" if self.reverse else ""
        return f"{type(self).__name__}({prefix}{self.attr})"


class IDComparator(AttributeComparator):
    """Ascending by ``id`` (records must satisfy HasID)."""

    required = True

    def __init__(self, reverse: bool = False):
        super().__init__("id", reverse=reverse)


class NameComparator(AttributeComparator):
    """Ascending by ``name`` (records must satisfy HasName)."""

    def __init__(self, reverse: bool = False):
        super().__init__("name", reverse=reverse)


class OrderComparator(AttributeComparator):
    """Ascending by the explicit ``order`` field (records must satisfy HasOrder)."""

    def __init__(self, reverse: bool = False):
        super().__init__("order", reverse=reverse)


class CompositeComparator(Generic[T]):
    """Lexicographic combination of comparators.

    Components are evaluated left to right and the first nonzero result
    wins, so later comparators only break ties left by earlier ones.
    """

    def __init__(self, *comparators: Comparator[T]):
        self.comparators: tuple[Comparator[T], ...] = comparators

    def compare(self, a: T, b: T) -> int:
        for comp in self.comparators:
            result = comp.compare(a, b)
            if result != 0:
                return result
        return 0

    def __len__(self) -> int:
        return len(self.comparators)

    def __repr__(self) -> str:
        inner = ", ".join(repr(c) for c in self.comparators)
        return f"CompositeComparator({inner})"


_NAMED_COMPARATORS: dict[str, Callable[[bool], AttributeComparator]] = {
    "id": lambda reverse: IDComparator(reverse=reverse),
    "name": lambda reverse: NameComparator(reverse=reverse),
    "order": lambda reverse: OrderComparator(reverse=reverse),
}


def comparator_from_fields(fields: Iterable[str]) -> CompositeComparator | None:
    """Build a composite comparator from field names.

    ``"-name"`` sorts descending. The built-in names map to their
    dedicated comparators; anything else compares that attribute.
    Returns None when no fields are given.

    Example:
        comparator_from_fields(["order", "-name"])
    """
    comparators: list[AttributeComparator] = []
    for raw in fields:
        token = raw.strip()
        if not token:
            continue
        reverse = token.startswith("-")
        attr = token.lstrip("+-")
        factory = _NAMED_COMPARATORS.get(attr)
        if factory is not None:
            comparators.append(factory(reverse))
        else:
            comparators.append(AttributeComparator(attr, reverse=reverse))

    if not comparators:
        return None
    return CompositeComparator(*comparators)


def check_sort_fields(comparator: Comparator[Any], records: Sequence[Any]) -> None:
    """Reject sort fields the records cannot supply.

    A field no record provides is an error, as is a required field (such
    as ``id``) that some record lacks. Comparators that are not
    attribute based are accepted as-is.

    Raises:
        BuilderConfigError: If a sort field cannot be resolved
    """
    if not records:
        return
    if isinstance(comparator, CompositeComparator):
        components = comparator.comparators
    else:
        components = (comparator,)

    for comp in components:
        if not isinstance(comp, AttributeComparator):
            continue
        values = [field_value(record, comp.attr) for record in records]
        if comp.required and any(v is None for v in values):
            missing = next(r for r, v in zip(records, values) if v is None)
            raise BuilderConfigError(
                f"Cannot sort by '{comp.attr}': record {missing.key!r} has no {comp.attr}"
            )
        if all(v is None for v in values):
            raise BuilderConfigError(f"Unknown sort field '{comp.attr}'")


def sort_key(comparator: Comparator[T]) -> Callable[[T], Any]:
    """Adapt a comparator for ``list.sort(key=...)``."""
    return functools.cmp_to_key(comparator.compare)
