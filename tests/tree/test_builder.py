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

"""Tests for tree/builder.py."""

import pytest

from flatree.tree.builder import (
    BuilderConfig,
    OrphanPolicy,
    OrphanRecord,
    TreeBuilder,
    ignore_orphan,
    iter_forest,
    log_orphan,
    max_level,
    nodes_by_level,
    raise_orphan_error,
)
from flatree.tree.comparators import (
    CompositeComparator,
    IDComparator,
    NameComparator,
    OrderComparator,
)
from flatree.tree.errors import BuilderConfigError, OrphanNodeError
from flatree.tree.node import Record


class Recorder:
    """Error handler that remembers every call."""

    def __init__(self):
        self.calls = []

    def __call__(self, context, node_key, parent_key, err):
        self.calls.append((context, node_key, parent_key, err))


def _keys(nodes):
    return [n.key for n in nodes]


def _chain(length):
    """1 <- 2 <- ... <- length, root has no parent."""
    records = [Record(key=1)]
    records.extend(Record(key=i, parent_key=i - 1) for i in range(2, length + 1))
    return records


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def test_order_comparator_sorts_children():
    records = [
        Record(key=1, parent_key=0, root_value=0, name="Root"),
        Record(key=2, parent_key=1, root_value=0, name="A", order=2),
        Record(key=3, parent_key=1, root_value=0, name="B", order=1),
    ]
    roots = TreeBuilder(comparator=OrderComparator()).build(records)

    assert _keys(roots) == [1]
    assert [c.name for c in roots[0].children] == ["B", "A"]


def test_ignore_policy_drops_orphan_and_reports_once(orphan_records):
    handler = Recorder()
    builder = TreeBuilder(orphan_policy=OrphanPolicy.IGNORE, error_handler=handler)

    roots = builder.build(orphan_records)

    assert _keys(roots) == [1]
    assert _keys(roots[0].children) == [2]
    assert len(handler.calls) == 1
    _, node_key, parent_key, err = handler.calls[0]
    assert (node_key, parent_key) == (3, 999)
    assert isinstance(err, OrphanNodeError)
    assert 3 not in [n.key for _, n in iter_forest(roots)]


def test_collect_policy_promotes_orphan_to_root(orphan_records):
    handler = Recorder()
    builder = TreeBuilder(orphan_policy=OrphanPolicy.COLLECT, error_handler=handler)

    roots = builder.build(orphan_records)

    assert _keys(roots) == [1, 3]
    assert _keys(roots[0].children) == [2]
    assert roots[1].children == []
    assert len(handler.calls) == 1


def test_error_policy_reports_and_drops(orphan_records):
    handler = Recorder()
    builder = TreeBuilder(orphan_policy=OrphanPolicy.ERROR, error_handler=handler)

    result = builder.build_result(orphan_records)

    assert _keys(result.roots) == [1]
    assert len(handler.calls) == 1
    assert result.orphans == [OrphanRecord(key=3, parent_key=999)]
    assert result.policy is OrphanPolicy.ERROR


def test_raise_orphan_error_aborts_build(orphan_records):
    builder = TreeBuilder(orphan_policy="error", error_handler=raise_orphan_error)

    with pytest.raises(OrphanNodeError) as exc_info:
        builder.build(orphan_records)

    assert exc_info.value.node_key == 3
    assert exc_info.value.parent_key == 999
    assert "missing parent 999" in str(exc_info.value)


def test_handler_receives_context_verbatim(orphan_records):
    handler = Recorder()
    context = {"source": "orders.csv"}
    TreeBuilder(error_handler=handler, context=context).build(orphan_records)

    assert handler.calls[0][0] is context


def test_handler_called_per_orphan_in_input_order():
    handler = Recorder()
    records = [
        Record(key="a"),
        Record(key="b", parent_key="missing-1"),
        Record(key="c", parent_key="a"),
        Record(key="d", parent_key="missing-2"),
    ]
    TreeBuilder(error_handler=handler).build(records)

    assert [(c[1], c[2]) for c in handler.calls] == [("b", "missing-1"), ("d", "missing-2")]


def test_orphan_subtree_follows_its_root():
    records = [
        Record(key=1),
        Record(key=10, parent_key=404),
        Record(key=11, parent_key=10),
    ]
    ignored = TreeBuilder(error_handler=ignore_orphan).build(records)
    assert [n.key for _, n in iter_forest(ignored)] == [1]

    collected = TreeBuilder(orphan_policy="collect", error_handler=ignore_orphan).build(records)
    assert _keys(collected) == [1, 10]
    assert _keys(collected[1].children) == [11]


def test_empty_input_builds_empty_forest():
    builder = TreeBuilder()

    roots = builder.build([])

    assert roots == []
    assert builder.max_level(roots) == -1
    assert builder.nodes_by_level(roots) == {}


def test_linear_chain_levels():
    builder = TreeBuilder()
    roots = builder.build(_chain(5))

    assert builder.max_level(roots) == 4
    levels = builder.nodes_by_level(roots)
    assert sorted(levels) == [0, 1, 2, 3, 4]
    assert all(len(nodes) == 1 for nodes in levels.values())
    assert [levels[i][0].key for i in range(5)] == [1, 2, 3, 4, 5]


def test_duplicate_key_last_write_wins_for_lookups():
    first = Record(key="X", parent_key="P", name="first")
    second = Record(key="X", parent_key="P", name="second")
    child = Record(key="C", parent_key="X")
    records = [Record(key="P"), first, second, child]

    result = TreeBuilder().build_result(records)

    assert result.index["X"] is second
    assert result.duplicates == ["X"]
    # Both duplicates stay attached to their own parent
    assert result.roots[0].children == [first, second]
    assert second.children == [child]
    assert first.children == []


def test_duplicate_key_does_not_drop_linkage():
    records = [
        Record(key="1", name="Root"),
        Record(key="2", parent_key="1", name="Child1"),
        Record(key="2", parent_key="1", name="Child2"),
    ]
    roots = TreeBuilder().build(records)

    assert [c.name for c in roots[0].children] == ["Child1", "Child2"]


def test_child_listed_before_parent_is_linked():
    records = [
        Record(key=3, parent_key=2),
        Record(key=2, parent_key=1),
        Record(key=1),
    ]
    roots = TreeBuilder().build(records)

    assert _keys(roots) == [1]
    assert _keys(roots[0].children) == [2]
    assert _keys(roots[0].children[0].children) == [3]


def test_build_discards_stale_children():
    root = Record(key=1)
    stale = Record(key=99)
    root.children = [stale]

    roots = TreeBuilder().build([root, Record(key=2, parent_key=1)])

    assert _keys(roots[0].children) == [2]


def test_root_value_marks_roots():
    records = [
        Record(key="a", parent_key="", root_value=""),
        Record(key="b", parent_key="a", root_value=""),
    ]
    roots = TreeBuilder().build(records)

    assert _keys(roots) == ["a"]
    assert _keys(roots[0].children) == ["b"]


def test_deep_chain_does_not_hit_recursion_limit():
    builder = TreeBuilder(comparator=IDComparator())
    roots = builder.build(_chain(10_000))

    assert builder.max_level(roots) == 9_999
    assert len(builder.nodes_by_level(roots)) == 10_000
    assert sum(1 for _ in iter_forest(roots)) == 10_000


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

def test_build_is_idempotent(org_records):
    builder = TreeBuilder(comparator=NameComparator(), error_handler=ignore_orphan)

    first = [r.to_dict() for r in builder.build(org_records)]
    second = [r.to_dict() for r in builder.build(org_records)]

    assert first == second


@pytest.mark.parametrize("policy", list(OrphanPolicy))
def test_every_record_lands_in_exactly_one_place(policy):
    records = [
        Record(key=1),
        Record(key=2, parent_key=1),
        Record(key=3, parent_key=2),
        Record(key=4, parent_key=77),
        Record(key=5, parent_key=4),
        Record(key=6),
    ]
    result = TreeBuilder(orphan_policy=policy, error_handler=ignore_orphan).build_result(records)

    placed = [node.key for _, node in iter_forest(result.roots)]
    assert len(placed) == len(set(placed))

    if policy is OrphanPolicy.COLLECT:
        assert sorted(placed) == [1, 2, 3, 4, 5, 6]
    else:
        assert sorted(placed) == [1, 2, 3, 6]


def test_siblings_are_ordered_at_every_level():
    comparator = CompositeComparator(OrderComparator(), NameComparator())
    records = [
        Record(key=1, name="r2", order=2),
        Record(key=2, name="r1", order=1),
        Record(key=3, parent_key=1, name="b", order=1),
        Record(key=4, parent_key=1, name="a", order=1),
        Record(key=5, parent_key=1, name="z", order=0),
        Record(key=6, parent_key=4, name="y", order=3),
        Record(key=7, parent_key=4, name="x", order=3),
        Record(key=8, parent_key=7, name="q", order=9),
        Record(key=9, parent_key=7, name="p", order=-1),
    ]
    roots = TreeBuilder(comparator=comparator).build(records)

    groups = [roots] + [node.children for _, node in iter_forest(roots)]
    for siblings in groups:
        for a, b in zip(siblings, siblings[1:]):
            assert comparator.compare(a, b) <= 0

    assert [r.name for r in roots] == ["r1", "r2"]
    assert [c.name for c in roots[1].children] == ["z", "a", "b"]
    assert [c.name for c in roots[1].children[1].children] == ["x", "y"]
    assert [c.name for c in roots[1].children[1].children[0].children] == ["p", "q"]


def test_sort_is_stable_for_ties():
    records = [Record(key=1)]
    records.extend(Record(key=k, parent_key=1, order=0) for k in (5, 3, 9, 2))
    roots = TreeBuilder(comparator=OrderComparator()).build(records)

    assert _keys(roots[0].children) == [5, 3, 9, 2]


def test_no_comparator_keeps_input_order():
    records = [Record(key=k) for k in (3, 1, 2)]
    assert _keys(TreeBuilder().build(records)) == [3, 1, 2]


def test_max_level_matches_nodes_by_level(org_records):
    builder = TreeBuilder()
    roots = builder.build(org_records)

    levels = builder.nodes_by_level(roots)
    assert builder.max_level(roots) == max(levels) == 2


def test_level_counts_sum_to_linked_records(orphan_records):
    result = TreeBuilder(error_handler=ignore_orphan).build_result(orphan_records)

    levels = nodes_by_level(result.roots)
    assert sum(len(nodes) for nodes in levels.values()) == result.linked_count == 2


def test_childless_roots_are_level_zero():
    roots = TreeBuilder().build([Record(key=1), Record(key=2)])
    assert max_level(roots) == 0
    assert list(nodes_by_level(roots)) == [0]


# ---------------------------------------------------------------------------
# Options and results
# ---------------------------------------------------------------------------

def test_default_config():
    config = TreeBuilder().config
    assert config == BuilderConfig()
    assert config.orphan_policy is OrphanPolicy.IGNORE
    assert config.error_handler is log_orphan
    assert config.comparator is None


def test_orphan_policy_accepts_strings():
    assert TreeBuilder(orphan_policy="collect").config.orphan_policy is OrphanPolicy.COLLECT


def test_invalid_orphan_policy_raises():
    with pytest.raises(BuilderConfigError, match="Invalid orphan policy 'adopt'"):
        TreeBuilder(orphan_policy="adopt")


def test_comparator_without_compare_raises():
    with pytest.raises(BuilderConfigError, match="compare"):
        TreeBuilder(comparator=lambda a, b: 0)


def test_non_callable_handler_raises():
    with pytest.raises(BuilderConfigError, match="error_handler"):
        TreeBuilder(error_handler="print")


def test_with_options_returns_new_builder():
    context = object()
    base = TreeBuilder(comparator=IDComparator(), context=context)

    changed = base.with_options(orphan_policy=OrphanPolicy.COLLECT)

    assert changed is not base
    assert base.config.orphan_policy is OrphanPolicy.IGNORE
    assert changed.config.orphan_policy is OrphanPolicy.COLLECT
    assert changed.config.comparator is base.config.comparator
    assert changed.config.context is context


def test_with_options_rejects_unknown_names():
    with pytest.raises(BuilderConfigError, match="Unknown builder options: colour"):
        TreeBuilder().with_options(colour="red")


def test_build_with_map_returns_index(org_records):
    roots, index = TreeBuilder().build_with_map(org_records)

    assert set(index) == {1, 2, 3, 4, 5, 6}
    assert index[1] is roots[0]
    assert index[5] in index[2].children


def test_build_result_ok_and_raise_for_orphans(orphan_records, org_records):
    clean = TreeBuilder().build_result(org_records)
    assert clean.ok
    clean.raise_for_orphans()

    dirty = TreeBuilder(error_handler=ignore_orphan).build_result(orphan_records)
    assert not dirty.ok
    with pytest.raises(OrphanNodeError, match="node 3 references missing parent 999"):
        dirty.raise_for_orphans()


def test_builder_is_reusable_across_inputs(org_records, orphan_records):
    builder = TreeBuilder(orphan_policy="collect", error_handler=ignore_orphan)

    assert len(builder.build(orphan_records)) == 2
    assert len(builder.build(org_records)) == 1


def test_iter_forest_is_preorder(org_records):
    roots = TreeBuilder().build(org_records)

    assert [(level, n.key) for level, n in iter_forest(roots)] == [
        (0, 1), (1, 2), (2, 4), (2, 5), (1, 3), (2, 6),
    ]


def test_same_instance_listed_twice_is_linked_once():
    root = Record(key=1)
    child = Record(key=2, parent_key=1)

    result = TreeBuilder().build_result([root, child, child, root])

    assert result.roots == [root]
    assert root.children == [child]
    assert result.duplicates == []
    assert result.linked_count == 2
