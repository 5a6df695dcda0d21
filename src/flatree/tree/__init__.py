"""Forest construction and queries over flat parent-keyed records."""

from flatree.tree.builder import (
    BuilderConfig,
    BuildResult,
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
    AttributeComparator,
    Comparator,
    CompositeComparator,
    IDComparator,
    NameComparator,
    OrderComparator,
    check_sort_fields,
    comparator_from_fields,
)
from flatree.tree.errors import (
    BuilderConfigError,
    FlatreeError,
    OrphanNodeError,
    RecordLoadError,
)
from flatree.tree.node import HasID, HasName, HasOrder, Record, TreeNode

__all__ = [
    # Models
    "Record",
    "TreeNode",
    "HasID",
    "HasName",
    "HasOrder",
    # Builder
    "TreeBuilder",
    "BuilderConfig",
    "BuildResult",
    "OrphanPolicy",
    "OrphanRecord",
    "log_orphan",
    "ignore_orphan",
    "raise_orphan_error",
    "nodes_by_level",
    "max_level",
    "iter_forest",
    # Comparators
    "Comparator",
    "AttributeComparator",
    "IDComparator",
    "NameComparator",
    "OrderComparator",
    "CompositeComparator",
    "comparator_from_fields",
    "check_sort_fields",
    # Errors
    "FlatreeError",
    "OrphanNodeError",
    "BuilderConfigError",
    "RecordLoadError",
]
