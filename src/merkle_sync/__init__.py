"""merkle-sync - Merkle anti-entropy reconciliation of keyed collections."""

__version__ = "0.1.0"

# Directory and file constants
MSYNC_DIR = ".merkle-sync"
CONFIG_FILE = "config.json"

from .compare import compare_level, find_divergent_nodes_at_level, trace_descent  # noqa: E402
from .differ import diff, diff_leaves  # noqa: E402
from .errors import (  # noqa: E402
    BuildError,
    DuplicateKeyError,
    MerkleSyncError,
    MissingFieldError,
    StaleEditScriptError,
)
from .merkle import (  # noqa: E402
    MerkleTree,
    build_tree,
    node_count,
    root_fingerprint,
    tree_height,
)
from .models import Edit, EditKind, EditScript, Record  # noqa: E402
from .reconcile import apply_edit_script, reconcile  # noqa: E402
from .store import CollectionStore  # noqa: E402

__all__ = [
    "BuildError",
    "CollectionStore",
    "DuplicateKeyError",
    "Edit",
    "EditKind",
    "EditScript",
    "MerkleSyncError",
    "MerkleTree",
    "MissingFieldError",
    "Record",
    "StaleEditScriptError",
    "apply_edit_script",
    "build_tree",
    "compare_level",
    "diff",
    "diff_leaves",
    "find_divergent_nodes_at_level",
    "node_count",
    "reconcile",
    "root_fingerprint",
    "trace_descent",
    "tree_height",
]
