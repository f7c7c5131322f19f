"""Step-by-step sync workflow over a collection store.

A session walks the same steps a person would when reconciling two
collections by hand: build both trees, compare the roots, drill down one
level at a time, identify the changed leaves and finally sync the replica.
Every step appends to an event log that presentation layers can display.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Literal

from .compare import find_divergent_nodes_at_level, roots_match, shapes_congruent
from .config import SyncConfig
from .differ import diff_leaves
from .errors import MerkleSyncError, SessionError, StaleEditScriptError
from .hasher import short_label
from .merkle import MerkleTree, TreeStats, root_fingerprint, tree_stats
from .models import Divergence, EditScript, Key, ReconcileResult
from .store import SIDES, CollectionStore, Side

logger = logging.getLogger(__name__)

EventLevel = Literal["info", "success", "warning", "error"]

_LOG_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class SyncEvent:
    """One entry in the session's event log."""

    level: EventLevel
    message: str


@dataclass
class ComparisonState:
    """Progress through the compare/drill/identify steps."""

    roots_compared: bool = False
    current_level: int | None = None
    divergences: list[Divergence] = field(default_factory=list)
    changes: EditScript | None = None


class SyncSession:
    """Drives build, compare, drill-down, identify and sync over one store."""

    def __init__(
        self,
        store: CollectionStore | None = None,
        config: SyncConfig | None = None,
    ):
        self.store = store or CollectionStore()
        self.config = config or SyncConfig()
        self.source_tree: MerkleTree | None = None
        self.replica_tree: MerkleTree | None = None
        self.events: list[SyncEvent] = []
        self.state = ComparisonState()
        self._built_versions: tuple[int, int] | None = None

        self.log("System initialized. Start by adding data or generating sample data.")

    def log(self, message: str, level: EventLevel = "info") -> SyncEvent:
        event = SyncEvent(level=level, message=message)
        self.events.append(event)
        logger.log(_LOG_LEVELS[level], message)
        return event

    def label(self, fingerprint: str | None) -> str:
        return short_label(fingerprint, self.config.label_length)

    # ------------------------------------------------------------------
    # Data entry
    # ------------------------------------------------------------------

    def generate_sample_data(self) -> None:
        size = self.config.sample_size
        self.store.generate_sample_data(size)
        self._reset_comparison()
        self.log(
            f"Generated identical sample data for both databases ({size} records each)",
            "success",
        )

    def create_differences(self) -> bool:
        """Modify and append a source record. Returns False when there is no data yet."""
        try:
            self.store.create_differences()
        except MerkleSyncError:
            self.log("Please generate sample data first", "warning")
            return False
        self.log("Created 2 differences in source: 1 modification, 1 addition", "success")
        return True

    def add_row(self, side: Side, content: str | None = None) -> None:
        record = self.store.add_record(side, content)
        self.log(f"Added new row with ID {record.key} to {side} database", "success")

    def edit_row(self, side: Side, key: Key, content: str) -> None:
        self.store.update_record(side, key, content)
        self.log(f"Updated row with ID {key} in {side} database", "success")

    def remove_row(self, side: Side, index: int) -> None:
        removed = self.store.remove_at(side, index)
        self.log(f"Removed row with ID {removed.key} from {side} database", "success")

    # ------------------------------------------------------------------
    # Comparison steps
    # ------------------------------------------------------------------

    def build_trees(self) -> tuple[MerkleTree | None, MerkleTree | None]:
        with self.store.locked():
            trees = self.store.build_trees(self.config.canonical_order)
            self._built_versions = self.store.versions
        self.source_tree, self.replica_tree = trees
        self._reset_comparison()
        self.log("Merkle trees built successfully", "success")
        return trees

    def compare_roots(self) -> bool:
        """Compare root fingerprints. Returns True when they match."""
        self._require_trees()
        self.state.roots_compared = True

        if roots_match(self.source_tree, self.replica_tree):
            self.state.current_level = None
            self.log("Root hashes match! No synchronization needed.", "success")
            return True

        self.log(
            f"Root hashes differ: Source: {self.label(root_fingerprint(self.source_tree))} "
            f"vs Replica: {self.label(root_fingerprint(self.replica_tree))}",
            "warning",
        )
        if self.source_tree is not None and self.replica_tree is not None:
            self.state.current_level = self.source_tree.height
            if not shapes_congruent(self.source_tree, self.replica_tree):
                self.log(
                    "Trees have different heights; level comparison is unreliable, "
                    "use Identify Changes for an exact diff",
                    "warning",
                )
            self.log("Click \"Drill Down\" to traverse mismatched branches")
        else:
            self.log("One collection is empty; use Identify Changes for the full diff")
        return False

    def drill_down(self) -> list[Divergence]:
        """Compare the next level down and return its divergent node pairs."""
        self._require_trees()
        if self.state.roots_compared and (
            self.source_tree is None or self.replica_tree is None
        ):
            self.log("Nothing to compare level by level; use Identify Changes")
            return []
        if self.state.current_level is None:
            raise SessionError("Compare roots with differing hashes before drilling down")

        if self.state.current_level == 0:
            self.log("Already at leaf level", "info")
            return []

        self.state.current_level -= 1
        level = self.state.current_level
        mismatched = find_divergent_nodes_at_level(
            self.source_tree, self.replica_tree, level
        )
        self.state.divergences = mismatched

        if mismatched:
            self.log(f"Found {len(mismatched)} mismatched nodes at level {level}", "warning")
            for item in mismatched:
                self.log(
                    f"  - Mismatch at path {item.path or '(root)'}: "
                    f"Source={self.label(item.node_a.fingerprint)[:8]} "
                    f"vs Replica={self.label(item.node_b.fingerprint)[:8]}"
                )
        else:
            self.log("No more mismatches found at this level")
        return mismatched

    def identify_changes(self) -> EditScript:
        """Diff the leaves of both trees."""
        self._require_trees()
        script = diff_leaves(self.source_tree, self.replica_tree)
        script = replace(script, basis=self._built_versions)
        self.state.changes = script

        self.log(f"Identified {len(script)} changed leaf nodes:")
        for edit in script:
            self.log(f"- {edit.kind.value}: {edit.describe()}", "warning")
        return script

    def sync_changes(self) -> ReconcileResult | None:
        """Apply the identified changes to the replica and rebuild its tree."""
        script = self.state.changes
        if script is None or script.is_empty:
            self.log("No changes to sync")
            return None

        self.log("Starting synchronization from source to replica...")
        try:
            result = self.store.apply_to_replica(script)
        except StaleEditScriptError:
            self._reset_comparison()
            self.log("Collections changed since the diff; rebuild trees and re-diff", "error")
            raise

        for warning in result.warnings:
            self.log(warning.message, "warning")

        with self.store.locked():
            self.source_tree, self.replica_tree = self.store.build_trees(
                self.config.canonical_order
            )
            self._built_versions = self.store.versions
        self._reset_comparison()

        remaining = diff_leaves(self.source_tree, self.replica_tree)
        if remaining.is_empty:
            self.log("Synchronization complete! Replica now matches source.", "success")
            if not roots_match(self.source_tree, self.replica_tree):
                self.log(
                    "Root hashes still differ because records are in a different order",
                    "info",
                )
        else:
            self.log(
                f"Synchronization left {len(remaining)} differences; re-diff required",
                "error",
            )
        return result

    def reset(self) -> None:
        self.store.reset()
        self.source_tree = None
        self.replica_tree = None
        self._built_versions = None
        self._reset_comparison()
        self.events.clear()
        self.log("System reset. Start by adding data or generating sample data.")

    def stats(self) -> dict[Side, TreeStats]:
        trees = {"source": self.source_tree, "replica": self.replica_tree}
        return {
            side: tree_stats(trees[side], self.config.label_length) for side in SIDES
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset_comparison(self) -> None:
        self.state = ComparisonState()

    def _require_trees(self) -> None:
        if self._built_versions is None:
            self.log("Please build trees first", "error")
            raise SessionError("Trees have not been built")
        if self._built_versions != self.store.versions:
            self.log("Collections changed since trees were built; rebuild trees", "error")
            raise SessionError("Trees are stale")
