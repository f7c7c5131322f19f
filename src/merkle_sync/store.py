"""Ownership of the source and replica collections."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import replace
from typing import Literal

from .differ import diff_leaves
from .errors import (
    DuplicateKeyError,
    MerkleSyncError,
    MissingFieldError,
    StaleEditScriptError,
    UnknownKeyError,
)
from .merkle import MerkleTree, validate_collection
from .models import EditScript, Key, Record, ReconcileResult
from .reconcile import apply_edit_script

logger = logging.getLogger(__name__)

Side = Literal["source", "replica"]
SIDES: tuple[Side, Side] = ("source", "replica")

SAMPLE_NAMES = [
    "Alice", "Bob", "Charlie", "Diana", "Eve", "Frank", "Grace", "Heidi",
    "Ivan", "Judy", "Karl", "Laura", "Mallory", "Niaj", "Olivia", "Peggy",
    "Quentin", "Rupert", "Sybil", "Trent", "Uma", "Victor", "Walter",
    "Xavier", "Yvonne", "Zoe",
]


class CollectionStore:
    """Sole owner and mutator of the source and replica collections.

    Every mutation bumps the version of the side it touches. Edit scripts
    produced by ``diff`` carry the versions they were computed against, and
    ``apply_to_replica`` refuses scripts whose versions are no longer current.
    """

    def __init__(
        self,
        source: Sequence[Record] = (),
        replica: Sequence[Record] = (),
    ):
        self._records: dict[Side, list[Record]] = {"source": [], "replica": []}
        self._versions: dict[Side, int] = {"source": 0, "replica": 0}
        self._lock = threading.RLock()
        self.next_id = 1

        if source:
            self.replace("source", source)
        if replica:
            self.replace("replica", replica)

    @contextmanager
    def locked(self) -> Iterator[CollectionStore]:
        """Hold the store lock across a read-modify-write sequence."""
        with self._lock:
            yield self

    @property
    def source(self) -> tuple[Record, ...]:
        return self.records("source")

    @property
    def replica(self) -> tuple[Record, ...]:
        return self.records("replica")

    @property
    def versions(self) -> tuple[int, int]:
        with self._lock:
            return (self._versions["source"], self._versions["replica"])

    def records(self, side: Side) -> tuple[Record, ...]:
        """Immutable snapshot of one side."""
        with self._lock:
            return tuple(self._side(side))

    def version(self, side: Side) -> int:
        with self._lock:
            self._side(side)
            return self._versions[side]

    def get(self, side: Side, key: Key) -> Record | None:
        with self._lock:
            for record in self._side(side):
                if record.key == key:
                    return record
            return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_record(
        self, side: Side, content: str | None = None, key: Key | None = None
    ) -> Record:
        """Append a record, assigning the next id when no key is given."""
        with self._lock:
            records = self._side(side)
            if key is None:
                key = self._assign_id()
                if content is None:
                    content = f"New data {key}"
            else:
                for index, existing in enumerate(records):
                    if existing.key == key:
                        raise DuplicateKeyError(key, first_index=index, index=len(records))
                self._observe_key(key)

            if content is None:
                raise MissingFieldError("content", index=len(records), key=key)

            record = Record(key=key, content=content)
            records.append(record)
            self._bump(side)
            logger.debug("Added %r to %s", key, side)
            return record

    def update_record(self, side: Side, key: Key, content: str) -> Record:
        """Replace the content of an existing record."""
        if content is None:
            raise MissingFieldError("content", key=key)
        with self._lock:
            records = self._side(side)
            index = self._index_of(side, key)
            records[index] = records[index].with_content(content)
            self._bump(side)
            logger.debug("Updated %r in %s", key, side)
            return records[index]

    def remove_record(self, side: Side, key: Key) -> Record:
        with self._lock:
            return self.remove_at(side, self._index_of(side, key))

    def remove_at(self, side: Side, index: int) -> Record:
        """Remove the record at a position (as a row in a table)."""
        with self._lock:
            records = self._side(side)
            removed = records.pop(index)
            self._bump(side)
            logger.debug("Removed %r from %s", removed.key, side)
            return removed

    def replace(self, side: Side, records: Sequence[Record]) -> None:
        """Replace one side wholesale. The new records must form a valid collection."""
        snapshot = list(records)
        validate_collection(snapshot)
        with self._lock:
            self._side(side)
            self._records[side] = snapshot
            for record in snapshot:
                self._observe_key(record.key)
            self._bump(side)

    def generate_sample_data(self, size: int = 4) -> None:
        """Fill the source with sample records and make the replica an identical copy."""
        if not 1 <= size <= len(SAMPLE_NAMES):
            raise ValueError(f"Sample size must be between 1 and {len(SAMPLE_NAMES)}")
        records = [
            Record(key=i + 1, content=f"User data for {SAMPLE_NAMES[i]}")
            for i in range(size)
        ]
        with self._lock:
            self.next_id = 1
            self.replace("source", records)
            self.replace("replica", records)

    def create_differences(self) -> list[Key]:
        """Modify the third source record and append a new one.

        Returns:
            Keys of the modified and the added record
        """
        with self._lock:
            source = self._side("source")
            if len(source) < 3:
                raise MerkleSyncError(
                    "Need at least 3 source records; generate sample data first"
                )
            target = source[2]
            name = target.content.rsplit(" ", 1)[-1]
            self.update_record("source", target.key, f"Updated data for {name}")

            new_id = self._assign_id()
            new_name = SAMPLE_NAMES[(new_id - 1) % len(SAMPLE_NAMES)]
            self.add_record("source", f"New user data for {new_name}", key=new_id)
            return [target.key, new_id]

    def reset(self) -> None:
        with self._lock:
            for side in SIDES:
                self._records[side] = []
                self._bump(side)
            self.next_id = 1

    # ------------------------------------------------------------------
    # Build / diff / apply
    # ------------------------------------------------------------------

    def build_trees(
        self, canonical_order: bool = False
    ) -> tuple[MerkleTree | None, MerkleTree | None]:
        """Build (source_tree, replica_tree) from consistent snapshots."""
        with self._lock:
            return (
                MerkleTree.build(self._records["source"], canonical_order),
                MerkleTree.build(self._records["replica"], canonical_order),
            )

    def diff(self, canonical_order: bool = False) -> EditScript:
        """Edit script bringing the replica to the source, stamped with current versions."""
        with self._lock:
            source_tree, replica_tree = self.build_trees(canonical_order)
            script = diff_leaves(source_tree, replica_tree)
            return replace(script, basis=self.versions)

    def apply_to_replica(self, script: EditScript) -> ReconcileResult:
        """
        Apply a script produced by ``diff`` to the replica.

        Raises:
            StaleEditScriptError: Either collection changed since the diff,
                or the script was not produced by this store
        """
        with self._lock:
            if script.basis is None:
                raise StaleEditScriptError(
                    "Edit script has no basis versions; compute it with CollectionStore.diff()"
                )
            if script.basis != self.versions:
                raise StaleEditScriptError(
                    f"Edit script computed against versions {script.basis}, "
                    f"store is at {self.versions}; re-diff before applying"
                )
            result = apply_edit_script(self._records["replica"], script)
            self._records["replica"] = list(result.collection)
            self._bump("replica")
            return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _side(self, side: Side) -> list[Record]:
        if side not in self._records:
            raise ValueError(f"Unknown side {side!r}; expected one of {SIDES}")
        return self._records[side]

    def _index_of(self, side: Side, key: Key) -> int:
        for index, record in enumerate(self._side(side)):
            if record.key == key:
                return index
        raise UnknownKeyError(side, key)

    def _bump(self, side: Side) -> None:
        self._versions[side] += 1

    def _assign_id(self) -> int:
        new_id = self.next_id
        self.next_id += 1
        return new_id

    def _observe_key(self, key: Key) -> None:
        """Keep auto-assigned ids clear of explicit integer keys."""
        if isinstance(key, int) and key >= self.next_id:
            self.next_id = key + 1
