"""Level-synchronized comparison of two Merkle trees.

Matching fingerprints prune whole subtrees, so only the branches that
actually diverge are walked. This assumes both trees have the same height;
when record counts differ enough to change the height, results past the
point of divergence are unreliable and ``differ.diff_leaves`` is the
authoritative answer.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .merkle import MerkleTree
from .models import Divergence, MerkleNode


@dataclass(frozen=True)
class LevelReport:
    """Divergent node pairs found at one level."""

    level: int
    divergences: tuple[Divergence, ...] = ()

    @property
    def has_divergence(self) -> bool:
        return bool(self.divergences)


@dataclass(frozen=True)
class DescentTrace:
    """Complete root-to-leaf drill-down result."""

    roots_match: bool
    congruent: bool
    levels: tuple[LevelReport, ...] = field(default_factory=tuple)

    @property
    def leaf_divergences(self) -> tuple[Divergence, ...]:
        for report in self.levels:
            if report.level == 0:
                return report.divergences
        return ()


def roots_match(tree_a: MerkleTree | None, tree_b: MerkleTree | None) -> bool:
    """Compare root fingerprints. Two absent trees match."""
    if tree_a is None or tree_b is None:
        return tree_a is None and tree_b is None
    return tree_a.root_fingerprint == tree_b.root_fingerprint


def shapes_congruent(tree_a: MerkleTree | None, tree_b: MerkleTree | None) -> bool:
    """True when both trees have the same height, so levels line up."""
    if tree_a is None or tree_b is None:
        return tree_a is None and tree_b is None
    return tree_a.height == tree_b.height


def find_divergent_nodes_at_level(
    tree_a: MerkleTree | None,
    tree_b: MerkleTree | None,
    target_level: int,
) -> list[Divergence]:
    """
    Find corresponding node pairs at ``target_level`` whose fingerprints differ.

    Args:
        tree_a: Usually the source tree
        tree_b: Usually the replica tree
        target_level: Level to compare at (0 = leaves)

    Returns:
        Divergences in left-to-right order
    """
    if tree_a is None or tree_b is None or target_level < 0:
        return []

    divergences: list[Divergence] = []
    _collect_divergences(tree_a.root, tree_b.root, target_level, "", divergences)
    return divergences


# Public name used by presentation layers
compare_level = find_divergent_nodes_at_level


def trace_descent(
    tree_a: MerkleTree | None, tree_b: MerkleTree | None
) -> DescentTrace:
    """
    Walk from the root level down to the leaves, one level at a time.

    Stops early once a level shows no divergence. The whole trace is
    returned at once; staged display is up to the caller.
    """
    matched = roots_match(tree_a, tree_b)
    congruent = shapes_congruent(tree_a, tree_b)

    if matched or tree_a is None or tree_b is None:
        return DescentTrace(roots_match=matched, congruent=congruent)

    reports: list[LevelReport] = []
    for level in range(tree_a.height, -1, -1):
        divergences = find_divergent_nodes_at_level(tree_a, tree_b, level)
        reports.append(LevelReport(level=level, divergences=tuple(divergences)))
        if not divergences:
            break

    return DescentTrace(
        roots_match=matched,
        congruent=congruent,
        levels=tuple(reports),
    )


def _collect_divergences(
    node_a: MerkleNode,
    node_b: MerkleNode,
    target_level: int,
    path: str,
    out: list[Divergence],
) -> None:
    """Recursively compare corresponding nodes and collect mismatches at the target level."""
    if node_a.level == target_level and node_b.level == target_level:
        if node_a.fingerprint != node_b.fingerprint:
            out.append(Divergence(node_a=node_a, node_b=node_b, path=path))
        return

    # Shapes diverged at this point: no data to compare
    if node_a.level <= target_level or node_b.level <= target_level:
        return

    # Quick check: if fingerprints match, entire subtree is unchanged
    if node_a.fingerprint == node_b.fingerprint:
        return

    children_a = node_a.children
    children_b = node_b.children
    for index, (child_a, child_b) in enumerate(zip(children_a, children_b)):
        step = "L" if index == 0 else "R"
        _collect_divergences(child_a, child_b, target_level, path + step, out)
