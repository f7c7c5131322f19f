"""Integration tests for Merkle tree construction.

These tests verify that the tree builder:
1. Hashes leaves from record content only, in collection order
2. Pads odd levels with a sentinel node
3. Propagates content changes up to the root
4. Rejects malformed collections before hashing anything
"""

import pytest

from merkle_sync.errors import DuplicateKeyError, MissingFieldError
from merkle_sync.hasher import SENTINEL_FINGERPRINT, combine, fingerprint
from merkle_sync.merkle import (
    MerkleTree,
    build_tree,
    key_sort_order,
    node_count,
    root_fingerprint,
    tree_height,
    tree_stats,
)
from merkle_sync.models import InternalNode, LeafNode, Record, SentinelNode
from tests.conftest import make_collection


class TestMerkleTreeStructure:
    """Tests for building and traversing trees."""

    def test_empty_collection_has_no_tree(self):
        """An empty collection is 'nothing to compare', not an error."""
        assert build_tree([]) is None
        assert MerkleTree.build(()) is None

    def test_single_record_root_is_leaf(self):
        tree = build_tree(make_collection((1, "alice")))

        assert isinstance(tree.root, LeafNode)
        assert tree.root.fingerprint == fingerprint("alice")
        assert tree.height == 0
        assert tree.node_count == 1

    def test_two_records(self):
        tree = build_tree(make_collection((1, "alice"), (2, "bob")))

        assert isinstance(tree.root, InternalNode)
        assert tree.root.level == 1
        assert tree.root.fingerprint == combine(fingerprint("alice"), fingerprint("bob"))
        assert tree.root.left.record.key == 1
        assert tree.root.right.record.key == 2

    def test_four_records_balanced(self, base_records):
        tree = build_tree(base_records)

        left = combine(fingerprint("alice"), fingerprint("bob"))
        right = combine(fingerprint("charlie"), fingerprint("diana"))
        assert tree.root.fingerprint == combine(left, right)
        assert tree.height == 2
        assert tree.node_count == 7

    def test_odd_count_pads_with_sentinel(self):
        """Three records: the third leaf pairs with a sentinel."""
        tree = build_tree(make_collection((1, "a"), (2, "b"), (3, "c")))

        padded = tree.root.right
        assert isinstance(padded, InternalNode)
        assert padded.left.record.key == 3
        assert isinstance(padded.right, SentinelNode)
        assert padded.right.fingerprint == SENTINEL_FINGERPRINT
        assert padded.right.level == 0
        assert padded.fingerprint == combine(fingerprint("c"), SENTINEL_FINGERPRINT)

    def test_five_records_pad_at_two_levels(self, changed_records):
        """Five leaves -> 3 parents -> 2 -> 1, padding at levels 0 and 1."""
        tree = build_tree(changed_records)

        assert tree.height == 3
        sentinels = [n for n in tree.iter_nodes() if isinstance(n, SentinelNode)]
        assert sorted(s.level for s in sentinels) == [0, 1]
        # 5 leaves + 2 sentinels + 3 + 2 + 1 internal nodes
        assert tree.node_count == 13

    def test_every_internal_node_has_two_children(self, changed_records):
        tree = build_tree(changed_records)

        for node in tree.iter_nodes():
            if isinstance(node, InternalNode):
                assert len(node.children) == 2
                assert node.level == max(c.level for c in node.children) + 1
                assert node.fingerprint == combine(
                    node.left.fingerprint, node.right.fingerprint
                )

    def test_leaf_invariants(self, base_records):
        tree = build_tree(base_records)

        for leaf in tree.leaves():
            assert leaf.is_leaf
            assert leaf.level == 0
            assert leaf.children == ()
            assert leaf.record is not None

    def test_leaves_in_collection_order(self, base_records):
        tree = build_tree(base_records)

        assert [leaf.record.key for leaf in tree.leaves()] == [1, 2, 3, 4]

    def test_leaf_hash_ignores_key(self):
        """Identical content under different keys hashes identically."""
        tree = build_tree(make_collection((1, "same"), (2, "same")))

        left, right = tree.root.children
        assert left.fingerprint == right.fingerprint

    def test_tree_keeps_snapshot(self, base_records):
        tree = build_tree(base_records)
        base_records.append(Record(key=9, content="later"))

        assert len(tree.records) == 4

    def test_to_dict(self):
        tree = build_tree(make_collection((1, "a"), (2, "b"), (3, "c")))
        data = tree.to_dict()

        assert data["kind"] == "internal"
        assert data["fingerprint"] == tree.root_fingerprint
        assert data["children"][0]["children"][0]["record"] == {"key": 1, "content": "a"}
        assert data["children"][1]["children"][1]["kind"] == "sentinel"


class TestMerkleTreeHashPropagation:
    """Tests for determinism and content sensitivity."""

    def test_build_is_deterministic(self, base_records):
        assert build_tree(base_records).root_fingerprint == build_tree(base_records).root_fingerprint

    def test_unchanged_collection_same_root(self, base_records):
        copy = [Record(key=r.key, content=r.content) for r in base_records]

        assert build_tree(copy).root_fingerprint == build_tree(base_records).root_fingerprint

    @pytest.mark.parametrize("index", [0, 1, 2, 3])
    def test_any_content_change_changes_root(self, base_records, index):
        before = build_tree(base_records)
        changed = list(base_records)
        changed[index] = changed[index].with_content(changed[index].content + "!")
        after = build_tree(changed)

        assert after.root_fingerprint != before.root_fingerprint

    def test_change_leaves_sibling_subtree_unchanged(self, base_records):
        before = build_tree(base_records)
        changed = list(base_records)
        changed[3] = changed[3].with_content("diana-updated")
        after = build_tree(changed)

        assert after.root.left.fingerprint == before.root.left.fingerprint
        assert after.root.right.fingerprint != before.root.right.fingerprint

    def test_order_changes_root(self, base_records):
        """Same records, different insertion order -> different root."""
        reordered = list(reversed(base_records))

        assert build_tree(reordered).root_fingerprint != build_tree(base_records).root_fingerprint

    def test_canonical_order_ignores_insertion_order(self, base_records):
        reordered = list(reversed(base_records))

        assert (
            build_tree(reordered, canonical_order=True).root_fingerprint
            == build_tree(base_records, canonical_order=True).root_fingerprint
        )

    def test_canonical_order_mixed_keys(self):
        records = make_collection(("b", "x"), (2, "y"), ("a", "z"), (1, "w"))
        tree = build_tree(records, canonical_order=True)

        assert [leaf.record.key for leaf in tree.leaves()] == [1, 2, "a", "b"]
        assert sorted([3, "c", 1], key=key_sort_order) == [1, 3, "c"]


class TestMerkleTreeValidation:
    """Tests for construction errors."""

    def test_missing_key(self):
        records = [Record(key=1, content="a"), Record(key=None, content="b")]

        with pytest.raises(MissingFieldError) as exc_info:
            build_tree(records)

        assert exc_info.value.field == "key"
        assert exc_info.value.index == 1
        assert "index 1" in str(exc_info.value)

    def test_missing_content(self):
        records = [Record(key=1, content="a"), Record(key=7, content=None)]

        with pytest.raises(MissingFieldError) as exc_info:
            build_tree(records)

        assert exc_info.value.field == "content"
        assert exc_info.value.index == 1
        assert exc_info.value.key == 7

    def test_duplicate_key(self):
        records = make_collection((1, "a"), (2, "b"), (1, "c"))

        with pytest.raises(DuplicateKeyError) as exc_info:
            build_tree(records)

        assert exc_info.value.key == 1
        assert exc_info.value.first_index == 0
        assert exc_info.value.index == 2

    def test_duplicate_key_detected_before_hashing(self, monkeypatch):
        """No hashing happens when the collection is invalid."""
        calls = []
        monkeypatch.setattr(
            "merkle_sync.merkle.fingerprint", lambda content: calls.append(content)
        )

        with pytest.raises(DuplicateKeyError):
            build_tree(make_collection((1, "a"), (1, "b")))

        assert calls == []


class TestMerkleAccessors:
    """Tests for read-only accessors that accept absent trees."""

    def test_absent_tree(self):
        assert node_count(None) == 0
        assert tree_height(None) == 0
        assert root_fingerprint(None) is None
        assert tree_stats(None).root_label == "-"

    def test_present_tree(self, base_records):
        tree = build_tree(base_records)

        assert node_count(tree) == 7
        assert tree_height(tree) == 2
        assert root_fingerprint(tree) == tree.root.fingerprint

    def test_stats(self, base_records):
        tree = build_tree(base_records)
        stats = tree.stats(label_length=8)

        assert stats.node_count == 7
        assert stats.height == 2
        assert stats.leaf_count == 4
        assert stats.root_label == tree.root_fingerprint[:8]
        assert stats.to_dict()["root_fingerprint"] == tree.root_fingerprint
