"""
Lean Incremental Merkle Tree (LIMT) accumulator.

An append-only binary hash tree whose depth grows with the number of leaves
instead of being fixed up front. A node without a right sibling is carried
to the next level unchanged rather than hashed with a zero value, so:

    - a one-leaf tree has root == leaf;
    - a tree of n ≥ 2 leaves has ceil(log2 n) hashing levels;
    - a membership proof for any leaf has exactly ceil(log2 n) path entries.

Path entries whose sibling is missing are recorded as EMPTY_NODE (0) with
direction bit 0, meaning "carry up". Leaves must therefore be non-zero.

The pure functions (depth, needs_depth_increase, hash_leaf, hash_pair,
verify_membership) are what verifiers use, always against a root supplied by
the caller. LeanIMT is the builder that the ledger (which owns the
authoritative tree) and wallets (which mirror it to produce proofs) use.

References:
    [LIMT]  Privacy & Scaling Explorations, "Lean Incremental Merkle Tree"
            (zk-kit / Semaphore v4 design notes).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from shielded_core.crypto.curve import SECP256K1_P, CurvePoint
from shielded_core.crypto.hashing import DOMAIN_LEAF, DOMAIN_NODE, hash_to_field

EMPTY_NODE = 0
"""Sibling placeholder meaning "no sibling at this level"."""


# ==============================================================================
# Pure functions
# ==============================================================================


def depth(n: int) -> int:
    """0 for an empty tree, 1 for a single leaf, else ceil(log2 n)."""
    if n < 0:
        raise ValueError(f"size must be non-negative, got {n}")
    if n <= 1:
        return n
    return (n - 1).bit_length()


def needs_depth_increase(n: int) -> bool:
    """True iff inserting into a tree of size n deepens it: n ∈ {0, 2, 4, 8, …}."""
    if n < 0:
        raise ValueError(f"size must be non-negative, got {n}")
    return n == 0 or (n >= 2 and n & (n - 1) == 0)


def path_length(n: int) -> int:
    """Number of entries in a membership proof for a tree of size n."""
    return (n - 1).bit_length() if n > 0 else 0


def hash_leaf(*values: int | CurvePoint) -> int:
    """Leaf digest; its domain tag differs from hash_pair's."""
    return hash_to_field(DOMAIN_LEAF, *values)


def hash_pair(left: int, right: int) -> int:
    """Interior node digest H_node(left, right)."""
    return hash_to_field(DOMAIN_NODE, left, right)


# ==============================================================================
# State and proof types
# ==============================================================================


@dataclass(frozen=True)
class AccumulatorState:
    """Snapshot of an accumulator: enough to verify proofs against."""
    root: int
    size: int
    depth: int

    @classmethod
    def empty(cls) -> AccumulatorState:
        return cls(root=EMPTY_NODE, size=0, depth=0)

    def is_consistent(self) -> bool:
        if self.size < 0 or self.depth != depth(self.size):
            return False
        return (self.size == 0) == (self.root == EMPTY_NODE)


@dataclass(frozen=True)
class MembershipProof:
    """
    Authentication path for one leaf.

    Attributes:
        leaf: The leaf value being proven.
        siblings: One sibling per level, bottom-up; EMPTY_NODE means carry.
        direction_bits: 1 when the running node is the right child.
        root: Root the proof was generated against.
        leaf_index: Position of the leaf at proof time.
    """
    leaf: int
    siblings: tuple[int, ...]
    direction_bits: tuple[int, ...]
    root: int
    leaf_index: int = 0

    @property
    def depth(self) -> int:
        return len(self.siblings)


def compute_root(leaf: int, siblings: tuple[int, ...], direction_bits: tuple[int, ...]) -> int:
    """
    Walk a path from leaf to root.

    Raises:
        ValueError: On mismatched lengths, invalid bits, or a carry on a right child.
    """
    if len(siblings) != len(direction_bits):
        raise ValueError("siblings and direction_bits differ in length")
    node = leaf
    for sibling, bit in zip(siblings, direction_bits):
        if bit not in (0, 1):
            raise ValueError(f"direction bit must be 0 or 1, got {bit}")
        if sibling == EMPTY_NODE:
            if bit:
                raise ValueError("a right child always has a left sibling")
            continue
        node = hash_pair(sibling, node) if bit else hash_pair(node, sibling)
    return node


def verify_membership(proof: MembershipProof, root: int, size: int | None = None) -> bool:
    """
    Check that `proof.leaf` sits under `root`.

    An empty path (one-leaf tree) verifies by leaf == root. Total: any
    malformed proof yields False.

    Args:
        proof: The authentication path.
        root: Accumulator root supplied by the caller.
        size: Tree size at `root`, when known. The path must then have
            exactly path_length(size) entries, so carry-padded paths fail.
    """
    try:
        if proof.leaf == EMPTY_NODE:
            return False
        if size is not None and len(proof.siblings) != path_length(size):
            return False
        return compute_root(proof.leaf, tuple(proof.siblings), tuple(proof.direction_bits)) == root
    except (ValueError, TypeError, AttributeError):
        return False


# ==============================================================================
# LeanIMT builder
# ==============================================================================


class LeanIMT:
    """
    In-memory Lean IMT.

    Stores every level so proofs are O(log n) lookups. Insertion only
    rewrites the path of the new leaf.

    Usage:
        tree = LeanIMT()
        idx = tree.insert(hash_leaf(commitment))
        proof = tree.generate_proof(idx)
        assert verify_membership(proof, tree.root)
    """

    def __init__(self, leaves: Iterable[int] = ()) -> None:
        self._nodes: list[list[int]] = [[]]
        self._index: dict[int, int] = {}
        self.insert_many(leaves)

    @property
    def size(self) -> int:
        return len(self._nodes[0])

    @property
    def depth(self) -> int:
        return depth(self.size)

    @property
    def root(self) -> int:
        if self.size == 0:
            return EMPTY_NODE
        return self._nodes[path_length(self.size)][0]

    @property
    def leaves(self) -> tuple[int, ...]:
        return tuple(self._nodes[0])

    def state(self) -> AccumulatorState:
        return AccumulatorState(root=self.root, size=self.size, depth=self.depth)

    def insert(self, leaf: int) -> int:
        """
        Append a leaf and return its index.

        Raises:
            ValueError: If the leaf is EMPTY_NODE or not a field element.
        """
        if not 0 < leaf < SECP256K1_P:
            raise ValueError("leaf must be a non-zero field element")

        index = self.size
        levels = path_length(index + 1)
        self._nodes[0].append(leaf)
        while len(self._nodes) <= levels:
            self._nodes.append([])

        node = leaf
        idx = index
        for level in range(levels):
            if idx & 1:
                node = hash_pair(self._nodes[level][idx - 1], node)
            idx >>= 1
            row = self._nodes[level + 1]
            if idx < len(row):
                row[idx] = node
            else:
                row.append(node)

        self._index.setdefault(leaf, index)
        return index

    def insert_many(self, leaves: Iterable[int]) -> None:
        for leaf in leaves:
            self.insert(leaf)

    def index_of(self, leaf: int) -> int | None:
        """Index of the first occurrence of leaf, or None."""
        return self._index.get(leaf)

    def has(self, leaf: int) -> bool:
        return leaf in self._index

    def generate_proof(self, index: int) -> MembershipProof:
        """
        Build the authentication path for the leaf at `index`.

        Raises:
            ValueError: If index is out of range.
        """
        if not 0 <= index < self.size:
            raise ValueError(f"leaf index {index} out of range for tree of size {self.size}")

        siblings: list[int] = []
        bits: list[int] = []
        idx = index
        for level in range(path_length(self.size)):
            row = self._nodes[level]
            if idx & 1:
                siblings.append(row[idx - 1])
                bits.append(1)
            elif idx + 1 < len(row):
                siblings.append(row[idx + 1])
                bits.append(0)
            else:
                siblings.append(EMPTY_NODE)
                bits.append(0)
            idx >>= 1

        return MembershipProof(
            leaf=self._nodes[0][index],
            siblings=tuple(siblings),
            direction_bits=tuple(bits),
            root=self.root,
            leaf_index=index,
        )
