"""
Merkle Tree Implementation

Deterministic Merkle tree construction over pre-hashed donation leaves.

Canonical Commitment Rules (Hard Contracts):
1. Leaves are the 32-byte leaf hashes as given; they are NOT re-hashed.
2. Parent hashing: parent = sha256(min(a, b) + max(a, b)), comparing the
   two children as raw byte strings (sorted pair).
3. Padding rule: an unpaired last node at any level is paired with itself.
4. Empty leaves: refused (EmptyBatchError); no root is defined.
5. Single leaf: root = leaf, height 1.

Determinism Notes:
- No randomness; leaf order is defined upstream (batch close order)
- This module never sorts leaves - only the two children of each parent
- The full tree need not be persisted: rebuilding from the same ordered
  leaf hashes yields the same levels and root
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from core.crypto.hashing import DIGEST_SIZE, hash_pair_sorted, is_digest, to_hex
from core.schemas.errors import EmptyBatchError


@dataclass(frozen=True)
class MerkleTree:
    """
    An addressable, level-by-level Merkle tree.

    Attributes:
        levels: levels[0] are the leaves, levels[-1] == (root,). Levels
                are stored unpadded; padding is applied when pairing.
    """
    levels: tuple[tuple[bytes, ...], ...]

    @property
    def root(self) -> bytes:
        return self.levels[-1][0]

    @property
    def root_hex(self) -> str:
        return to_hex(self.root)

    @property
    def leaves(self) -> tuple[bytes, ...]:
        return self.levels[0]

    @property
    def leaf_count(self) -> int:
        return len(self.levels[0])

    @property
    def height(self) -> int:
        """Number of levels, leaves and root inclusive."""
        return len(self.levels)

    def index_of(self, leaf: bytes) -> int:
        """
        Index of the first occurrence of a leaf hash.

        Raises:
            ValueError: If the leaf is not in the tree
        """
        try:
            return self.levels[0].index(leaf)
        except ValueError:
            raise ValueError("Leaf hash not found in tree") from None

    def node(self, level: int, index: int) -> bytes:
        """Node at (level, index), resolving the self-paired padding slot."""
        nodes = self.levels[level]
        if index == len(nodes) and len(nodes) % 2 == 1:
            return nodes[-1]
        return nodes[index]


def merkle_parent(left: bytes, right: bytes) -> bytes:
    """
    Compute the parent hash of two child nodes.

    Children are ordered as raw bytes before concatenation, so the
    result does not depend on which side each child sits.
    """
    return hash_pair_sorted(left, right)


def _check_leaves(leaves: Sequence[bytes]) -> None:
    if len(leaves) == 0:
        raise EmptyBatchError()
    for i, leaf in enumerate(leaves):
        if not is_digest(leaf):
            raise ValueError(
                f"Leaf {i} must be a {DIGEST_SIZE}-byte digest, "
                f"got {type(leaf).__name__} of length "
                f"{len(leaf) if hasattr(leaf, '__len__') else 'n/a'}"
            )


def _next_level(current: Sequence[bytes]) -> tuple[bytes, ...]:
    nodes = list(current)
    if len(nodes) % 2 == 1:
        nodes.append(nodes[-1])
    return tuple(
        merkle_parent(nodes[i], nodes[i + 1])
        for i in range(0, len(nodes), 2)
    )


def build_merkle_tree(leaves: Sequence[bytes]) -> MerkleTree:
    """
    Build a Merkle tree from an ordered, non-empty sequence of leaf hashes.

    Padding Rule: Duplicate last node at each level if odd.
    Example: [a, b, c] -> [a, b, c, c] -> [parent(a,b), parent(c,c)]

    Raises:
        EmptyBatchError: If leaves is empty
        ValueError: If a leaf is not a 32-byte digest
    """
    _check_leaves(leaves)

    levels: list[tuple[bytes, ...]] = [tuple(bytes(leaf) for leaf in leaves)]
    while len(levels[-1]) > 1:
        levels.append(_next_level(levels[-1]))

    return MerkleTree(levels=tuple(levels))


def build_merkle_root(leaves: Sequence[bytes]) -> bytes:
    """Root of build_merkle_tree(leaves)."""
    return build_merkle_tree(leaves).root


def compute_tree_height(num_leaves: int) -> int:
    """
    Height of a tree with the given number of leaves.

    Height counts levels from leaves to root inclusive: 0 leaves -> 0,
    1 leaf -> 1, 2 leaves -> 2, 3 or 4 leaves -> 3.
    """
    if num_leaves <= 0:
        return 0

    height = 1
    n = num_leaves
    while n > 1:
        n = (n + 1) // 2
        height += 1
    return height


__all__ = [
    "MerkleTree",
    "merkle_parent",
    "build_merkle_tree",
    "build_merkle_root",
    "compute_tree_height",
]
