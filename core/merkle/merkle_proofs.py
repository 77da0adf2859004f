"""
Merkle Inclusion Proofs

Proof generation walks from a leaf to the root, recording at each level
the sibling needed to recompute the parent (the node itself when it is
the unpaired last node). Because parents hash a sorted pair, a proof is
just the ordered sibling digests; no left/right flags are needed.

Verification folds the leaf with each sibling using the same sorted-pair
rule and compares the result to the claimed root. It is pure and never
raises: any malformed input is reported as "not included".
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from core.crypto.hashing import from_hex, is_digest, to_hex
from core.merkle.merkle_tree import MerkleTree, build_merkle_tree, merkle_parent


@dataclass(frozen=True)
class MerkleProof:
    """
    A Merkle proof for a single leaf.

    Attributes:
        leaf: The leaf hash being proven
        index: 0-based position of the leaf in the batch
        siblings: Sibling hashes from bottom to top of tree
        root: The Merkle root this proof is against
    """
    leaf: bytes
    index: int
    siblings: tuple[bytes, ...]
    root: bytes

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Leaf index must be non-negative, got {self.index}")

    def siblings_hex(self) -> list[str]:
        return [to_hex(s) for s in self.siblings]


def build_merkle_proof(
    tree: MerkleTree,
    leaf_hash: bytes | None = None,
    *,
    index: int | None = None,
) -> MerkleProof:
    """
    Generate the inclusion proof for a leaf.

    The leaf is located by hash (first occurrence) unless an explicit
    index is given, which is needed to address duplicate leaves.

    Raises:
        ValueError: If the leaf is not in the tree, or index and hash disagree
        IndexError: If index is out of range
    """
    if index is None:
        if leaf_hash is None:
            raise ValueError("Either leaf_hash or index is required")
        index = tree.index_of(leaf_hash)
    else:
        if index < 0 or index >= tree.leaf_count:
            raise IndexError(
                f"Leaf index {index} out of range for {tree.leaf_count} leaves"
            )
        if leaf_hash is not None and tree.leaves[index] != leaf_hash:
            raise ValueError(f"Leaf at index {index} does not match the given hash")

    siblings: list[bytes] = []
    position = index
    # Every level except the root contributes one sibling
    for level in range(tree.height - 1):
        siblings.append(tree.node(level, position ^ 1))
        position //= 2

    return MerkleProof(
        leaf=tree.leaves[index],
        index=index,
        siblings=tuple(siblings),
        root=tree.root,
    )


def compute_root_from_proof(leaf_hash: bytes, proof: Sequence[bytes]) -> bytes:
    """Fold a leaf with its siblings into the implied root."""
    current = leaf_hash
    for sibling in proof:
        current = merkle_parent(current, sibling)
    return current


def verify_merkle_proof(
    proof: Sequence[bytes],
    leaf_hash: bytes,
    root: bytes,
) -> bool:
    """
    Check that leaf_hash is included under root via proof.

    Returns:
        True if folding leaf_hash with proof reproduces root, else False.
        Malformed arguments yield False rather than an exception.
    """
    if not is_digest(leaf_hash) or not is_digest(root):
        return False
    try:
        siblings = list(proof)
    except TypeError:
        return False
    if not all(is_digest(s) for s in siblings):
        return False

    computed = compute_root_from_proof(bytes(leaf_hash), [bytes(s) for s in siblings])
    return computed == bytes(root)


def verify_hex(proof: Sequence[str], leaf_hash: str, root: str) -> bool:
    """verify_merkle_proof over hex-encoded inputs."""
    try:
        return verify_merkle_proof(
            [from_hex(p) for p in proof],
            from_hex(leaf_hash),
            from_hex(root),
        )
    except (TypeError, ValueError):
        return False


class MerkleProver:
    """
    Convenience class for generating proofs from ordered leaf hashes.

    Example:
        >>> prover = MerkleProver(leaves)
        >>> proof = prover.prove(leaves[1])
    """

    def __init__(self, leaves: Sequence[bytes]) -> None:
        self.tree = build_merkle_tree(leaves)

    @property
    def root(self) -> bytes:
        return self.tree.root

    def prove(self, leaf_hash: bytes) -> list[bytes]:
        """Ordered sibling digests for a leaf."""
        return list(build_merkle_proof(self.tree, leaf_hash).siblings)

    def prove_index(self, index: int) -> MerkleProof:
        return build_merkle_proof(self.tree, index=index)

    def prove_all(self) -> list[MerkleProof]:
        """One proof per leaf position, in leaf order."""
        return [build_merkle_proof(self.tree, index=i) for i in range(self.tree.leaf_count)]


class MerkleVerifier:
    """Convenience wrappers around verify_merkle_proof."""

    @staticmethod
    def verify(proof: MerkleProof) -> bool:
        return verify_merkle_proof(proof.siblings, proof.leaf, proof.root)

    @staticmethod
    def verify_payload(payload: Any) -> bool:
        """
        Verify anything exposing hex ``proof``, ``leaf_hash`` and ``merkle_root``.

        Accepts a VerificationPayload or an equivalent mapping.
        """
        if isinstance(payload, dict):
            get = payload.get
        else:
            def get(name: str) -> Any:
                return getattr(payload, name, None)
        proof = get("proof")
        leaf = get("leaf_hash")
        root = get("merkle_root")
        if proof is None or leaf is None or root is None:
            return False
        return verify_hex(proof, leaf, root)


__all__ = [
    "MerkleProof",
    "build_merkle_proof",
    "compute_root_from_proof",
    "verify_merkle_proof",
    "verify_hex",
    "MerkleProver",
    "MerkleVerifier",
]
