"""
Merkle Tree and Inclusion Proofs
Deterministic sorted-pair Merkle tree construction + proof generation/verification.

This module provides:
- MerkleTree / build_merkle_tree: addressable levels and root from leaf hashes
- MerkleProof / build_merkle_proof: sibling path for one leaf
- verify_merkle_proof: pure boolean check of a proof against a root

Canonical Commitment Rules:
1. Leaves: donation leaf hashes, used as-is
2. Parent hashing: sha256(min(a, b) + max(a, b))
3. Padding: Duplicate last node if odd number at any level
4. Empty tree: refused
5. Single leaf: root = leaf

Usage:
    from core.merkle import build_merkle_tree, build_merkle_proof, verify_merkle_proof

    tree = build_merkle_tree(leaf_hashes)
    proof = build_merkle_proof(tree, leaf_hashes[2])
    assert verify_merkle_proof(proof.siblings, leaf_hashes[2], tree.root)
"""
from .merkle_tree import (
    MerkleTree,
    merkle_parent,
    build_merkle_tree,
    build_merkle_root,
    compute_tree_height,
)

from .merkle_proofs import (
    MerkleProof,
    build_merkle_proof,
    compute_root_from_proof,
    verify_merkle_proof,
    verify_hex,
    MerkleProver,
    MerkleVerifier,
)


__all__ = [
    # Core types
    "MerkleTree",
    "MerkleProof",
    # Core functions
    "merkle_parent",
    "build_merkle_tree",
    "build_merkle_root",
    "compute_tree_height",
    "build_merkle_proof",
    "compute_root_from_proof",
    "verify_merkle_proof",
    "verify_hex",
    # Convenience classes
    "MerkleProver",
    "MerkleVerifier",
]
