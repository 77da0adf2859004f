"""
CLI Prove Command

Build the inclusion proof for one donation of a donations file. The
output has the same shape as the API's proof payload and is accepted by
`givegood verify`.

Usage:
    givegood prove donations.json <donation_id> [--out proof.json] [--include-record]
"""

from __future__ import annotations

import logging
import sys
from argparse import Namespace

from core.codec import hash_donations
from core.crypto.hashing import to_hex
from core.merkle import build_merkle_proof, build_merkle_tree
from core.schemas import CODEC_VERSION

from givegood_cli.io import CLIInputError, load_donations, write_json


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1


def prove_cmd(args: Namespace) -> int:
    try:
        rows = load_donations(args.donations)
    except CLIInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    result = hash_donations(rows)
    included = result.included()
    index = next(
        (i for i, (record, _) in enumerate(included) if record.id == args.donation_id),
        None,
    )
    if index is None:
        print(f"Error: donation {args.donation_id} not found among well-formed donations", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    tree = build_merkle_tree([digest for _, digest in included])

    proof = build_merkle_proof(tree, index=index)
    record = included[index][0]
    payload = {
        "donation_id": record.id,
        "leaf_hash": to_hex(proof.leaf),
        "leaf_index": proof.index,
        "merkle_root": tree.root_hex,
        "proof": proof.siblings_hex(),
        "codec_version": CODEC_VERSION,
    }
    if args.include_record:
        payload["donation"] = record.model_dump(mode="json")

    write_json(payload, args.out)
    if args.out:
        print(f"Wrote proof for {record.id} (leaf {proof.index}, {len(proof.siblings)} siblings) to {args.out}")
    return EXIT_SUCCESS
