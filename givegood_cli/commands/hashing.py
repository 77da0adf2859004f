"""
CLI Hash and Root Commands

Hash a file of donations with the leaf codec, and compute the Merkle
root over the well-formed ones.

Usage:
    givegood hash donations.json [--json] [--workers N]
    givegood root donations.json [--json]
"""

from __future__ import annotations

import json
import logging
import sys
from argparse import Namespace

from core.codec import hash_donations, serialize_str
from core.crypto.hashing import to_hex
from core.merkle import build_merkle_tree
from core.schemas import CODEC_VERSION, EmptyBatchError

from givegood_cli.io import CLIInputError, load_donations


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1


def hash_cmd(args: Namespace) -> int:
    """Print the canonical serialization and leaf hash of each donation."""
    try:
        rows = load_donations(args.donations)
    except CLIInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    result = hash_donations(rows, workers=getattr(args, "workers", 1) or 1)
    errors = dict(result.failures)

    entries = []
    for index, row in enumerate(rows):
        if index in errors:
            entries.append({
                "position": index,
                "id": row.get("id"),
                "error": errors[index].message,
            })
            continue
        record = result.records[index]
        entries.append({
            "position": index,
            "id": record.id,
            "serialized": serialize_str(record),
            "leaf_hash": to_hex(result.hashes[index]),
        })

    if args.json:
        print(json.dumps({
            "codec_version": CODEC_VERSION,
            "ok": not errors,
            "leaves": entries,
        }, indent=2))
    else:
        for entry in entries:
            if "error" in entry:
                print(f"[{entry['position']}] {entry['id']}: ERROR {entry['error']}")
            else:
                print(f"[{entry['position']}] {entry['id']}: {entry['leaf_hash']}")
                print(f"    {entry['serialized']}")

    return EXIT_RUNTIME_ERROR if errors else EXIT_SUCCESS


def root_cmd(args: Namespace) -> int:
    """Print the Merkle root over the well-formed donations, in file order."""
    try:
        rows = load_donations(args.donations)
    except CLIInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    result = hash_donations(rows)
    for index, error in result.failures:
        print(f"Warning: excluding position {index}: {error.message}", file=sys.stderr)

    try:
        tree = build_merkle_tree([digest for _, digest in result.included()])
    except EmptyBatchError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    summary = {
        "merkle_root": tree.root_hex,
        "leaf_count": tree.leaf_count,
        "tree_height": tree.height,
        "excluded": [index for index, _ in result.failures],
        "codec_version": CODEC_VERSION,
    }
    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        print(f"Merkle root: {tree.root_hex}")
        print(f"Leaves:      {tree.leaf_count}")
        print(f"Height:      {tree.height}")
        if result.failures:
            print(f"Excluded:    {len(result.failures)}")
    return EXIT_SUCCESS
