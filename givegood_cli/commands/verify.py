"""
CLI Verify Command

Check an inclusion proof offline. The proof file carries "proof",
"merkle_root" and either "leaf_hash" or a "donation" record; with a
record the leaf hash is recomputed and must match any given leaf_hash.

Usage:
    givegood verify proof.json [--root HEX] [--json]

Exit codes: 0 included, 1 runtime error, 2 verification failed.
"""

from __future__ import annotations

import json
import logging
import sys
from argparse import Namespace
from typing import Any

from core.codec import leaf_hash_hex
from core.merkle import verify_hex
from core.schemas import CodecError, UnsupportedCodecVersionError, assert_supported_codec_version

from givegood_cli.io import CLIInputError, load_json_file


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def verify_cmd(args: Namespace) -> int:
    try:
        data = load_json_file(args.proof_file)
    except CLIInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    if not isinstance(data, dict):
        print("Error: proof file must contain a JSON object", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    codec_version = data.get("codec_version")
    if codec_version is not None:
        try:
            assert_supported_codec_version(codec_version)
        except UnsupportedCodecVersionError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

    root = args.root or data.get("merkle_root")
    proof = data.get("proof", [])
    if not root or not isinstance(proof, list):
        print("Error: proof file needs 'merkle_root' and a 'proof' list", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    report: dict[str, Any] = {"merkle_root": root, "proof_length": len(proof)}
    leaf = data.get("leaf_hash")

    donation = data.get("donation")
    if donation is not None:
        try:
            recomputed = leaf_hash_hex(donation)
        except CodecError as e:
            print(f"Error: donation record is malformed: {e.message}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR
        if leaf is not None and leaf != recomputed:
            report.update(valid=False, leaf_hash=recomputed, reason="leaf hash does not match donation record")
            return _finish(report, args.json)
        leaf = recomputed

    if not leaf:
        print("Error: proof file needs 'leaf_hash' or 'donation'", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    report["leaf_hash"] = leaf
    report["valid"] = verify_hex(proof, leaf, root)
    if not report["valid"]:
        report["reason"] = "proof does not connect the leaf to the root"
    return _finish(report, args.json)


def _finish(report: dict[str, Any], as_json: bool) -> int:
    if as_json:
        print(json.dumps(report, indent=2))
    elif report["valid"]:
        print(f"VALID: leaf {report['leaf_hash'][:16]}... is included under {report['merkle_root'][:16]}...")
    else:
        print(f"INVALID: {report['reason']}")
    return EXIT_SUCCESS if report["valid"] else EXIT_VERIFICATION_FAILED
