"""
CLI Main Entry Point

Parses command-line arguments and dispatches to subcommands.

Usage:
    python -m givegood_cli hash donations.json [--json]
    python -m givegood_cli root donations.json [--json]
    python -m givegood_cli prove donations.json <donation_id> [--out proof.json]
    python -m givegood_cli verify proof.json [--root HEX] [--json]
    python -m givegood_cli anchor donations.json [--no-wait] [--timeout S]
    python -m givegood_cli config --init

Environment Variables:
    GIVEGOOD_LEDGER_MODE        Ledger backend: fake or rpc (default: fake)
    GIVEGOOD_NETWORK            Solana cluster (default: devnet)
    GIVEGOOD_RPC_URL            JSON-RPC endpoint
    GIVEGOOD_RELAY_URL          Signing relay endpoint
    GIVEGOOD_ANCHOR_ACCOUNT     Anchor wallet public key
    GIVEGOOD_LOG_LEVEL          Log level (default: INFO)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Sequence

from core.config.runtime import get_default_config_template, load_runtime_config

from givegood_cli import __version__
from givegood_cli.commands import anchor, hashing, prove, verify


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="givegood",
        description="GiveGood anchoring CLI - hash donations, build and verify Merkle proofs, anchor batches.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to configuration file (default: ./givegood.yaml or ~/.config/givegood/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- hash command ---
    hash_parser = subparsers.add_parser(
        "hash",
        help="Print canonical serialization and leaf hash per donation",
    )
    hash_parser.add_argument("donations", type=str, help="JSON file of donation rows")
    hash_parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Hashing threads (default: 1)",
    )
    hash_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output machine-readable JSON",
    )
    hash_parser.set_defaults(func=hashing.hash_cmd)

    # --- root command ---
    root_parser = subparsers.add_parser(
        "root",
        help="Compute the Merkle root of a donations file",
    )
    root_parser.add_argument("donations", type=str, help="JSON file of donation rows")
    root_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output machine-readable JSON",
    )
    root_parser.set_defaults(func=hashing.root_cmd)

    # --- prove command ---
    prove_parser = subparsers.add_parser(
        "prove",
        help="Build the inclusion proof for one donation",
    )
    prove_parser.add_argument("donations", type=str, help="JSON file of donation rows")
    prove_parser.add_argument("donation_id", type=str, help="Donation to prove")
    prove_parser.add_argument(
        "--out", "-o",
        type=str,
        default=None,
        help="Write the proof JSON to this path (default: stdout)",
    )
    prove_parser.add_argument(
        "--include-record",
        action="store_true",
        default=False,
        help="Embed the donation record so verify can recompute the leaf",
    )
    prove_parser.set_defaults(func=prove.prove_cmd)

    # --- verify command ---
    verify_parser = subparsers.add_parser(
        "verify",
        help="Verify an inclusion proof offline",
        description="Fold the leaf hash with the proof and compare against the Merkle root.",
    )
    verify_parser.add_argument("proof_file", type=str, help="Proof JSON (as written by prove)")
    verify_parser.add_argument(
        "--root",
        type=str,
        default=None,
        help="Expected Merkle root, e.g. read from the on-chain memo (overrides the file)",
    )
    verify_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output machine-readable JSON report",
    )
    verify_parser.set_defaults(func=verify.verify_cmd)

    # --- anchor command ---
    anchor_parser = subparsers.add_parser(
        "anchor",
        help="Anchor a donations file as one batch",
        description="Open, close and submit a batch, then wait for finality.",
    )
    anchor_parser.add_argument("donations", type=str, help="JSON file of donation rows")
    anchor_parser.add_argument(
        "--no-wait",
        action="store_true",
        default=False,
        help="Return after submission without waiting for finality",
    )
    anchor_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Finality timeout in seconds (default: from config)",
    )
    anchor_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output the final batch as JSON",
    )
    anchor_parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Print tracebacks on unexpected errors",
    )
    anchor_parser.set_defaults(func=anchor.anchor_cmd)

    # --- config command ---
    config_parser = subparsers.add_parser(
        "config",
        help="Manage configuration",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        default=False,
        help="Create a template configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Show the effective configuration",
    )
    config_parser.add_argument(
        "--path",
        type=str,
        default=None,
        help="Config file path (default for --init: ./givegood.yaml)",
    )
    config_parser.set_defaults(func=config_cmd)

    return parser


def config_cmd(args: argparse.Namespace) -> int:
    """Handle config command."""
    if args.init:
        config_path = Path(args.path or "givegood.yaml")
        if config_path.exists():
            print(f"Error: Config file already exists: {config_path}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

        config_path.write_text(get_default_config_template())
        print(f"Created configuration file: {config_path}")
        print("\nEdit this file to configure your settings.")
        print("You can also use environment variables (GIVEGOOD_* prefix).")
        return EXIT_SUCCESS

    if args.show:
        config = load_runtime_config(Path(args.path)) if args.path else args.runtime_config
        print(json.dumps(config.to_dict(), indent=2))
        return EXIT_SUCCESS

    print("Usage: givegood config [--init|--show] [--path PATH]")
    print("  --init  Create a template configuration file")
    print("  --show  Show current configuration")
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0=success, 1=error, 2=verification failed)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    try:
        config = load_runtime_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    setup_logging(level=args.log_level or config.log_level)

    # Attach config to args for commands to use
    args.runtime_config = config

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except Exception as e:
        if getattr(args, "debug", False):
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    sys.exit(main())
