"""
CLI Anchor Command

Run one batch end to end with the configured ledger: load donations
into an in-memory store, open and close a batch, and wait for finality.
With the default `ledger.mode: fake` nothing leaves the process.

Usage:
    givegood anchor donations.json [--no-wait] [--timeout S] [--json]
"""

from __future__ import annotations

import json
import logging
import sys
from argparse import Namespace

from core.config.runtime import RuntimeConfig
from core.ledger import InMemoryDonationStore
from core.schemas import AnchorException, FinalityTimeoutError

from givegood_cli.io import CLIInputError, load_donations
from orchestrator.engine import create_engine


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1


def anchor_cmd(args: Namespace) -> int:
    config: RuntimeConfig = args.runtime_config
    try:
        rows = load_donations(args.donations)
    except CLIInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    store = InMemoryDonationStore()
    try:
        for row in rows:
            store.add_donation(row)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    engine = create_engine(config, store=store)
    controller = engine.controller

    try:
        batch = controller.open_batch()
        report = controller.close_batch(batch.id)
        for excluded in report.excluded:
            print(
                f"Warning: excluded {excluded.donation_id or f'position {excluded.position}'}: "
                f"{excluded.error.message}",
                file=sys.stderr,
            )
        if report.submit_error is not None:
            raise report.submit_error
        if not args.no_wait:
            controller.await_finality(batch.id, timeout_s=args.timeout)
    except FinalityTimeoutError as e:
        print(f"Warning: {e.message}; batch left anchoring", file=sys.stderr)
    except AnchorException as e:
        print(f"Error: [{e.code}] {e.message}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    final = controller.get_batch(batch.id)
    summary = final.model_dump(mode="json")
    explorer = engine.ledger.explorer_url(final.onchain_tx_signature) if final.onchain_tx_signature else None
    if explorer:
        summary["explorer_url"] = explorer

    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        print(f"Batch:       {final.id}")
        print(f"Status:      {final.status.value}")
        print(f"Donations:   {final.donation_count}")
        print(f"Merkle root: {final.merkle_root}")
        print(f"Signature:   {final.onchain_tx_signature or '-'}")
        if final.onchain_slot is not None:
            print(f"Slot:        {final.onchain_slot}")
        if explorer:
            print(f"Explorer:    {explorer}")
    return EXIT_SUCCESS
