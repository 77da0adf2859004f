"""
GiveGood Anchor CLI

Command-line interface for the donation anchoring engine.

Usage:
    python -m givegood_cli hash donations.json
    python -m givegood_cli root donations.json
    python -m givegood_cli prove donations.json <donation_id> --out proof.json
    python -m givegood_cli verify proof.json
    python -m givegood_cli anchor donations.json
"""

__version__ = "0.1.0"
