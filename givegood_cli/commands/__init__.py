"""CLI command implementations."""

from givegood_cli.commands import anchor, hashing, prove, verify

__all__ = ["anchor", "hashing", "prove", "verify"]
