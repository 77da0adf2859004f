"""
Runtime Configuration

Central configuration for batching, ledger access, finality polling and
retry policy.
"""

from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()


# Environment variable prefix
ENV_PREFIX = "GIVEGOOD_"

_RPC_URLS = {
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
}


@dataclass
class LedgerConfig:
    """Configuration for the ledger submission service."""
    mode: str = "fake"  # "fake" or "rpc"
    network: str = "devnet"  # mainnet-beta | devnet | testnet
    rpc_url: Optional[str] = None
    relay_url: Optional[str] = None
    relay_api_key: Optional[str] = None
    anchor_account: Optional[str] = None
    commitment: str = "confirmed"
    min_balance: int = 10_000  # lamports
    explorer_base_url: str = "https://solscan.io"
    timeout: float = 30.0
    receipt_limit: int = 500  # receipts kept in memory, oldest dropped first

    def __post_init__(self):
        if self.rpc_url is None:
            self.rpc_url = _RPC_URLS.get(self.network, _RPC_URLS["devnet"])


@dataclass
class BatchingConfig:
    """Configuration for batch close."""
    max_batch_size: int = 100
    min_batch_size: int = 1
    hash_workers: int = 4


@dataclass
class FinalityConfig:
    """Configuration for finality polling."""
    timeout_s: float = 60.0
    poll_interval_s: float = 2.0


@dataclass
class RetryConfig:
    """Configuration for idempotent resubmission."""
    max_retries: int = 5
    base_delay_ms: int = 1000


@dataclass
class StoreConfig:
    """Configuration for the donation store."""
    seed_file: Optional[str] = None


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration for the anchoring engine.

    Can be loaded from:
    - Environment variables
    - YAML or JSON file
    - Programmatic construction
    """
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    batching: BatchingConfig = field(default_factory=BatchingConfig)
    finality: FinalityConfig = field(default_factory=FinalityConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    log_level: str = "INFO"
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.

        Supported variables:
        - GIVEGOOD_LEDGER_MODE: fake | rpc
        - GIVEGOOD_NETWORK: mainnet-beta | devnet | testnet
        - GIVEGOOD_RPC_URL: JSON-RPC endpoint
        - GIVEGOOD_RELAY_URL / GIVEGOOD_RELAY_API_KEY: signing relay
        - GIVEGOOD_ANCHOR_ACCOUNT: public key of the anchoring wallet
        - GIVEGOOD_MIN_BALANCE: minimum balance (lamports) to submit
        - GIVEGOOD_RECEIPT_LIMIT: ledger call receipts kept in memory
        - GIVEGOOD_MAX_BATCH_SIZE / GIVEGOOD_MIN_BATCH_SIZE
        - GIVEGOOD_FINALITY_TIMEOUT: seconds
        - GIVEGOOD_MAX_RETRIES
        - GIVEGOOD_SEED_FILE: JSON file of donations to load at startup
        - GIVEGOOD_LOG_LEVEL
        """
        overrides: dict[str, Any] = {}

        def _env(name: str) -> Optional[str]:
            return os.getenv(f"{ENV_PREFIX}{name}")

        # Ledger settings
        ledger_keys = {
            "LEDGER_MODE": "mode",
            "NETWORK": "network",
            "RPC_URL": "rpc_url",
            "RELAY_URL": "relay_url",
            "RELAY_API_KEY": "relay_api_key",
            "ANCHOR_ACCOUNT": "anchor_account",
            "COMMITMENT": "commitment",
        }
        for env_name, key in ledger_keys.items():
            if _env(env_name):
                overrides.setdefault("ledger", {})[key] = _env(env_name)
        if _env("MIN_BALANCE"):
            overrides.setdefault("ledger", {})["min_balance"] = int(_env("MIN_BALANCE"))
        if _env("RECEIPT_LIMIT"):
            overrides.setdefault("ledger", {})["receipt_limit"] = int(_env("RECEIPT_LIMIT"))

        # Batching settings
        if _env("MAX_BATCH_SIZE"):
            overrides.setdefault("batching", {})["max_batch_size"] = int(_env("MAX_BATCH_SIZE"))
        if _env("MIN_BATCH_SIZE"):
            overrides.setdefault("batching", {})["min_batch_size"] = int(_env("MIN_BATCH_SIZE"))

        # Finality / retry
        if _env("FINALITY_TIMEOUT"):
            overrides.setdefault("finality", {})["timeout_s"] = float(_env("FINALITY_TIMEOUT"))
        if _env("MAX_RETRIES"):
            overrides.setdefault("retry", {})["max_retries"] = int(_env("MAX_RETRIES"))

        if _env("SEED_FILE"):
            overrides.setdefault("store", {})["seed_file"] = _env("SEED_FILE")

        if _env("LOG_LEVEL"):
            overrides["log_level"] = _env("LOG_LEVEL")

        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """Load configuration purely from environment variables."""
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a .json, .yaml or .yml file."""
        path = Path(path)
        if path.suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        return cls(
            ledger=LedgerConfig(**data.get("ledger", {})),
            batching=BatchingConfig(**data.get("batching", {})),
            finality=FinalityConfig(**data.get("finality", {})),
            retry=RetryConfig(**data.get("retry", {})),
            store=StoreConfig(**data.get("store", {})),
            log_level=data.get("log_level", "INFO"),
            extra=data.get("extra", {}),
        )

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)
        for section in ("ledger", "batching", "finality", "retry", "store"):
            for key, value in overrides.get(section, {}).items():
                setattr(getattr(new_config, section), key, value)

        ledger_overrides = overrides.get("ledger", {})
        if "network" in ledger_overrides and "rpc_url" not in ledger_overrides:
            new_config.ledger.rpc_url = _RPC_URLS.get(
                new_config.ledger.network, new_config.ledger.rpc_url
            )

        if "log_level" in overrides:
            new_config.log_level = overrides["log_level"]

        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary (secrets omitted)."""
        return {
            "ledger": {
                "mode": self.ledger.mode,
                "network": self.ledger.network,
                "rpc_url": self.ledger.rpc_url,
                "relay_url": self.ledger.relay_url,
                "anchor_account": self.ledger.anchor_account,
                "commitment": self.ledger.commitment,
                "min_balance": self.ledger.min_balance,
                "receipt_limit": self.ledger.receipt_limit,
            },
            "batching": {
                "max_batch_size": self.batching.max_batch_size,
                "min_batch_size": self.batching.min_batch_size,
                "hash_workers": self.batching.hash_workers,
            },
            "finality": {
                "timeout_s": self.finality.timeout_s,
                "poll_interval_s": self.finality.poll_interval_s,
            },
            "retry": {
                "max_retries": self.retry.max_retries,
                "base_delay_ms": self.retry.base_delay_ms,
            },
            "store": {
                "seed_file": self.store.seed_file,
            },
            "log_level": self.log_level,
            "extra": self.extra,
        }


def load_runtime_config(config_path: Path | None = None) -> RuntimeConfig:
    """
    Load RuntimeConfig from a config file, then overlay environment variables.

    Search order when no path is given:
      1. ./givegood.yaml
      2. ./givegood.json
      3. ~/.config/givegood/config.yaml

    Environment variables ALWAYS override config file values.
    """
    if config_path is not None:
        return RuntimeConfig.from_file(config_path).with_env_overrides()

    search_paths = [
        Path.cwd() / "givegood.yaml",
        Path.cwd() / "givegood.json",
        Path.home() / ".config" / "givegood" / "config.yaml",
    ]
    for path in search_paths:
        if path.exists():
            return RuntimeConfig.from_file(path).with_env_overrides()

    return RuntimeConfig().with_env_overrides()


def get_default_config_template() -> str:
    """Get a template configuration file (YAML)."""
    return """\
ledger:
  mode: fake            # fake | rpc
  network: devnet       # mainnet-beta | devnet | testnet
  rpc_url: null         # defaults to the public endpoint of the network
  relay_url: null       # signing relay that broadcasts memo transactions
  relay_api_key: null
  anchor_account: null  # public key of the anchoring wallet
  commitment: confirmed
  min_balance: 10000    # lamports
  receipt_limit: 500    # ledger call receipts kept in memory
batching:
  max_batch_size: 100
  min_batch_size: 1
  hash_workers: 4
finality:
  timeout_s: 60
  poll_interval_s: 2
retry:
  max_retries: 5
  base_delay_ms: 1000
store:
  seed_file: null
log_level: INFO
"""


# Global default configuration
_default_config: Optional[RuntimeConfig] = None


def get_default_config() -> RuntimeConfig:
    """Get the default runtime configuration."""
    global _default_config
    if _default_config is None:
        _default_config = RuntimeConfig.from_env()
    return _default_config


def set_default_config(config: RuntimeConfig) -> None:
    """Set the default runtime configuration."""
    global _default_config
    _default_config = config
