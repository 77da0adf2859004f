"""
Runtime Configuration Module

Provides configuration loading and management for the anchoring engine.
"""

from .runtime import (
    BatchingConfig,
    FinalityConfig,
    LedgerConfig,
    RetryConfig,
    RuntimeConfig,
    StoreConfig,
    get_default_config,
    get_default_config_template,
    load_runtime_config,
    set_default_config,
)

__all__ = [
    "BatchingConfig",
    "FinalityConfig",
    "LedgerConfig",
    "RetryConfig",
    "RuntimeConfig",
    "StoreConfig",
    "get_default_config",
    "get_default_config_template",
    "load_runtime_config",
    "set_default_config",
]
