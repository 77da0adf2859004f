"""
Runtime Configuration Unit Tests
Tests for core/config/runtime.py
"""
import json

import pytest
import yaml

from core.config.runtime import (
    RuntimeConfig,
    get_default_config_template,
    load_runtime_config,
)
from orchestrator.engine import create_engine


class TestDefaults:

    def test_defaults(self):
        config = RuntimeConfig()
        assert config.ledger.mode == "fake"
        assert config.ledger.network == "devnet"
        assert config.ledger.rpc_url == "https://api.devnet.solana.com"
        assert config.ledger.min_balance == 10_000
        assert config.batching.max_batch_size == 100
        assert config.finality.timeout_s == 60
        assert config.retry.max_retries == 5
        assert config.retry.base_delay_ms == 1000

    def test_rpc_url_follows_network(self):
        config = RuntimeConfig.from_dict({"ledger": {"network": "mainnet-beta"}})
        assert config.ledger.rpc_url == "https://api.mainnet-beta.solana.com"

    def test_explicit_rpc_url_kept(self):
        config = RuntimeConfig.from_dict({"ledger": {"rpc_url": "http://localhost:8899"}})
        assert config.ledger.rpc_url == "http://localhost:8899"

    def test_template_is_valid_yaml(self):
        data = yaml.safe_load(get_default_config_template())
        config = RuntimeConfig.from_dict(data)
        assert config.ledger.mode == "fake"
        assert config.retry.max_retries == 5


class TestEnvOverrides:

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GIVEGOOD_LEDGER_MODE", "rpc")
        monkeypatch.setenv("GIVEGOOD_RELAY_URL", "https://relay.example/submit")
        monkeypatch.setenv("GIVEGOOD_MAX_BATCH_SIZE", "25")
        monkeypatch.setenv("GIVEGOOD_FINALITY_TIMEOUT", "12.5")
        monkeypatch.setenv("GIVEGOOD_MAX_RETRIES", "3")

        config = RuntimeConfig.from_env()

        assert config.ledger.mode == "rpc"
        assert config.ledger.relay_url == "https://relay.example/submit"
        assert config.batching.max_batch_size == 25
        assert config.finality.timeout_s == 12.5
        assert config.retry.max_retries == 3

    def test_receipt_limit_from_env(self, monkeypatch):
        monkeypatch.setenv("GIVEGOOD_RECEIPT_LIMIT", "50")
        config = RuntimeConfig.from_env()
        assert config.ledger.receipt_limit == 50
        assert create_engine(config).recorder.max_receipts == 50

    def test_env_beats_file(self, tmp_path, monkeypatch):
        path = tmp_path / "givegood.yaml"
        path.write_text("ledger:\n  network: testnet\nbatching:\n  max_batch_size: 10\n")
        monkeypatch.setenv("GIVEGOOD_MAX_BATCH_SIZE", "50")

        config = load_runtime_config(path)

        assert config.ledger.network == "testnet"
        assert config.batching.max_batch_size == 50

    def test_network_override_moves_rpc_url(self, monkeypatch):
        monkeypatch.setenv("GIVEGOOD_NETWORK", "testnet")
        config = RuntimeConfig().with_env_overrides()
        assert config.ledger.rpc_url == "https://api.testnet.solana.com"

    def test_no_overrides_returns_same_object(self):
        config = RuntimeConfig()
        assert config.with_env_overrides() is config


class TestFiles:

    def test_json_file(self, tmp_path):
        path = tmp_path / "givegood.json"
        path.write_text(json.dumps({"retry": {"max_retries": 2}, "log_level": "DEBUG"}))
        config = RuntimeConfig.from_file(path)
        assert config.retry.max_retries == 2
        assert config.log_level == "DEBUG"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RuntimeConfig.from_file(tmp_path / "absent.yaml")
        with pytest.raises(FileNotFoundError):
            RuntimeConfig.from_file(tmp_path / "absent.json")

    def test_search_path(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "givegood.yaml").write_text("finality:\n  poll_interval_s: 7\n")
        assert load_runtime_config().finality.poll_interval_s == 7

    def test_unknown_key_rejected(self):
        with pytest.raises(TypeError):
            RuntimeConfig.from_dict({"ledger": {"colour": "blue"}})


class TestSerialization:

    def test_secrets_not_exported(self):
        config = RuntimeConfig.from_dict({"ledger": {"relay_api_key": "s3cret"}})
        assert "s3cret" not in json.dumps(config.to_dict())

    def test_to_dict_round_trip(self):
        config = RuntimeConfig.from_dict({"batching": {"max_batch_size": 42}})
        data = config.to_dict()
        assert data["batching"]["max_batch_size"] == 42
        assert data["ledger"]["mode"] == "fake"
