"""
Solana RPC Ledger Unit Tests
Tests for core/ledger/rpc.py against a scripted requests session.
"""
import json
from datetime import timedelta

import pytest
import requests

from core.config.runtime import LedgerConfig
from core.http.client import HttpClient, JsonRpcClient
from core.ledger import AlwaysFunded
from core.ledger.rpc import (
    MAX_MEMO_BYTES,
    SolanaRpcLedger,
    build_memo,
    get_explorer_url,
    parse_memo,
)
from core.receipts import ReceiptRecorder
from core.schemas import (
    FinalityConfirmed,
    FinalityFailed,
    FinalityPending,
    SubmissionError,
)
from orchestrator.lifecycle import BatchLifecycleController

from fixtures.common import make_store, make_three_donations


RPC_URL = "https://rpc.test"
RELAY_URL = "https://relay.test/submit"
ROOT = bytes.fromhex("3f7da09cfcd631a0fcbbd6b5a933a596b548c31a9192d8f3eccd706a5be12e9e")


class FakeResponse:
    def __init__(self, status_code=200, body=None, url=""):
        self.status_code = status_code
        if isinstance(body, (bytes, str)):
            self.content = body.encode() if isinstance(body, str) else body
        else:
            self.content = json.dumps(body).encode()
        self.headers = {"content-type": "application/json"}
        self.url = url
        self.elapsed = timedelta(milliseconds=5)


class FakeSession:
    """Routes relay posts and RPC calls to scripted answers."""

    def __init__(self):
        self.calls = []
        self.relay_responses = []
        self.rpc_results = {}
        self.rpc_errors = {}
        self.raise_on = set()

    def request(self, method, url, headers=None, params=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "headers": headers or {}, "json": json})
        if url in self.raise_on:
            raise requests.ConnectionError("connection refused")
        if url == RELAY_URL:
            status, body = self.relay_responses.pop(0)
            return FakeResponse(status, body, url)
        rpc_method = json["method"]
        if rpc_method in self.rpc_errors:
            body = {"jsonrpc": "2.0", "id": json["id"], "error": self.rpc_errors[rpc_method]}
        else:
            body = {"jsonrpc": "2.0", "id": json["id"], "result": self.rpc_results.get(rpc_method)}
        return FakeResponse(200, body, url)

    def close(self):
        pass

    def relay_calls(self):
        return [c for c in self.calls if c["url"] == RELAY_URL]

    def rpc_calls(self, method):
        return [c for c in self.calls if c["url"] == RPC_URL and c["json"]["method"] == method]


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def recorder():
    return ReceiptRecorder()


def make_ledger(session, recorder=None, **overrides):
    settings = dict(
        network="devnet",
        rpc_url=RPC_URL,
        relay_url=RELAY_URL,
        relay_api_key="relay-secret",
        anchor_account="AnchorWallet111",
        commitment="confirmed",
    )
    settings.update(overrides)
    config = LedgerConfig(**settings)
    http = HttpClient(session=session, recorder=recorder)
    rpc = JsonRpcClient(
        RPC_URL,
        http=HttpClient(session=session),
        recorder=recorder,
        network=config.network,
    )
    return SolanaRpcLedger(config, recorder=recorder, rpc=rpc, http=http)


class TestMemo:

    def test_compact_json_with_batch_id(self):
        memo = build_memo(ROOT, "batch-1")
        assert memo == (
            '{"type":"GIVEGOOD_BATCH","version":"1.0","batchId":"batch-1",'
            '"merkleRoot":"3f7da09cfcd631a0fcbbd6b5a933a596b548c31a9192d8f3eccd706a5be12e9e"}'
        )
        assert " " not in memo

    def test_batch_id_optional(self):
        memo = json.loads(build_memo(ROOT))
        assert "batchId" not in memo
        assert memo["merkleRoot"] == ROOT.hex()

    def test_hex_root_accepted(self):
        assert build_memo(ROOT.hex(), "b") == build_memo(ROOT, "b")

    def test_parse_round_trip(self):
        memo = parse_memo(build_memo(ROOT, "batch-1"))
        assert memo["batchId"] == "batch-1"
        assert memo["merkleRoot"] == ROOT.hex()

    def test_parse_rejects_foreign_memo(self):
        with pytest.raises(ValueError):
            parse_memo('{"type":"OTHER","version":"1.0"}')
        with pytest.raises(ValueError):
            parse_memo('{"type":"GIVEGOOD_BATCH","version":"2.0"}')

    def test_size_limit(self):
        with pytest.raises(ValueError, match="too large"):
            build_memo(ROOT, "x" * MAX_MEMO_BYTES)


class TestExplorerUrl:

    def test_devnet_has_cluster(self):
        assert get_explorer_url("sig", "devnet") == "https://solscan.io/tx/sig?cluster=devnet"

    def test_mainnet_has_no_cluster(self):
        assert get_explorer_url("sig", "mainnet-beta") == "https://solscan.io/tx/sig"

    def test_ledger_uses_configured_base(self, session):
        ledger = make_ledger(session, explorer_base_url="https://explorer.test")
        assert ledger.explorer_url("sig") == "https://explorer.test/tx/sig?cluster=devnet"


class TestSubmit:

    def test_posts_memo_to_relay(self, session):
        session.relay_responses.append((200, {"signature": "5igSig"}))
        ledger = make_ledger(session)

        assert ledger.submit(ROOT, batch_id="batch-1") == "5igSig"

        [call] = session.relay_calls()
        assert call["method"] == "POST"
        assert call["headers"]["Authorization"] == "Bearer relay-secret"
        body = call["json"]
        assert parse_memo(body["memo"])["merkleRoot"] == ROOT.hex()
        assert body["account"] == "AnchorWallet111"
        assert body["network"] == "devnet"
        assert body["idempotencyKey"] == f"batch-1:{ROOT.hex()}"

    def test_idempotency_key_stable_across_attempts(self, session):
        session.relay_responses.extend([(503, {"error": "busy"}), (200, {"signature": "s"})])
        ledger = make_ledger(session)

        with pytest.raises(SubmissionError):
            ledger.submit(ROOT, batch_id="batch-1")
        ledger.submit(ROOT, batch_id="batch-1")

        keys = {c["json"]["idempotencyKey"] for c in session.relay_calls()}
        assert len(keys) == 1

    def test_no_auth_header_without_key(self, session):
        session.relay_responses.append((200, {"signature": "s"}))
        ledger = make_ledger(session, relay_api_key=None)
        ledger.submit(ROOT, batch_id="b")
        assert "Authorization" not in session.relay_calls()[0]["headers"]

    @pytest.mark.parametrize("status", [500, 502, 503, 429])
    def test_transient_status_is_retryable(self, session, status):
        session.relay_responses.append((status, {"error": "x"}))
        with pytest.raises(SubmissionError) as exc:
            make_ledger(session).submit(ROOT, batch_id="b")
        assert exc.value.retryable is True

    @pytest.mark.parametrize("status", [400, 401, 403, 422])
    def test_refusal_is_not_retryable(self, session, status):
        session.relay_responses.append((status, {"error": "no"}))
        with pytest.raises(SubmissionError) as exc:
            make_ledger(session).submit(ROOT, batch_id="b")
        assert exc.value.retryable is False

    def test_transport_failure(self, session):
        session.raise_on.add(RELAY_URL)
        with pytest.raises(SubmissionError, match="unreachable"):
            make_ledger(session).submit(ROOT, batch_id="b")

    def test_missing_signature(self, session):
        session.relay_responses.append((200, {"status": "ok"}))
        with pytest.raises(SubmissionError, match="no transaction signature"):
            make_ledger(session).submit(ROOT, batch_id="b")

    def test_invalid_json(self, session):
        session.relay_responses.append((200, "not json"))
        with pytest.raises(SubmissionError, match="invalid JSON"):
            make_ledger(session).submit(ROOT, batch_id="b")

    def test_relay_required(self, session):
        with pytest.raises(SubmissionError) as exc:
            make_ledger(session, relay_url=None).submit(ROOT, batch_id="b")
        assert exc.value.retryable is False
        assert session.calls == []

    def test_payload_length_checked(self, session):
        with pytest.raises(SubmissionError):
            make_ledger(session).submit(b"\x00" * 31, batch_id="b")

    def test_relay_receipt_redacts_key(self, session, recorder):
        session.relay_responses.append((200, {"signature": "s"}))
        make_ledger(session, recorder).submit(ROOT, batch_id="b")
        [receipt] = [r for r in recorder.get_receipts() if r.kind == "http"]
        assert receipt.status_code == 200
        assert receipt.request["headers"]["Authorization"] == "***"
        assert receipt.batch_id == "b"
        assert recorder.latest("b") is receipt


class TestFinality:

    def test_unknown_signature_pending(self, session):
        session.rpc_results["getSignatureStatuses"] = {"value": [None]}
        assert isinstance(make_ledger(session).get_finality("sig"), FinalityPending)

    def test_processed_below_commitment_pending(self, session):
        session.rpc_results["getSignatureStatuses"] = {
            "value": [{"slot": 10, "err": None, "confirmationStatus": "processed"}]
        }
        assert isinstance(make_ledger(session).get_finality("sig"), FinalityPending)
        assert session.rpc_calls("getTransaction") == []

    def test_finalized_commitment_waits_for_finalized(self, session):
        session.rpc_results["getSignatureStatuses"] = {
            "value": [{"slot": 10, "err": None, "confirmationStatus": "confirmed"}]
        }
        ledger = make_ledger(session, commitment="finalized")
        assert isinstance(ledger.get_finality("sig"), FinalityPending)

    def test_transaction_error_failed(self, session):
        session.rpc_results["getSignatureStatuses"] = {
            "value": [{"slot": 10, "err": {"InstructionError": [0, "Custom"]}, "confirmationStatus": "confirmed"}]
        }
        status = make_ledger(session).get_finality("sig")
        assert isinstance(status, FinalityFailed)
        assert "InstructionError" in status.reason

    def test_confirmed_reads_transaction(self, session):
        session.rpc_results["getSignatureStatuses"] = {
            "value": [{"slot": 10, "err": None, "confirmationStatus": "finalized"}]
        }
        session.rpc_results["getTransaction"] = {
            "slot": 12,
            "blockTime": 1738492200,
            "meta": {"fee": 5000},
        }
        status = make_ledger(session).get_finality("sig")

        assert isinstance(status, FinalityConfirmed)
        assert status.slot == 12
        assert status.fee == 5000
        assert status.timestamp.isoformat() == "2025-02-02T10:30:00+00:00"

    def test_confirmed_without_transaction_details(self, session):
        session.rpc_results["getSignatureStatuses"] = {
            "value": [{"slot": 10, "err": None, "confirmationStatus": "confirmed"}]
        }
        session.rpc_errors["getTransaction"] = {"code": -32009, "message": "not available"}
        status = make_ledger(session).get_finality("sig")

        assert isinstance(status, FinalityConfirmed)
        assert status.slot == 10
        assert status.timestamp is None
        assert status.fee is None

    def test_rpc_error_raises_submission_error(self, session):
        session.rpc_errors["getSignatureStatuses"] = {"code": -32005, "message": "node behind"}
        with pytest.raises(SubmissionError, match="Finality lookup failed"):
            make_ledger(session).get_finality("sig")

    def test_transport_error_raises_submission_error(self, session):
        session.raise_on.add(RPC_URL)
        with pytest.raises(SubmissionError):
            make_ledger(session).get_finality("sig")


class TestBalance:

    def test_reads_value(self, session):
        session.rpc_results["getBalance"] = {"context": {"slot": 1}, "value": 2_000_000}
        assert make_ledger(session).get_balance() == 2_000_000
        [call] = session.rpc_calls("getBalance")
        assert call["json"]["params"][0] == "AnchorWallet111"

    def test_explicit_account(self, session):
        session.rpc_results["getBalance"] = {"value": 7}
        assert make_ledger(session).get_balance("Other111") == 7
        assert session.rpc_calls("getBalance")[0]["json"]["params"][0] == "Other111"

    def test_account_required(self, session):
        with pytest.raises(ValueError):
            make_ledger(session, anchor_account=None).get_balance()

    def test_rpc_receipts_recorded(self, session, recorder):
        session.rpc_results["getBalance"] = {"value": 1}
        make_ledger(session, recorder).get_balance()
        [receipt] = recorder.get_receipts()
        assert receipt.kind == "rpc"
        assert receipt.rpc_method == "getBalance"
        assert receipt.network == "devnet"


class TestBatchEventReceipts:
    """Relay receipts are summarized in the batch's submit events."""

    def make_controller(self, session, recorder):
        return BatchLifecycleController(
            make_store(make_three_donations()),
            make_ledger(session, recorder),
            AlwaysFunded(),
            recorder=recorder,
        )

    def test_submitted_event_references_receipt(self, session, recorder):
        session.relay_responses.append((200, {"signature": "sig-1"}))
        controller = self.make_controller(session, recorder)
        controller.open_batch("b-1")

        controller.close_batch("b-1")

        [event] = [e for e in controller.list_events("b-1") if e.kind == "submitted"]
        receipt = recorder.latest("b-1")
        assert event.details["receipt"] == receipt.summary()
        assert event.details["receipt"]["request_hash"] == receipt.request_hash

    def test_each_failed_attempt_references_its_receipt(self, session, recorder):
        session.relay_responses.extend([(503, {"error": "busy"}), (200, {"signature": "sig-2"})])
        controller = self.make_controller(session, recorder)
        controller.open_batch("b-2")

        report = controller.close_batch("b-2")
        assert report.submit_error is not None
        controller.submit_batch("b-2")

        events = {e.kind: e for e in controller.list_events("b-2")}
        failed_ref = events["submit_failed"].details["receipt"]["receipt_id"]
        submitted_ref = events["submitted"].details["receipt"]["receipt_id"]
        assert failed_ref != submitted_ref
        assert [r.receipt_id for r in recorder.get_receipts("b-2")] == [failed_ref, submitted_ref]

    def test_no_receipt_when_relay_never_called(self, session, recorder):
        controller = BatchLifecycleController(
            make_store(make_three_donations()),
            make_ledger(session, recorder, relay_url=None),
            AlwaysFunded(),
            recorder=recorder,
        )
        controller.open_batch("b-3")

        controller.close_batch("b-3")

        [event] = [e for e in controller.list_events("b-3") if e.kind == "submit_failed"]
        assert "receipt" not in event.details
