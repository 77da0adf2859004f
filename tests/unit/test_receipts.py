"""
Receipt Recorder Unit Tests
Tests for core/receipts/

1. Receipt ids - kind, request hash prefix, nonce
2. Completion - hashes, timing, status codes, redaction
3. Retention - bounded log, per-batch lookup
"""
import re
import threading

import pytest

from core.receipts import HTTPReceipt, ReceiptRecorder, RPCReceipt


class TestReceiptIds:

    def test_id_format(self):
        receipt = ReceiptRecorder().start_rpc(endpoint="https://rpc", rpc_method="getBalance")
        assert re.fullmatch(r"rc_rpc_[0-9a-f]{12}_[0-9a-f]{8}", receipt.receipt_id)

    def test_same_request_distinct_ids_shared_prefix(self):
        recorder = ReceiptRecorder()
        a = recorder.start_rpc(endpoint="https://rpc", rpc_method="getBalance", params=["x"])
        b = recorder.start_rpc(endpoint="https://rpc", rpc_method="getBalance", params=["x"])
        assert a.receipt_id != b.receipt_id
        assert a.receipt_id[:19] == b.receipt_id[:19]


class TestCompletion:

    def test_completed_http_receipt(self):
        recorder = ReceiptRecorder()
        receipt = recorder.start_http(
            method="POST",
            url="https://relay/submit",
            body={"memo": "m"},
            batch_id="b-1",
        )
        assert len(recorder) == 0

        recorder.complete(receipt, response={"status_code": 200}, status_code=200)

        [done] = recorder.get_receipts()
        assert isinstance(done, HTTPReceipt)
        assert done.batch_id == "b-1"
        assert done.status_code == 200
        assert done.is_successful
        assert re.fullmatch(r"[0-9a-f]{64}", done.request_hash)
        assert re.fullmatch(r"[0-9a-f]{64}", done.response_hash)
        assert done.duration_ms is not None

    def test_error_receipt(self):
        recorder = ReceiptRecorder()
        receipt = recorder.start_rpc(endpoint="https://rpc", rpc_method="getTransaction", network="devnet")
        recorder.complete(receipt, error="timeout")

        [done] = recorder.get_receipts()
        assert isinstance(done, RPCReceipt)
        assert done.network == "devnet"
        assert not done.is_successful
        assert done.response_hash is None
        assert done.summary()["error"] == "timeout"

    def test_identical_requests_hash_identically(self):
        recorder = ReceiptRecorder()
        a = recorder.complete(recorder.start_rpc(endpoint="e", rpc_method="m", params=[1]), response={"r": 1})
        b = recorder.complete(recorder.start_rpc(endpoint="e", rpc_method="m", params=[1]), response={"r": 2})
        assert a.request_hash == b.request_hash
        assert a.response_hash != b.response_hash

    def test_credentials_redacted(self):
        receipt = ReceiptRecorder().start_http(
            method="POST",
            url="https://relay/submit",
            headers={"Authorization": "Bearer s3cret", "X-Api-Key": "k", "Accept": "application/json"},
        )
        headers = receipt.request["headers"]
        assert headers["Authorization"] == "***"
        assert headers["X-Api-Key"] == "***"
        assert headers["Accept"] == "application/json"
        assert "s3cret" not in receipt.model_dump_json()


class TestRetention:

    def test_oldest_receipts_evicted(self):
        recorder = ReceiptRecorder(max_receipts=3)
        ids = [
            recorder.complete(recorder.start_rpc(endpoint="e", rpc_method=f"m{i}"), response={}).receipt_id
            for i in range(5)
        ]
        assert len(recorder) == 3
        assert [r.receipt_id for r in recorder.get_receipts()] == ids[2:]

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            ReceiptRecorder(max_receipts=0)

    def test_latest_for_batch(self):
        recorder = ReceiptRecorder()
        first = recorder.complete(recorder.start_http(method="POST", url="u", batch_id="b-1"), response={"x": 1})
        recorder.complete(recorder.start_http(method="POST", url="u", batch_id="b-2"), response={"x": 2})
        recorder.complete(recorder.start_rpc(endpoint="e", rpc_method="getBalance"), response={"x": 3})

        assert recorder.latest("b-1") is first
        assert recorder.latest("missing") is None
        assert [r.batch_id for r in recorder.get_receipts("b-2")] == ["b-2"]

    def test_clear(self):
        recorder = ReceiptRecorder()
        recorder.complete(recorder.start_rpc(endpoint="e", rpc_method="m"), response={})
        recorder.clear()
        assert recorder.get_receipts() == []

    def test_thread_safe(self):
        recorder = ReceiptRecorder(max_receipts=1000)

        def work():
            for _ in range(50):
                recorder.complete(recorder.start_rpc(endpoint="e", rpc_method="m"), response={})

        threads = [threading.Thread(target=work) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(recorder) == 200
