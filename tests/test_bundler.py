"""
Unit tests for client/bundler.py -- atomic bundle submission and landing polls.
"""

import json

import httpx
import pytest
import respx

from client.bundler import JitoBundler, PriorityFee, SubmissionFailure, TransactionBundler

URL = "https://block-engine.test/api/v1/bundles"
FEE = PriorityFee(tip_lamports=10_000, compute_unit_limit=400_000, compute_unit_price_micro_lamports=50_000)


def _result(result):
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})


def _statuses(*values):
    return _result({"context": {"slot": 1}, "value": list(values)})


def _bundler(**kwargs) -> JitoBundler:
    kwargs.setdefault("poll_interval_sec", 0)
    return JitoBundler(url=URL, **kwargs)


class TestSubmit:
    @respx.mock
    def test_send_bundle(self):
        route = respx.post(URL).mock(return_value=_result("bundle-abc"))
        assert _bundler().submit(["tx1", "tx2", "tx3"], FEE) == "bundle-abc"
        body = json.loads(route.calls.last.request.content)
        assert body["method"] == "sendBundle"
        assert body["params"] == [["tx1", "tx2", "tx3"], {"encoding": "base64"}]

    def test_empty_bundle_rejected(self):
        with pytest.raises(SubmissionFailure, match="Empty"):
            _bundler().submit([], FEE)

    def test_oversized_bundle_rejected(self):
        with pytest.raises(SubmissionFailure, match="max 5"):
            _bundler().submit(["tx"] * 6, FEE)

    def test_tip_below_minimum_rejected(self):
        fee = PriorityFee(tip_lamports=10, compute_unit_limit=400_000, compute_unit_price_micro_lamports=0)
        with pytest.raises(SubmissionFailure, match="below minimum"):
            _bundler().submit(["tx"], fee)

    @respx.mock
    def test_rpc_rejection(self):
        respx.post(URL).mock(return_value=httpx.Response(200, json={
            "jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "bundle contains an expired blockhash"},
        }))
        with pytest.raises(SubmissionFailure, match="expired blockhash"):
            _bundler().submit(["tx"], FEE)

    @respx.mock
    def test_transport_error_wrapped(self):
        respx.post(URL).mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(SubmissionFailure, match="refused"):
            _bundler().submit(["tx"], FEE)


class TestWaitForLanding:
    @respx.mock
    def test_confirmed(self):
        respx.post(URL).mock(return_value=_statuses(
            {"bundle_id": "b1", "confirmation_status": "confirmed", "err": {"Ok": None}},
        ))
        assert _bundler().wait_for_landing("b1") is True

    @respx.mock
    def test_polls_until_landed(self):
        route = respx.post(URL).mock(side_effect=[
            _statuses(None),
            _statuses({"bundle_id": "b1", "confirmation_status": "processed", "err": {"Ok": None}}),
            _statuses({"bundle_id": "b1", "confirmation_status": "finalized", "err": {"Ok": None}}),
        ])
        assert _bundler(poll_attempts=5).wait_for_landing("b1") is True
        assert route.call_count == 3

    @respx.mock
    def test_reverted(self):
        respx.post(URL).mock(return_value=_statuses(
            {"bundle_id": "b1", "confirmation_status": "processed", "err": {"Err": "InstructionError"}},
        ))
        assert _bundler().wait_for_landing("b1") is False

    @respx.mock
    def test_gives_up_after_attempts(self):
        route = respx.post(URL).mock(return_value=_result(None))
        assert _bundler(poll_attempts=3).wait_for_landing("b1") is False
        assert route.call_count == 3


def test_satisfies_bundler_protocol():
    assert isinstance(_bundler(), TransactionBundler)
