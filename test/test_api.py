import pytest
from fastapi.testclient import TestClient

from gastimator.adapters.local_simulator import LocalEstimatorAdapter
from gastimator.adapters.mock import (
    FailingRemoteEstimator,
    FailingSimulator,
    HardcodedRemoteEstimator,
    HardcodedSimulator,
    RecordingGasCache,
)
from gastimator.adapters.remote_estimator import RemoteEstimatorAdapter
from gastimator.core.api import build_app
from gastimator.core.gastimator import Gastimator

TOKEN = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
SENDER = "0x000000000000000000000000000000000000dead"
UNSIGNED_TRANSFER = (
    "0x02ef01824f4c83142ebf842d441366825208942e575fe17124f7ef2d22bbfb33cf3dbfc3f002d6"
    "8711c37937e0800080c0"
)
CALL = {"nonce": 1, "from": SENDER, "to": TOKEN, "data": "0xa9059cbb"}


@pytest.fixture
def client():
    g = Gastimator(
        LocalEstimatorAdapter(HardcodedSimulator(147_649)),
        RemoteEstimatorAdapter(HardcodedRemoteEstimator(120_000)),
        RecordingGasCache(),
    )
    return TestClient(build_app(g))


@pytest.fixture
def failing_client():
    g = Gastimator(
        LocalEstimatorAdapter(FailingSimulator("reverted")),
        RemoteEstimatorAdapter(FailingRemoteEstimator("unreachable")),
        RecordingGasCache(),
    )
    return TestClient(build_app(g))


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200 and r.json() == {"status": "ok"}


def test_tx_route(client):
    r = client.post("/tx", json=CALL)
    assert r.status_code == 200
    body = r.json()
    assert body["is_final"] is True
    assert body["gas_usage"] == {
        "type": "at_least_with_estimate",
        "kind": "contract_call",
        "at_least": 700,
        "estimate": 147_649,
    }
    assert "x-request-id" in r.headers


def test_rlp_route(client):
    r = client.post("/rlp", json={"rlp": UNSIGNED_TRANSFER})
    assert r.status_code == 200
    assert r.json()["gas_usage"] == {"type": "exact", "kind": "native_token_transfer", "gas": 21_000}


def test_malformed_rlp_is_a_client_error(client):
    r = client.post("/rlp", json={"rlp": "0x02zz"})
    assert r.status_code == 400
    error = r.json()["error"]
    assert error["type"] == "MalformedEncoding"
    assert error["position"] == 2


def test_invalid_address_is_a_client_error(client):
    r = client.post("/tx", json={"to": "0x1234"})
    assert r.status_code == 400
    assert r.json()["error"]["type"] == "InvalidAddress"


def test_gas_limit_exceeded(client):
    r = client.post("/tx", json={"to": TOKEN, "value": 1, "gas_limit": 10})
    assert r.status_code == 422
    assert r.json()["error"] == {
        "type": "GasExceedsLimit",
        "message": "Gas exceeds limit, estimated cost: 21000, gas limit: 10",
        "estimated_cost": 21_000,
        "gas_limit": 10,
    }


def test_both_estimators_failed(failing_client):
    r = failing_client.post("/tx", json=CALL)
    assert r.status_code == 502
    error = r.json()["error"]
    assert error["local_reason"] == "reverted"
    assert error["remote_reason"] == "unreachable"


def test_ws_streams_until_final(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json(CALL)
        updates = [ws.receive_json()]
        while not updates[-1]["is_final"]:
            updates.append(ws.receive_json())
        assert updates[-1]["gas_usage"]["estimate"] == 147_649
        assert len(updates) <= 2

        # Same connection serves the next request, answered from the cache
        ws.send_json(CALL)
        cached = ws.receive_json()
        assert cached["is_final"] and cached["gas_usage"]["estimate"] == 147_649


def test_ws_reports_errors_and_stays_open(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("{not json")
        assert ws.receive_json()["error"]["type"] == "MalformedEncoding"

        ws.send_json({"rlp": "0x02"})
        assert ws.receive_json()["error"]["type"] == "MalformedEncoding"

        ws.send_json({"to": TOKEN, "value": 1})
        assert ws.receive_json()["gas_usage"]["gas"] == 21_000
