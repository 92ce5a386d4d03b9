import pytest
from pydantic import SecretStr
from structlog.contextvars import get_contextvars

from gastimator.core.config import Settings, settings
from gastimator.core.config_validator import validate
from gastimator.core.logger import ESTIMATOR_FAILURES, bind_request_id, get_logger


def test_request_id_is_bound_to_the_context():
    rid = bind_request_id()
    assert get_contextvars()["request_id"] == rid
    assert bind_request_id("abc") == "abc"
    assert get_contextvars()["request_id"] == "abc"
    get_logger("test").info("UNIT_TEST_EVENT", data=1)


def test_prometheus_counter():
    c = ESTIMATOR_FAILURES.labels("unit")
    initial = c._value.get()
    c.inc()
    assert c._value.get() == initial + 1


def test_alchemy_url_from_key(monkeypatch):
    monkeypatch.delenv("ALCHEMY_API_KEY", raising=False)
    assert Settings(_env_file=None).alchemy_url is None
    configured = Settings(_env_file=None, ALCHEMY_API_KEY="k3y", ALCHEMY_BASE_URL="https://rpc.example/v2/")
    assert configured.alchemy_url == "https://rpc.example/v2/k3y"


def test_defaults(monkeypatch):
    for name in ("HOST", "PORT", "CACHE_MAX_ENTRIES"):
        monkeypatch.delenv(name, raising=False)
    s = Settings(_env_file=None)
    assert (s.HOST, s.PORT, s.CACHE_MAX_ENTRIES) == ("0.0.0.0", 3000, 100_000)


def test_validation_requires_alchemy_key(monkeypatch):
    monkeypatch.setattr(settings, "ALCHEMY_API_KEY", None)
    with pytest.raises(ValueError):
        validate()


def test_validation_rejects_bad_values(monkeypatch):
    monkeypatch.setattr(settings, "ALCHEMY_API_KEY", SecretStr("k3y"))
    monkeypatch.setattr(settings, "RPC_TIMEOUT_SECONDS", 0)
    with pytest.raises(ValueError):
        validate()


def test_validation_passes(monkeypatch):
    monkeypatch.setattr(settings, "ALCHEMY_API_KEY", SecretStr("k3y"))
    monkeypatch.setattr(settings, "RPC_TIMEOUT_SECONDS", 10.0)
    monkeypatch.setattr(settings, "CACHE_MAX_ENTRIES", 10)
    monkeypatch.setattr(settings, "PORT", 3000)
    validate()
