"""
Unit tests for CoinApiClient error mapping and request pacing.
"""

from __future__ import annotations

import pytest
import requests

from rate_fetcher.errors import ProviderHTTPError
from rate_fetcher.providers.coinapi_client import CoinApiClient, _RateLimiter


class _DummyResponse:
    def __init__(self, *, status_code: int, json_data, text: str = ""):
        self.status_code = int(status_code)
        self._json_data = json_data
        self.text = text

    def json(self):
        if self._json_data is None:
            raise ValueError("no json")
        return self._json_data


def _mk_client() -> CoinApiClient:
    return CoinApiClient(
        api_key="k",
        base_url="https://example.test/",
        max_requests_per_second=0,  # disable limiter sleeps for tests
        timeout_seconds=5,
    )


def test_get_json_sends_key_header_params_and_timeout(monkeypatch):
    client = _mk_client()
    seen = {}

    def fake_get(url, headers=None, params=None, timeout=None):
        seen.update(url=url, headers=headers, params=params, timeout=timeout)
        return _DummyResponse(status_code=200, json_data=[{"rate_close": 1.0}])

    monkeypatch.setattr(client._session, "get", fake_get)

    out = client.get_json("/v1/x", {"a": 1})
    assert out == [{"rate_close": 1.0}]
    assert seen["url"] == "https://example.test/v1/x"
    assert seen["headers"]["X-CoinAPI-Key"] == "k"
    assert seen["params"] == {"a": 1}
    assert seen["timeout"] == 5.0


@pytest.mark.parametrize("status", [400, 401, 403, 429, 500, 550])
def test_get_json_non_200_raises_with_status(monkeypatch, status):
    client = _mk_client()
    calls = []

    def fake_get(url, headers=None, params=None, timeout=None):
        calls.append(url)
        return _DummyResponse(status_code=status, json_data={"error": "Invalid API key"}, text='{"error":"Invalid API key"}')

    monkeypatch.setattr(client._session, "get", fake_get)

    with pytest.raises(ProviderHTTPError) as e:
        client.get_json("/v1/x", {})

    # No retries: exactly one request per call
    assert len(calls) == 1
    assert e.value.status_code == status
    assert "Invalid API key" in str(e.value)


def test_get_json_transport_error_raises_without_status(monkeypatch):
    client = _mk_client()

    def fake_get(url, headers=None, params=None, timeout=None):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(client._session, "get", fake_get)

    with pytest.raises(ProviderHTTPError) as e:
        client.get_json("/v1/x", {})
    assert e.value.status_code is None
    assert isinstance(e.value.__cause__, requests.ConnectionError)


def test_get_json_invalid_body_raises(monkeypatch):
    client = _mk_client()
    monkeypatch.setattr(
        client._session,
        "get",
        lambda url, headers=None, params=None, timeout=None: _DummyResponse(status_code=200, json_data=None, text="<html>"),
    )

    with pytest.raises(ProviderHTTPError, match="invalid JSON"):
        client.get_json("/v1/x", {})


def test_client_requires_api_key():
    with pytest.raises(ValueError):
        CoinApiClient(api_key="")


def test_rate_limiter_spaces_consecutive_calls(monkeypatch):
    now = [100.0]
    sleeps: list[float] = []

    def fake_monotonic():
        return now[0]

    def fake_sleep(seconds: float):
        sleeps.append(round(float(seconds), 6))
        now[0] += seconds

    monkeypatch.setattr("rate_fetcher.providers.coinapi_client.time.monotonic", fake_monotonic)
    monkeypatch.setattr("rate_fetcher.providers.coinapi_client.time.sleep", fake_sleep)

    limiter = _RateLimiter(min_interval_seconds=0.5)
    for _ in range(3):
        limiter.wait()

    assert sleeps == [0.5, 0.5]


def test_rate_limiter_disabled_never_sleeps(monkeypatch):
    sleeps: list[float] = []
    monkeypatch.setattr("rate_fetcher.providers.coinapi_client.time.sleep", lambda s: sleeps.append(s))

    limiter = _RateLimiter(min_interval_seconds=0)
    for _ in range(5):
        limiter.wait()
    assert sleeps == []


def test_rate_limiter_rejects_negative_interval():
    with pytest.raises(ValueError):
        _RateLimiter(min_interval_seconds=-1)
