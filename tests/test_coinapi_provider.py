"""
Tests for the CoinAPI provider.
"""
import datetime as dt
import threading
from dataclasses import FrozenInstanceError

import pytest

from rate_fetcher.errors import ProviderHTTPError
from rate_fetcher.provider import RAW_RATE_COLUMNS
from rate_fetcher.providers import CoinApiProvider
from rate_fetcher.standardize import standardize_rates

from fakes import raw_rows


@pytest.fixture
def provider():
    return CoinApiProvider(api_key="test_key", base_url="https://example.test", max_requests_per_second=0)


def _capture_get_json(monkeypatch, provider, payload):
    seen = {}

    def fake_get_json(api_path, params):
        seen["api_path"] = api_path
        seen["params"] = params
        return payload

    monkeypatch.setattr(provider._get_client(), "get_json", fake_get_json)
    return seen


def test_coinapi_provider_name(provider):
    assert provider.name == "coinapi"


def test_coinapi_provider_is_frozen(provider):
    with pytest.raises(FrozenInstanceError):
        provider.api_key = "other"


def test_coinapi_provider_repr_hides_client(provider):
    provider._get_client()
    assert "_client" not in repr(provider)


def test_fetch_builds_history_request_with_exclusive_end(monkeypatch, provider):
    payload = raw_rows(dt.date(2024, 8, 1), dt.date(2024, 8, 4)).to_dict(orient="records")
    seen = _capture_get_json(monkeypatch, provider, payload)

    df = provider.fetch_exchange_rates(asset="BTC/EUR", start_date=dt.date(2024, 8, 1), end_date=dt.date(2024, 8, 4))

    assert seen["api_path"] == "/v1/exchangerate/BTC/EUR/history"
    assert seen["params"] == {
        "period_id": "1DAY",
        "time_start": "2024-08-01",
        "time_end": "2024-08-05",
        "limit": 4,
    }
    assert list(df.columns) == RAW_RATE_COLUMNS
    assert len(df) == 4
    assert standardize_rates(df)["date"].dt.strftime("%Y-%m-%d").tolist() == [
        "2024-08-01",
        "2024-08-02",
        "2024-08-03",
        "2024-08-04",
    ]


def test_fetch_sorts_rows_by_period_start(monkeypatch, provider):
    payload = raw_rows(dt.date(2024, 8, 1), dt.date(2024, 8, 3)).to_dict(orient="records")[::-1]
    _capture_get_json(monkeypatch, provider, payload)

    df = provider.fetch_exchange_rates(asset="BTC/EUR", start_date=dt.date(2024, 8, 1), end_date=dt.date(2024, 8, 3))
    assert df["time_period_start"].str[:10].tolist() == ["2024-08-01", "2024-08-02", "2024-08-03"]


def test_fetch_empty_array_gives_empty_frame(monkeypatch, provider):
    _capture_get_json(monkeypatch, provider, [])

    df = provider.fetch_exchange_rates(asset="BTC/EUR", start_date=dt.date(2030, 1, 1), end_date=dt.date(2030, 1, 2))
    assert df.empty
    assert list(df.columns) == RAW_RATE_COLUMNS


def test_fetch_non_array_body_raises(monkeypatch, provider):
    _capture_get_json(monkeypatch, provider, {"error": "unexpected"})

    with pytest.raises(ProviderHTTPError, match="JSON array"):
        provider.fetch_exchange_rates(asset="BTC/EUR", start_date=dt.date(2024, 8, 1), end_date=dt.date(2024, 8, 2))


def test_fetch_rows_missing_columns_raise(monkeypatch, provider):
    _capture_get_json(monkeypatch, provider, [{"time_period_start": "2024-08-01T00:00:00Z"}])

    with pytest.raises(ProviderHTTPError, match="missing columns"):
        provider.fetch_exchange_rates(asset="BTC/EUR", start_date=dt.date(2024, 8, 1), end_date=dt.date(2024, 8, 1))


@pytest.mark.parametrize("asset", ["BTCEUR", "BTC/", "/EUR", ""])
def test_fetch_rejects_malformed_asset(monkeypatch, provider, asset):
    _capture_get_json(monkeypatch, provider, [])
    with pytest.raises(ValueError):
        provider.fetch_exchange_rates(asset=asset, start_date=dt.date(2024, 8, 1), end_date=dt.date(2024, 8, 1))


def test_client_is_cached_and_thread_safe(provider):
    clients = []
    lock = threading.Lock()

    def get_client_in_thread():
        c = provider._get_client()
        with lock:
            clients.append(c)

    threads = [threading.Thread(target=get_client_in_thread) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(clients) == 10
    assert all(c is clients[0] for c in clients)
    assert clients[0].api_key == "test_key"
    assert clients[0].base_url == "https://example.test"


def test_coinapi_provider_repr_hides_api_key(provider):
    assert "test_key" not in repr(provider)


def test_list_assets_returns_array(monkeypatch, provider):
    seen = _capture_get_json(monkeypatch, provider, [{"asset_id": "BTC", "name": "Bitcoin"}])

    assert provider.list_assets() == [{"asset_id": "BTC", "name": "Bitcoin"}]
    assert seen == {"api_path": "/v1/assets", "params": {}}


def test_list_assets_non_array_body_raises(monkeypatch, provider):
    _capture_get_json(monkeypatch, provider, {"error": "Invalid API key"})

    with pytest.raises(ProviderHTTPError, match="/v1/assets"):
        provider.list_assets()
