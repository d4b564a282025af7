"""
CoinAPI exchange-rate data provider.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
import threading
from urllib.parse import quote

import pandas as pd

from ..errors import ProviderHTTPError
from ..intervals import span_days
from ..provider import RAW_RATE_COLUMNS, RateProvider
from .coinapi_client import CoinApiClient


@dataclass(frozen=True)
class CoinApiProvider(RateProvider):
    """
    RateProvider implementation using the CoinAPI exchange-rate history endpoint.

    Credentials and endpoint are passed in explicitly; nothing is read from the
    environment here.
    """

    api_key: str = field(repr=False)
    base_url: str = "https://rest.coinapi.io"
    period_id: str = "1DAY"
    max_requests_per_second: float = 2.0
    timeout_seconds: float = 30.0
    name: str = "coinapi"
    _client: CoinApiClient | None = field(default=None, init=False, repr=False, compare=False)
    _client_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def _get_client(self) -> CoinApiClient:
        """Get the HTTP client (cached so every thread shares one session and limiter)."""
        # Use object.__setattr__ to bypass frozen dataclass restriction
        client = object.__getattribute__(self, "_client")
        if client is None:
            lock = object.__getattribute__(self, "_client_lock")
            with lock:
                client = object.__getattribute__(self, "_client")
                if client is None:
                    client = CoinApiClient(
                        self.api_key,
                        self.base_url,
                        max_requests_per_second=self.max_requests_per_second,
                        timeout_seconds=self.timeout_seconds,
                    )
                    object.__setattr__(self, "_client", client)
        return client

    def fetch_exchange_rates(
        self,
        *,
        asset: str,
        start_date: dt.date,
        end_date: dt.date,
    ) -> pd.DataFrame:
        """
        Fetch daily OHLC exchange rates for `asset` ("BASE/QUOTE") over
        [start_date, end_date].

        CoinAPI treats time_end as exclusive, so the request ends the day
        after end_date. `limit` is set to the number of requested days.
        """
        client = self._get_client()

        base, sep, quote_asset = str(asset).strip().partition("/")
        if not sep or not base or not quote_asset:
            raise ValueError(f"asset must look like BASE/QUOTE, got {asset!r}")
        api_path = f"/v1/exchangerate/{quote(base, safe='')}/{quote(quote_asset, safe='')}/history"

        params = {
            "period_id": self.period_id,
            "time_start": start_date.strftime("%Y-%m-%d"),
            "time_end": (end_date + dt.timedelta(days=1)).strftime("%Y-%m-%d"),
            "limit": span_days(start_date, end_date),
        }

        data = client.get_json(api_path, params)
        if not isinstance(data, list):
            raise ProviderHTTPError(f"expected a JSON array from {api_path}, got {type(data).__name__}")

        if not data:
            return pd.DataFrame(columns=RAW_RATE_COLUMNS)

        df = pd.DataFrame(data)
        missing = [c for c in RAW_RATE_COLUMNS if c not in df.columns]
        if missing:
            raise ProviderHTTPError(f"response rows are missing columns: {missing}")
        return df.sort_values("time_period_start", kind="mergesort").reset_index(drop=True)

    def list_assets(self) -> list[dict]:
        """All assets known to CoinAPI (`GET /v1/assets`), as returned."""
        data = self._get_client().get_json("/v1/assets", {})
        if not isinstance(data, list):
            raise ProviderHTTPError(f"expected a JSON array from /v1/assets, got {type(data).__name__}")
        return data
