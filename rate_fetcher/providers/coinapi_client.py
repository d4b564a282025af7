"""
CoinAPI REST client: session, API key header and request pacing.
https://docs.coinapi.io/market-data/rest-api/exchange-rates
"""
from __future__ import annotations

import threading
import time

import requests

from ..errors import ProviderHTTPError


class _RateLimiter:
    """
    Paces CoinAPI calls: history requests issued by the fetch_gap worker pool
    share one instance per client, so consecutive requests from any thread are
    at least `min_interval_seconds` apart.
    """

    def __init__(self, *, min_interval_seconds: float):
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must be >= 0")
        self._min_interval_seconds = float(min_interval_seconds)
        self._lock = threading.Lock()
        self._next_allowed_at = 0.0

    def wait(self) -> None:
        if self._min_interval_seconds <= 0:
            return
        sleep_for = 0.0
        with self._lock:
            now = time.monotonic()
            if now < self._next_allowed_at:
                sleep_for = self._next_allowed_at - now
            # Reserve the next slot (based on current schedule, not wall time)
            base = self._next_allowed_at if self._next_allowed_at > now else now
            self._next_allowed_at = base + self._min_interval_seconds
        if sleep_for > 0:
            time.sleep(sleep_for)


def _error_message(res: requests.Response) -> str:
    # CoinAPI error bodies look like {"error": "Invalid API key"}
    try:
        data = res.json()
    except ValueError:
        return res.text
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return res.text


class CoinApiClient:
    """Thin GET-only client for the CoinAPI market data REST API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://rest.coinapi.io",
        *,
        max_requests_per_second: float = 2.0,
        timeout_seconds: float = 30.0,
    ):
        if not api_key:
            raise ValueError("api_key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = float(timeout_seconds)
        self._session = requests.Session()

        rps = float(max_requests_per_second)
        min_interval = 0.0 if rps <= 0 else (1.0 / rps)
        self._rate_limiter = _RateLimiter(min_interval_seconds=min_interval)

        self.base_headers = {
            "Accept": "application/json",
            "X-CoinAPI-Key": self.api_key,
        }

    def get_json(self, api_path: str, params: dict) -> object:
        """
        GET `api_path` and return the decoded JSON body.

        No retries: any transport error or non-200 status raises ProviderHTTPError.
        """
        url = f"{self.base_url}{api_path}"
        self._rate_limiter.wait()
        try:
            res = self._session.get(
                url,
                headers=self.base_headers.copy(),
                params=params,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise ProviderHTTPError(f"request to {api_path} failed: {e}") from e

        if res.status_code != 200:
            raise ProviderHTTPError(
                f"HTTP error from {api_path}: {_error_message(res)}",
                status_code=res.status_code,
            )

        try:
            return res.json()
        except ValueError as e:
            raise ProviderHTTPError(f"invalid JSON from {api_path}: {e}", status_code=res.status_code) from e
