from __future__ import annotations

from typing import Protocol
import datetime as dt

import pandas as pd


RAW_RATE_COLUMNS = [
    "time_period_start",
    "time_period_end",
    "time_open",
    "time_close",
    "rate_open",
    "rate_high",
    "rate_low",
    "rate_close",
]


class RateProvider(Protocol):
    """
    Single provider contract.

    A provider supplies daily exchange-rate observations for an asset pair
    (e.g. "BTC/EUR") over an inclusive date window.

    The sync engine never retries: a provider either returns or raises.
    """

    name: str

    def fetch_exchange_rates(
        self,
        *,
        asset: str,
        start_date: dt.date,
        end_date: dt.date,
    ) -> pd.DataFrame:
        """
        Fetch raw daily observations for [start_date, end_date] (both included).

        Returns a DataFrame with one row per observation and (at least) the
        RAW_RATE_COLUMNS, ordered by time_period_start. An empty frame means
        the provider has no data for the window.
        Standardization is handled elsewhere.
        """
