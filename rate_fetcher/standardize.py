from __future__ import annotations

import logging

import pandas as pd

from .errors import ParseError

logger = logging.getLogger(__name__)


SERIES_COLUMNS = ["date", "value"]

# Calendar-day prefix of an ISO-8601 timestamp, e.g. "2024-08-01T00:00:00.0000000Z"
_DAY_PREFIX_PATTERN = r"^(\d{4}-\d{2}-\d{2})"


def empty_series() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "date": pd.Series([], dtype="datetime64[ns]"),
            "value": pd.Series([], dtype="float64"),
        }
    )


def standardize_rates(raw_df: pd.DataFrame | None) -> pd.DataFrame:
    """
    Standardize provider-specific exchange-rate rows into the canonical series.

    Canonical columns:
      date (datetime64, midnight), value (float64, closing rate)

    Notes:
    - `date` is the calendar day written at the start of `time_period_start`;
      no timezone conversion is applied.
    - Several rows for the same day collapse to the last one in fetch order.
    - An empty raw frame is not an error: a window may simply have no data yet.
    - Malformed rows raise ParseError; nothing is dropped silently.
    """
    if raw_df is None or raw_df.empty:
        return empty_series()

    missing = [c for c in ["time_period_start", "rate_close"] if c not in raw_df.columns]
    if missing:
        raise ParseError(f"Missing required rate columns: {missing}")

    starts = raw_df["time_period_start"].astype("string")
    day_prefix = starts.str.extract(_DAY_PREFIX_PATTERN, expand=False)
    bad_prefix = day_prefix.isna()
    if bad_prefix.any():
        sample = raw_df.loc[bad_prefix.to_numpy(), "time_period_start"].head(3).tolist()
        raise ParseError(f"time_period_start without a YYYY-MM-DD prefix: {sample}")

    dates = pd.to_datetime(day_prefix, format="%Y-%m-%d", errors="coerce")
    if dates.isna().any():
        sample = day_prefix[dates.isna()].head(3).tolist()
        raise ParseError(f"time_period_start is not a calendar day: {sample}")

    values = pd.to_numeric(raw_df["rate_close"], errors="coerce").astype("float64")
    bad_value = _non_finite(values)
    if bad_value.any():
        sample = raw_df.loc[bad_value, "rate_close"].head(3).tolist()
        raise ParseError(f"rate_close is not a finite number: {sample}")

    df = pd.DataFrame(
        {
            "date": dates.astype("datetime64[ns]").to_numpy(),
            "value": values.to_numpy(),
        }
    )

    # Stable sort keeps fetch order within a day, so keep="last" means last fetched
    df = df.sort_values("date", kind="mergesort")
    duplicated = df["date"].duplicated(keep="last")
    if duplicated.any():
        days = df.loc[duplicated, "date"].dt.strftime("%Y-%m-%d").unique().tolist()
        logger.warning(f"Collapsing duplicate-day observations (last wins): {days}")
        df = df[~duplicated]

    return df[SERIES_COLUMNS].reset_index(drop=True)


def is_canonical_series(df: pd.DataFrame) -> bool:
    """True when df has the canonical columns, unique ascending dates and finite values."""
    if list(df.columns) != SERIES_COLUMNS:
        return False
    if df.empty:
        return True
    if not pd.api.types.is_datetime64_any_dtype(df["date"]):
        return False
    if df["date"].isna().any() or not df["date"].is_monotonic_increasing or df["date"].duplicated().any():
        return False
    return not _non_finite(pd.to_numeric(df["value"], errors="coerce")).any()


def _non_finite(values: pd.Series) -> pd.Series:
    return values.isna() | values.abs().eq(float("inf"))
