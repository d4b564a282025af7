"""
Local JSON cache of daily rate series, one file per asset.

File format (ascending, unique dates):
  [{"date": "2024-08-01", "value": 56321.5}, ...]

Concurrent writers on the same asset are not coordinated: the last save wins.
"""
from __future__ import annotations

import json
import logging
import math
import os
import re
from pathlib import Path
from typing import Protocol

import pandas as pd

from .errors import CacheIOError, ValidationError
from .io_utils import write_json_atomic
from .standardize import SERIES_COLUMNS, empty_series, is_canonical_series

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class CacheStore(Protocol):
    """Loads and fully replaces the canonical series of an asset."""

    def load(self, asset: str) -> pd.DataFrame | None: ...

    def save(self, asset: str, series: pd.DataFrame) -> object: ...


def cache_filename(asset: str) -> str:
    """Map an asset pair to a safe file name: "BTC/EUR" -> "BTC_EUR.json"."""
    key = str(asset).strip().replace("/", "_").replace("\\", "_")
    if not key or key in {".", ".."}:
        raise ValidationError(f"invalid asset key: {asset!r}")
    return f"{key}.json"


class JsonCacheStore:
    """CacheStore backed by one JSON file per asset under `cache_dir`."""

    def __init__(self, cache_dir: str | os.PathLike = "."):
        self.cache_dir = Path(cache_dir)

    def path_for(self, asset: str) -> Path:
        return self.cache_dir / cache_filename(asset)

    def load(self, asset: str) -> pd.DataFrame | None:
        """
        Load the cached series for `asset`.

        Returns None when no cache file exists.

        Raises:
            CacheIOError: the file exists but cannot be read or is not a valid series
        """
        path = self.path_for(asset)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise CacheIOError(f"cannot read cache file: {e}", path=str(path)) from e
        except json.JSONDecodeError as e:
            raise CacheIOError(f"cache file is not valid JSON: {e}", path=str(path)) from e

        return _series_from_records(data, path=str(path))

    def save(self, asset: str, series: pd.DataFrame) -> Path:
        """
        Replace the cached series for `asset` (atomic full rewrite).

        Raises:
            CacheIOError: the series breaks the ordering/uniqueness invariants,
                or the file cannot be written
        """
        path = self.path_for(asset)
        if not is_canonical_series(series):
            raise CacheIOError("refusing to save a series that is not sorted/unique/finite", path=str(path))

        records = [
            {"date": d.strftime("%Y-%m-%d"), "value": float(v)}
            for d, v in zip(series["date"], series["value"])
        ]
        try:
            write_json_atomic(records, str(path))
        except OSError as e:
            raise CacheIOError(f"cannot write cache file: {e}", path=str(path)) from e

        logger.info(f"Saved {len(records)} records to {path}")
        return path


def _series_from_records(data: object, *, path: str) -> pd.DataFrame:
    if not isinstance(data, list):
        raise CacheIOError("cache file must contain a JSON array", path=path)
    if not data:
        return empty_series()

    dates: list[str] = []
    values: list[float] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict) or "date" not in item or "value" not in item:
            raise CacheIOError(f"entry #{i} is not a {{date, value}} object", path=path)
        date = item["date"]
        if not isinstance(date, str) or not _DATE_RE.match(date):
            raise CacheIOError(f"entry #{i} has a date not in YYYY-MM-DD form: {date!r}", path=path)
        value = item["value"]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise CacheIOError(f"entry #{i} has a non-numeric value: {value!r}", path=path)
        try:
            value = float(value)
        except (OverflowError, TypeError) as e:
            raise CacheIOError(f"entry #{i} has a value out of float range", path=path) from e
        if not math.isfinite(value):
            raise CacheIOError(f"entry #{i} has a non-finite value: {value!r}", path=path)
        dates.append(date)
        values.append(value)

    try:
        parsed = pd.to_datetime(pd.Series(dates, dtype="object"), format="%Y-%m-%d", errors="raise")
    except (TypeError, ValueError) as e:
        raise CacheIOError(f"cache file has an invalid date: {e}", path=path) from e

    df = pd.DataFrame(
        {
            "date": parsed.astype("datetime64[ns]").to_numpy(),
            "value": pd.Series(values, dtype="float64").to_numpy(),
        }
    )[SERIES_COLUMNS]

    if not df["date"].is_monotonic_increasing or df["date"].duplicated().any():
        raise CacheIOError("cache dates are not ascending and unique", path=path)
    return df
