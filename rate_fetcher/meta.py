from __future__ import annotations

import datetime as dt
import platform
import sys
from importlib.metadata import PackageNotFoundError, version as pkg_version

import pandas as pd


def _safe_pkg_version(dist_name: str) -> str | None:
    try:
        return pkg_version(dist_name)
    except PackageNotFoundError:
        return None


def build_env_meta() -> dict:
    return {
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "pandas": _safe_pkg_version("pandas"),
        "requests": _safe_pkg_version("requests"),
        "tqdm": _safe_pkg_version("tqdm"),
    }


def build_sync_meta(
    *,
    asset: str,
    start_date: dt.date,
    end_date: dt.date,
    provider_name: str,
    cache_path: str,
    series: pd.DataFrame,
    started_at_utc: dt.datetime,
    args: dict,
    timing_seconds: dict,
) -> dict:
    coverage = None
    if not series.empty:
        coverage = {
            "start": series["date"].iloc[0].strftime("%Y-%m-%d"),
            "end": series["date"].iloc[-1].strftime("%Y-%m-%d"),
        }
    return {
        "generated_at_utc": started_at_utc.isoformat(),
        "run_status": "success",
        "provider": {"name": provider_name},
        "asset": asset,
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "cache_file": cache_path,
        "rows": int(len(series)),
        "coverage": coverage,
        "args": args,
        "timing_seconds": timing_seconds,
        "env": build_env_meta(),
    }


def build_failure_meta(
    *,
    asset: str,
    start_date: str,
    end_date: str,
    provider_name: str,
    started_at_utc: dt.datetime,
    error: Exception,
    args: dict,
    timing_seconds: dict | None = None,
) -> dict:
    return {
        "generated_at_utc": started_at_utc.isoformat(),
        "run_status": "failed",
        "provider": {"name": provider_name},
        "asset": asset,
        "start_date": start_date,
        "end_date": end_date,
        "error": {
            "type": type(error).__name__,
            "message": str(error),
            "interval": _error_interval(error),
        },
        "args": args,
        "timing_seconds": timing_seconds or {},
        "env": build_env_meta(),
    }


def _error_interval(error: Exception) -> dict | None:
    start = getattr(error, "start_date", None)
    end = getattr(error, "end_date", None)
    if start is None or end is None:
        return None
    return {"start": str(start), "end": str(end)}
