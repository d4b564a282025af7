from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import logging
from time import perf_counter
from concurrent.futures import ThreadPoolExecutor, as_completed

import pandas as pd
from tqdm import tqdm

from .cache import CacheStore
from .errors import FetchError, ParseError, ValidationError
from .intervals import split_date_range
from .provider import RateProvider
from .standardize import empty_series, standardize_rates

logger = logging.getLogger(__name__)


GAP_BEFORE = "before"
GAP_AFTER = "after"
GAP_FULL = "full"


@dataclass(frozen=True)
class SyncConfig:
    # Largest window (in calendar days, both ends included) one provider call may cover
    max_span_days: int = 100
    max_workers: int = 1
    show_progress: bool = True


@dataclass(frozen=True)
class Gap:
    position: str
    start_date: dt.date
    end_date: dt.date


def parse_date(value: dt.date | str, *, field_name: str = "date") -> dt.date:
    """Accept a date, a datetime (truncated) or a "YYYY-MM-DD" string."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.datetime.strptime(value.strip(), "%Y-%m-%d").date()
        except ValueError as e:
            raise ValidationError(f"{field_name} must be YYYY-MM-DD, got {value!r}") from e
    raise ValidationError(f"{field_name} must be a date or YYYY-MM-DD string, got {type(value).__name__}")


def series_coverage(series: pd.DataFrame | None) -> tuple[dt.date, dt.date] | None:
    """Inclusive [first, last] day of a non-empty series, None otherwise."""
    if series is None or series.empty:
        return None
    return series["date"].iloc[0].date(), series["date"].iloc[-1].date()


def plan_gaps(
    coverage: tuple[dt.date, dt.date] | None,
    start_date: dt.date,
    end_date: dt.date,
) -> list[Gap]:
    """
    Work out which windows must be fetched to cover [start_date, end_date].

    - no coverage -> one "full" gap over the whole request
    - request starts before coverage -> "before" gap up to the day before the cached start
    - request ends after coverage -> "after" gap from the day after the cached end
    - otherwise nothing to fetch

    Cached boundary days are never part of a gap. Gaps always touch the cached
    range, so a request lying entirely outside the cache also fills the hole
    between them and the cache stays contiguous.
    """
    if start_date > end_date:
        raise ValidationError(f"start_date {start_date} is after end_date {end_date}")

    if coverage is None:
        return [Gap(GAP_FULL, start_date, end_date)]

    cached_start, cached_end = coverage
    one_day = dt.timedelta(days=1)
    gaps: list[Gap] = []
    if start_date < cached_start:
        gaps.append(Gap(GAP_BEFORE, start_date, cached_start - one_day))
    if end_date > cached_end:
        gaps.append(Gap(GAP_AFTER, cached_end + one_day, end_date))
    return gaps


def _validate_config(cfg: SyncConfig) -> None:
    if isinstance(cfg.max_span_days, bool) or not isinstance(cfg.max_span_days, int) or cfg.max_span_days < 1:
        raise ValidationError(f"max_span_days must be an integer >= 1, got {cfg.max_span_days!r}")
    if isinstance(cfg.max_workers, bool) or not isinstance(cfg.max_workers, int) or cfg.max_workers < 1:
        raise ValidationError(f"max_workers must be an integer >= 1, got {cfg.max_workers!r}")


def _clip_to_window(df: pd.DataFrame, start_date: dt.date, end_date: dt.date, *, asset: str) -> pd.DataFrame:
    inside = df["date"].between(pd.Timestamp(start_date), pd.Timestamp(end_date))
    if inside.all():
        return df
    outside = df.loc[~inside, "date"].dt.strftime("%Y-%m-%d").tolist()
    logger.warning(f"Dropping {len(outside)} {asset} records outside {start_date}..{end_date}: {outside[:5]}")
    return df[inside].reset_index(drop=True)


def fetch_gap(asset: str, gap: Gap, *, provider: RateProvider, cfg: SyncConfig) -> pd.DataFrame:
    """
    Fetch and standardize one gap, split into provider-sized intervals.

    All-or-nothing: the first failing interval raises (FetchError or
    ParseError) and nothing from the gap is returned.
    """
    intervals = split_date_range(gap.start_date, gap.end_date, cfg.max_span_days)
    logger.info(
        f"Fetching {asset} {gap.position} gap {gap.start_date}..{gap.end_date} "
        f"in {len(intervals)} request(s) (max_span_days={cfg.max_span_days}, max_workers={cfg.max_workers})"
    )

    def fetch_one(interval: tuple[dt.date, dt.date]) -> pd.DataFrame:
        start, end = interval
        try:
            raw = provider.fetch_exchange_rates(asset=asset, start_date=start, end_date=end)
        except Exception as e:
            raise FetchError(asset=asset, start_date=start, end_date=end, cause=e) from e
        try:
            std = standardize_rates(raw)
        except ParseError as e:
            raise ParseError(f"interval {start}..{end} for asset={asset}: {e}") from e
        return _clip_to_window(std, start, end, asset=asset)

    # Buffered by interval index so the merge order never depends on completion order
    frames: list[pd.DataFrame | None] = [None] * len(intervals)
    desc = f"{asset} {gap.position}"

    if cfg.max_workers == 1 or len(intervals) == 1:
        for i, interval in enumerate(tqdm(intervals, desc=desc, unit="request", disable=not cfg.show_progress)):
            frames[i] = fetch_one(interval)
    else:
        workers = min(cfg.max_workers, len(intervals))
        with ThreadPoolExecutor(max_workers=workers) as ex:
            index_by_future = {ex.submit(fetch_one, interval): i for i, interval in enumerate(intervals)}
            try:
                for fut in tqdm(
                    as_completed(index_by_future),
                    total=len(intervals),
                    desc=desc,
                    unit="request",
                    disable=not cfg.show_progress,
                ):
                    frames[index_by_future[fut]] = fut.result()
            except Exception:
                # Best-effort: cancel pending futures (running ones may not stop)
                for fut in index_by_future:
                    fut.cancel()
                raise

    non_empty = [f for f in frames if f is not None and not f.empty]
    if not non_empty:
        logger.warning(f"Provider returned no {asset} data for {gap.start_date}..{gap.end_date}")
        return empty_series()
    return pd.concat(non_empty, ignore_index=True)


def reconcile_rates(
    asset: str,
    start_date: dt.date | str,
    end_date: dt.date | str,
    *,
    provider: RateProvider,
    store: CacheStore,
    cfg: SyncConfig | None = None,
) -> pd.DataFrame:
    """
    Bring the cached series for `asset` up to [start_date, end_date] and return it.

    Only the days missing before and after the cached range are fetched.
    The returned series is the whole cache, which may extend beyond the request.

    Fail-fast: every error propagates. Gaps are merged and saved only after
    all of them were fetched, so a failed call leaves the cache file untouched.
    """
    cfg = cfg or SyncConfig()
    start = parse_date(start_date, field_name="start_date")
    end = parse_date(end_date, field_name="end_date")
    if start > end:
        raise ValidationError(f"start_date {start} is after end_date {end}")
    _validate_config(cfg)

    t0 = perf_counter()
    cached = store.load(asset)
    coverage = series_coverage(cached)
    if coverage is None:
        logger.info(f"No cached data for {asset}; full fetch {start}..{end}")
    else:
        logger.info(f"Cached {asset}: {coverage[0]}..{coverage[1]} ({len(cached)} records)")

    gaps = plan_gaps(coverage, start, end)
    if not gaps:
        logger.info(f"{asset} cache already covers {start}..{end}; nothing to fetch")
        return cached

    fetched = {gap.position: fetch_gap(asset, gap, provider=provider, cfg=cfg) for gap in gaps}

    if GAP_FULL in fetched:
        series = fetched[GAP_FULL]
    else:
        parts = [fetched.get(GAP_BEFORE), cached, fetched.get(GAP_AFTER)]
        series = pd.concat([p for p in parts if p is not None and not p.empty], ignore_index=True)

    store.save(asset, series)

    added = len(series) - (0 if cached is None else len(cached))
    logger.info(f"Reconciled {asset}: {len(series)} records (+{added}) in {perf_counter() - t0:.2f}s")
    return series
