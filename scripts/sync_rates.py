"""
Sync the local exchange-rate cache for one asset pair and print a summary.

Example:
  python scripts/sync_rates.py --asset BTC/EUR --start-date 2024-01-01 --end-date 2024-08-20

Credentials come from the environment (or a .env file):
  API_KEY           CoinAPI key (required)
  COINAPI_BASE_URL  override the REST endpoint (optional)

List the assets CoinAPI knows about:
  python scripts/sync_rates.py --list-assets --show 20

Exit codes:
  0 - cache reconciled
  1 - reconciliation failed (cache file left unchanged)
"""
from __future__ import annotations

import argparse
import datetime as dt
import logging
import os
import sys
from time import perf_counter

from dotenv import load_dotenv

from rate_fetcher.cache import JsonCacheStore
from rate_fetcher.errors import RateFetcherError, ValidationError
from rate_fetcher.io_utils import write_json
from rate_fetcher.meta import build_failure_meta, build_sync_meta
from rate_fetcher.orchestrator import SyncConfig, parse_date, reconcile_rates
from rate_fetcher.provider import RateProvider
from rate_fetcher.providers import CoinApiProvider

logger = logging.getLogger(__name__)

DEFAULT_ASSET = "BTC/EUR"
DEFAULT_BASE_URL = "https://rest.coinapi.io"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    today = dt.date.today()
    parser = argparse.ArgumentParser(description="Incrementally sync a daily exchange-rate cache")
    parser.add_argument("--asset", type=str, default=DEFAULT_ASSET, help="Asset pair, e.g. BTC/EUR")
    parser.add_argument("--start-date", type=str, default=(today - dt.timedelta(days=365)).isoformat(), help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end-date", type=str, default=today.isoformat(), help="End date (YYYY-MM-DD)")
    parser.add_argument("--cache-dir", type=str, default=".", help="Directory holding <ASSET>.json cache files")
    parser.add_argument("--max-span-days", type=int, default=100, help="Maximum days per provider request")
    parser.add_argument("--max-workers", type=int, default=1, help="Concurrent provider requests per gap")
    parser.add_argument("--requests-per-second", type=float, default=2.0, help="Provider request pacing (0 disables)")
    parser.add_argument("--meta-output", type=str, default="", help="Write run metadata json to this path")
    parser.add_argument("--show", type=int, default=10, help="Number of most recent records to print")
    parser.add_argument("--list-assets", action="store_true", help="Print the first --show assets known to CoinAPI and exit")
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bars")
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level")
    return parser.parse_args(argv)


def build_provider(args: argparse.Namespace) -> CoinApiProvider:
    load_dotenv()
    api_key = os.getenv("API_KEY")
    if not api_key:
        raise ValidationError("API_KEY not set (environment or .env)")
    return CoinApiProvider(
        api_key=api_key,
        base_url=os.getenv("COINAPI_BASE_URL") or DEFAULT_BASE_URL,
        max_requests_per_second=args.requests_per_second,
    )


def list_assets(provider: CoinApiProvider, limit: int) -> int:
    assets = provider.list_assets()
    print(f"[INFO] {len(assets)} assets available, showing first {min(limit, len(assets))}")
    for a in assets[:limit]:
        print(f"{a.get('asset_id', '?'):<10} {a.get('name') or ''}")
    return 0


def _args_meta(args: argparse.Namespace) -> dict:
    return {
        "cache_dir": args.cache_dir,
        "max_span_days": args.max_span_days,
        "max_workers": args.max_workers,
        "requests_per_second": args.requests_per_second,
        "meta_output": args.meta_output,
    }


def main(argv: list[str] | None = None, *, provider: RateProvider | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="%(levelname)s: %(message)s")

    t0 = perf_counter()
    started_at = dt.datetime.now(dt.timezone.utc)
    store = JsonCacheStore(args.cache_dir)
    cfg = SyncConfig(
        max_span_days=args.max_span_days,
        max_workers=args.max_workers,
        show_progress=not args.no_progress,
    )
    provider_name = provider.name if provider is not None else CoinApiProvider.name

    if args.list_assets:
        try:
            return list_assets(provider or build_provider(args), args.show)
        except RateFetcherError as e:
            logger.error(f"{type(e).__name__}: {e}")
            return 1

    print(f"[INFO] Syncing {args.asset} from {args.start_date} to {args.end_date} (cache: {args.cache_dir})")
    try:
        if provider is None:
            provider = build_provider(args)
        series = reconcile_rates(
            args.asset,
            args.start_date,
            args.end_date,
            provider=provider,
            store=store,
            cfg=cfg,
        )
    except RateFetcherError as e:
        logger.error(f"{type(e).__name__}: {e}")
        if args.meta_output:
            write_json(
                build_failure_meta(
                    asset=args.asset,
                    start_date=args.start_date,
                    end_date=args.end_date,
                    provider_name=provider_name,
                    started_at_utc=started_at,
                    error=e,
                    args=_args_meta(args),
                    timing_seconds={"total": round(perf_counter() - t0, 4)},
                ),
                args.meta_output,
            )
        return 1

    elapsed = perf_counter() - t0
    if args.meta_output:
        write_json(
            build_sync_meta(
                asset=args.asset,
                start_date=parse_date(args.start_date),
                end_date=parse_date(args.end_date),
                provider_name=provider_name,
                cache_path=str(store.path_for(args.asset)),
                series=series,
                started_at_utc=started_at,
                args=_args_meta(args),
                timing_seconds={"total": round(elapsed, 4)},
            ),
            args.meta_output,
        )

    print(f"[TIMING] Sync completed: {elapsed:.2f}s ({len(series)} records cached)")
    if args.show > 0 and not series.empty:
        tail = series.tail(args.show).copy()
        tail["date"] = tail["date"].dt.strftime("%Y-%m-%d")
        print(tail.to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
