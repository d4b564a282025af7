"""
Example: Using the CoinAPI provider with the incremental cache

This example demonstrates how to fetch raw daily BTC/EUR rates from CoinAPI
and how to keep a local JSON cache in sync with reconcile_rates.
"""
import datetime as dt
import os

from rate_fetcher.cache import JsonCacheStore
from rate_fetcher.orchestrator import SyncConfig, reconcile_rates
from rate_fetcher.providers import CoinApiProvider
from rate_fetcher.standardize import standardize_rates

# Create provider instance
# In production, credentials should come from environment variables or repo secrets
provider = CoinApiProvider(api_key=os.environ.get("API_KEY", "your_api_key"))

print(f"Provider: {provider.name}\n")

# 1. Fetch one raw window (requires a valid API key)
print("=== Raw exchange rates ===")
try:
    raw = provider.fetch_exchange_rates(
        asset="BTC/EUR",
        start_date=dt.date(2024, 8, 1),
        end_date=dt.date(2024, 8, 10),
    )
    print(f"Rows: {len(raw)}")
    print(f"Columns: {list(raw.columns)}")
    print(f"\nStandardized:\n{standardize_rates(raw).head()}\n")
except Exception as e:
    print("Note: fetching requires a valid API key")
    print(f"Error: {str(e)}\n")

# 2. Keep a local cache up to date; a second call fetches nothing
print("=== Incremental cache ===")
store = JsonCacheStore("data")
cfg = SyncConfig(max_span_days=100)
try:
    series = reconcile_rates("BTC/EUR", "2024-01-01", "2024-08-20", provider=provider, store=store, cfg=cfg)
    print(f"Cached records: {len(series)} in {store.path_for('BTC/EUR')}")
    series = reconcile_rates("BTC/EUR", "2024-01-01", "2024-08-20", provider=provider, store=store, cfg=cfg)
    print(f"Second run (no fetch): {len(series)} records")
except Exception as e:
    print(f"Error: {str(e)}")
