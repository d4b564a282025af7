"""
rate_fetcher

Incremental local cache of daily exchange rates (e.g. BTC/EUR) fetched from a
span-limited remote provider.

Design goals:
- Single RateProvider interface (swap CoinAPI for another source easily)
- Fetch only what the cache is missing, never re-fetch a cached day
- Fail-fast: a failed run leaves the cache file exactly as it was
- Minimal exception catching (catch only at CLI boundary)
"""
