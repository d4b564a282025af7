from __future__ import annotations

import datetime as dt


class RateFetcherError(RuntimeError):
    """Base class for every error raised by rate_fetcher."""


class ValidationError(RateFetcherError, ValueError):
    """Invalid input rejected before any I/O."""


class ParseError(RateFetcherError):
    """A raw provider observation could not be normalized."""


class CacheIOError(RateFetcherError):
    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{message} (path={path})" if path else message)
        self.path = path


class ProviderHTTPError(RateFetcherError):
    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(f"{message} (status={status_code})" if status_code is not None else message)
        self.status_code = status_code


class FetchError(RateFetcherError):
    def __init__(self, *, asset: str, start_date: dt.date, end_date: dt.date, cause: Exception):
        super().__init__(f"fetch failed for asset={asset} interval={start_date}..{end_date}: {cause}")
        self.asset = asset
        self.start_date = start_date
        self.end_date = end_date
        self.__cause__ = cause
