from __future__ import annotations

import datetime as dt

from .errors import ValidationError


def split_date_range(start: dt.date, end: dt.date, max_span_days: int) -> list[tuple[dt.date, dt.date]]:
    """
    Split an inclusive date range into provider-sized chunks.

    The provider caps how many days one request may cover, so longer ranges
    are cut into contiguous, non-overlapping (start, end) pairs:

      - the first pair starts at `start`, the last one ends at `end`
      - next_start == prev_end + 1 day
      - each pair covers at most `max_span_days` calendar days (both ends included)

    An inverted range (start > end) yields no chunk at all.

    Raises:
        ValidationError: if max_span_days < 1
    """
    if isinstance(max_span_days, bool) or not isinstance(max_span_days, int) or max_span_days < 1:
        raise ValidationError(f"max_span_days must be an integer >= 1, got {max_span_days!r}")

    start = _as_date(start)
    end = _as_date(end)

    chunks: list[tuple[dt.date, dt.date]] = []
    current_start = start
    step = dt.timedelta(days=max_span_days - 1)

    while current_start <= end:
        chunk_end = min(current_start + step, end)
        chunks.append((current_start, chunk_end))
        # Next chunk begins the day after, so chunks never overlap
        current_start = chunk_end + dt.timedelta(days=1)

    return chunks


def span_days(start: dt.date, end: dt.date) -> int:
    """Number of calendar days in [start, end], both ends included."""
    return (end - start).days + 1


def _as_date(value: dt.date) -> dt.date:
    # datetime is a subclass of date; keep only the calendar day
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    raise ValidationError(f"expected a date, got {type(value).__name__}")
