"""Aggregate statistics over the record collection.

Everything here is a pure function of the records passed in: nothing is
cached, so results always reflect the collection at call time.

Usage::

    stats = compute_statistics(store.records)
    stats.success_rate            # "66.7", or 0 when nothing was executed
    top_counts(stats.pattern_counts, limit=5)
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Iterable

from pydantic import BaseModel, Field

from chance_journal.core.enums import TradeResult
from chance_journal.core.ids import as_aware

from .record import ChanceRecord


class JournalStatistics(BaseModel):
    """Counts and success rate for a set of records."""

    total_records: int = 0
    executed_trades: int = 0
    successful_trades: int = 0
    # One-decimal percentage string, or the integer 0 when no trade was
    # executed.
    success_rate: str | int = 0
    currency_pair_counts: dict[str, int] = Field(default_factory=dict)
    pattern_counts: dict[str, int] = Field(default_factory=dict)
    direction_counts: dict[str, int] = Field(default_factory=dict)


class MonthlyComparison(BaseModel):
    """Record counts for the current and the previous calendar month."""

    this_month: int
    last_month: int
    change: int


def compute_statistics(records: Iterable[ChanceRecord]) -> JournalStatistics:
    records = list(records)
    executed = [r for r in records if r.trade_executed]
    successful = [r for r in executed if r.trade_result == TradeResult.SUCCESS]

    if executed:
        success_rate: str | int = f"{len(successful) / len(executed) * 100:.1f}"
    else:
        success_rate = 0

    return JournalStatistics(
        total_records=len(records),
        executed_trades=len(executed),
        successful_trades=len(successful),
        success_rate=success_rate,
        currency_pair_counts=dict(Counter(r.currency_pair for r in records)),
        pattern_counts=dict(Counter(r.pattern for r in records)),
        direction_counts=dict(Counter(r.direction.value for r in records)),
    )


def top_counts(counts: dict[str, int], limit: int = 5) -> list[tuple[str, int]]:
    """Highest counts first; ties keep their first-seen order."""
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return ranked[:limit]


def monthly_comparison(
    records: Iterable[ChanceRecord], now: datetime
) -> MonthlyComparison:
    """Compare this calendar month with the previous one.

    Months are evaluated in *now*'s timezone (local time if *now* is naive).
    """
    now = as_aware(now)
    tz = now.tzinfo
    this_key = (now.year, now.month)
    last_key = (now.year - 1, 12) if now.month == 1 else (now.year, now.month - 1)

    this_month = last_month = 0
    for record in records:
        created = record.created_at.astimezone(tz)
        key = (created.year, created.month)
        if key == this_key:
            this_month += 1
        elif key == last_key:
            last_month += 1

    return MonthlyComparison(
        this_month=this_month,
        last_month=last_month,
        change=this_month - last_month,
    )
