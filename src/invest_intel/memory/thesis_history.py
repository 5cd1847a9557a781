"""Thesis records, outcome history and win-pattern mining."""

import logging
import threading
import uuid
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

import pandas as pd

from invest_intel.memory.repository import InMemoryStore, Store
from invest_intel.models import Opportunity, ThesisOutcome, ThesisRecord, utcnow
from invest_intel.utils.sanitize import sanitize_text

logger = logging.getLogger(__name__)

# Patterns seen fewer times than this are noise
MIN_PATTERN_OCCURRENCES = 3


@dataclass(frozen=True)
class ThesisPerformance:
    total_theses: int
    closed_theses: int
    win_rate: float
    avg_return: float
    avg_holding_period: float
    best_performing: ThesisRecord | None
    worst_performing: ThesisRecord | None


@dataclass(frozen=True)
class ThesisPattern:
    pattern: str
    occurrences: int
    win_rate: float
    avg_return: float


def pattern_keys(record: ThesisRecord) -> list[str]:
    """Signal-type combination, time horizon and asset class keys for a record."""
    opportunity = record.opportunity
    signal_types = "+".join(sorted({s.type.value for s in opportunity.signals}))
    return [
        f"signals:{signal_types}",
        f"horizon:{opportunity.time_horizon}",
        f"asset:{opportunity.asset.asset_class.value}",
    ]


class ThesisHistoryStore:
    """
    One record per recorded opportunity. A record is pending until
    ``close_thesis`` moves it to win, loss or partial.
    """

    def __init__(self, store: Store | None = None):
        self._records = store if store is not None else InMemoryStore()
        self._lock = threading.Lock()

    def record_thesis(self, opportunity: Opportunity, now: datetime | None = None) -> ThesisRecord:
        record = ThesisRecord(
            id=f"thesis_{uuid.uuid4().hex[:12]}",
            opportunity=opportunity,
            created_at=now or utcnow(),
        )
        with self._lock:
            self._records.put(record.id, record)
        return record

    def close_thesis(
        self,
        thesis_id: str,
        outcome: ThesisOutcome,
        actual_return: float,
        lessons: list[str] | None = None,
        now: datetime | None = None,
    ) -> ThesisRecord | None:
        """
        Close a pending record.

        Returns:
            The closed record, or None for an unknown id

        Raises:
            InvalidTransitionError: If the record is already closed
        """
        with self._lock:
            record = self._records.get(thesis_id)
            if record is None:
                logger.debug("No thesis record %s", thesis_id)
                return None
            cleaned = [sanitize_text(lesson) or "" for lesson in lessons or []]
            record.close(
                ThesisOutcome(outcome),
                actual_return,
                [lesson for lesson in cleaned if lesson],
                now,
            )
            self._records.put(record.id, record)

        logger.info(
            "Closed thesis %s for %s as %s (%.2f%%)",
            record.id,
            record.opportunity.symbol,
            record.outcome.value,
            actual_return,
        )
        return record

    def records(self) -> list[ThesisRecord]:
        return self._records.values()

    def performance(self, symbol: str | None = None) -> ThesisPerformance:
        records = self.by_symbol(symbol) if symbol else self.records()
        closed = [r for r in records if r.outcome is not ThesisOutcome.PENDING]
        wins = sum(1 for r in closed if r.outcome is ThesisOutcome.WIN)
        ranked = sorted(closed, key=lambda r: r.actual_return or 0.0, reverse=True)

        return ThesisPerformance(
            total_theses=len(records),
            closed_theses=len(closed),
            win_rate=wins / len(closed) if closed else 0.0,
            avg_return=sum(r.actual_return or 0.0 for r in closed) / len(closed) if closed else 0.0,
            avg_holding_period=(
                sum(r.holding_period or 0.0 for r in closed) / len(closed) if closed else 0.0
            ),
            best_performing=ranked[0] if ranked else None,
            worst_performing=ranked[-1] if ranked else None,
        )

    def pending(self) -> list[ThesisRecord]:
        return [r for r in self.records() if r.outcome is ThesisOutcome.PENDING]

    def by_symbol(self, symbol: str) -> list[ThesisRecord]:
        symbol = symbol.upper()
        return [r for r in self.records() if r.opportunity.symbol == symbol]

    def lessons_learned(self) -> list[tuple[str, int]]:
        """Lessons with how often they were recorded, most frequent first."""
        counts = Counter(lesson for r in self.records() for lesson in r.lessons)
        return counts.most_common()

    def identify_patterns(self) -> list[ThesisPattern]:
        """
        Win rates of closed theses grouped by signal mix, horizon and asset class.

        Only patterns with at least three occurrences are reported, best
        win rate first.
        """
        rows = [
            {
                "pattern": key,
                "win": record.outcome is ThesisOutcome.WIN,
                "return": record.actual_return or 0.0,
            }
            for record in self.records()
            if record.outcome is not ThesisOutcome.PENDING
            for key in pattern_keys(record)
        ]
        if not rows:
            return []

        grouped = (
            pd.DataFrame(rows)
            .groupby("pattern", sort=False)
            .agg(occurrences=("win", "size"), win_rate=("win", "mean"), avg_return=("return", "mean"))
        )
        grouped = grouped[grouped["occurrences"] >= MIN_PATTERN_OCCURRENCES]
        grouped = grouped.sort_values("win_rate", ascending=False, kind="stable")

        return [
            ThesisPattern(
                pattern=str(pattern),
                occurrences=int(row.occurrences),
                win_rate=float(row.win_rate),
                avg_return=float(row.avg_return),
            )
            for pattern, row in grouped.iterrows()
        ]

    def recent_history(self, days: float = 30, now: datetime | None = None) -> list[ThesisRecord]:
        cutoff = (now or utcnow()) - timedelta(days=days)
        recent = [r for r in self.records() if r.created_at >= cutoff]
        return sorted(recent, key=lambda r: r.created_at, reverse=True)

    def export_records(self) -> list[ThesisRecord]:
        return list(self.records())

    def import_records(self, records: Iterable[ThesisRecord]) -> None:
        with self._lock:
            self._records.clear()
            for record in records:
                self._records.put(record.id, record)
