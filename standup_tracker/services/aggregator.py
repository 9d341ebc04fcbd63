"""
Team metrics aggregation.

Metrics are a pure reduction over standup records: the same record set
always yields the same Metrics, so they can be recomputed on every query
instead of being maintained incrementally.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import AsyncIterable, Dict, Iterable, List, Optional

from ..models.analytics import BlockerCount, DateRange, MemberStats, Metrics
from ..models.standup import StandupRecord, is_meaningful_blocker
from ..utils.logging import get_logger

logger = get_logger(__name__)

BLOCKER_KEY_LENGTH = 50
TOP_BLOCKERS_LIMIT = 5


def round_half_up(value: float, places: int = 2) -> float:
    """Round like a human would (2.345 -> 2.35), avoiding banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def blocker_key(text: str) -> str:
    """Frequency-table key of a blocker: lowercased, first 50 characters."""
    return text.strip().lower()[:BLOCKER_KEY_LENGTH]


class MetricsAccumulator:
    """Single-pass reducer turning records into Metrics.

    Records can be fed one at a time (``add``) so the full record set never
    has to be resident in memory.
    """

    def __init__(self, window: Optional[DateRange] = None) -> None:
        self.window = window
        self._member_stats: Dict[str, MemberStats] = {}
        # Insertion order doubles as first-seen order for tie breaking
        self._blocker_counts: Dict[str, int] = {}
        self._standup_count = 0
        self._blocked_standups = 0
        self._total_tasks = 0
        self._total_prs = 0

    def add(self, record: StandupRecord) -> bool:
        """Fold one record in. Returns False when it falls outside the window."""
        if self.window is not None and not self.window.contains(record.timestamp):
            return False

        stats = self._member_stats.get(record.member_id)
        if stats is None:
            stats = self._member_stats[record.member_id] = MemberStats()

        task_count = len(record.linked_task_refs)
        pr_count = len(record.linked_review_refs)

        stats.standup_count += 1
        stats.total_tasks += task_count
        stats.total_prs += pr_count
        self._standup_count += 1
        self._total_tasks += task_count
        self._total_prs += pr_count

        if is_meaningful_blocker(record.blockers):
            stats.blockers.append(record.blockers)
            self._blocked_standups += 1
            key = blocker_key(record.blockers)
            self._blocker_counts[key] = self._blocker_counts.get(key, 0) + 1

        return True

    def add_all(self, records: Iterable[StandupRecord]) -> None:
        for record in records:
            self.add(record)

    def result(self) -> Metrics:
        active_members = len(self._member_stats)

        if active_members == 0:
            return Metrics()

        # sorted() is stable, so equal counts keep first-seen order
        ranked = sorted(self._blocker_counts.items(), key=lambda item: -item[1])
        top_blockers = [
            BlockerCount(text=text, count=count)
            for text, count in ranked[:TOP_BLOCKERS_LIMIT]
        ]

        return Metrics(
            standup_count=self._standup_count,
            active_members=active_members,
            average_tasks_per_member=round_half_up(self._total_tasks / active_members),
            average_prs_per_member=round_half_up(self._total_prs / active_members),
            blocker_frequency_pct=round_half_up(
                self._blocked_standups / self._standup_count * 100
            ),
            top_blockers=top_blockers,
            per_member_stats={
                member_id: stats.model_copy(deep=True)
                for member_id, stats in self._member_stats.items()
            }
        )


def aggregate(
    records: Iterable[StandupRecord],
    window: Optional[DateRange] = None
) -> Metrics:
    """Reduce records (optionally restricted to ``window``) into Metrics."""
    accumulator = MetricsAccumulator(window)
    accumulator.add_all(records)
    return accumulator.result()


async def aggregate_stream(
    batches: AsyncIterable[List[StandupRecord]],
    window: Optional[DateRange] = None
) -> Metrics:
    """Aggregate records arriving in batches from the record repository."""
    accumulator = MetricsAccumulator(window)
    batch_count = 0
    async for batch in batches:
        accumulator.add_all(batch)
        batch_count += 1

    metrics = accumulator.result()
    logger.debug(f"Aggregated {metrics.standup_count} standups from {batch_count} batches")
    return metrics
