"""
Behavioral pattern detection over standup history.

Recurring blockers are found by prefix containment, not exact
deduplication. Trend ratios and scoring weights are fixed policy values
from ``TrendPolicy`` and ``ScoringWeights``.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple
import heapq
import re

from ..config import ScoringWeights, TrendPolicy
from ..models.analytics import (
    ConsistencyLevel,
    HistoryAnalytics,
    KeywordCount,
    MemberSummary,
    ProductivityLevel,
    RecurringBlocker,
    Trend,
    TrendDirection,
)
from ..models.standup import StandupRecord, is_meaningful_blocker
from .aggregator import round_half_up
from ..utils.logging import get_logger

logger = get_logger(__name__)

MetricExtractor = Callable[[StandupRecord], float]

RECURRENCE_PREFIX_LENGTH = 20
RECURRING_BLOCKERS_LIMIT = 3
BLOCKER_DISPLAY_LENGTH = 100
MAX_CONSISTENCY_WINDOW_DAYS = 30

KEYWORD_PATTERN = re.compile(r"\b\w{4,}\b")
KEYWORD_STOP_WORDS = frozenset({"will", "work", "continue", "today", "yesterday", "tomorrow"})
KEYWORDS_LIMIT = 10


# Metric extractors

def task_count(record: StandupRecord) -> float:
    return float(len(record.linked_task_refs))


def review_count(record: StandupRecord) -> float:
    return float(len(record.linked_review_refs))


def blocker_flag(record: StandupRecord) -> float:
    return 1.0 if is_meaningful_blocker(record.blockers) else 0.0


MEMBER_TREND_METRICS: Dict[str, MetricExtractor] = {
    "tasks": task_count,
    "reviews": review_count,
    "blockers": blocker_flag,
}


def _classify(
    metric: str,
    earlier: Sequence[float],
    recent: Sequence[float],
    policy: TrendPolicy
) -> Trend:
    earlier_avg = sum(earlier) / len(earlier)
    recent_avg = sum(recent) / len(recent)

    if recent_avg > earlier_avg * policy.increase_ratio:
        direction = TrendDirection.INCREASING
    elif recent_avg < earlier_avg * policy.decrease_ratio:
        direction = TrendDirection.DECREASING
    else:
        direction = TrendDirection.STABLE

    return Trend(
        metric=metric,
        direction=direction,
        recent_avg=recent_avg,
        earlier_avg=earlier_avg
    )


def detect_trend(
    ordered_records: Sequence[StandupRecord],
    metric_extractor: MetricExtractor,
    metric: str = "value",
    policy: Optional[TrendPolicy] = None
) -> Trend:
    """Compare the earliest and most recent records of an oldest-first sequence.

    Fewer than ``policy.min_records`` records produce an
    ``insufficient_data`` trend instead of an error.
    """
    policy = policy or TrendPolicy()

    if len(ordered_records) < policy.min_records:
        return Trend(metric=metric, direction=TrendDirection.INSUFFICIENT_DATA)

    size = policy.window_size
    return _classify(
        metric,
        [metric_extractor(record) for record in ordered_records[:size]],
        [metric_extractor(record) for record in ordered_records[-size:]],
        policy
    )


def analyze_member_trends(
    records: Sequence[StandupRecord],
    policy: Optional[TrendPolicy] = None
) -> List[Trend]:
    """Task, review and blocker trends for records in any order."""
    ordered = sorted(records, key=lambda record: record.timestamp)
    return [
        detect_trend(ordered, extractor, metric=name, policy=policy)
        for name, extractor in MEMBER_TREND_METRICS.items()
    ]


class TrendAccumulator:
    """Streaming counterpart of ``analyze_member_trends``.

    Only the earliest and latest ``window_size`` records seen so far are
    retained, so trends over a batched record stream never need the whole
    set in memory. Records with equal timestamps keep arrival order.
    """

    def __init__(self, policy: Optional[TrendPolicy] = None) -> None:
        self.policy = policy or TrendPolicy()
        self._seen = 0
        self._earliest: List[Tuple[str, int, StandupRecord]] = []
        self._latest: List[Tuple[str, int, StandupRecord]] = []

    def add_all(self, records: Iterable[StandupRecord]) -> None:
        entries = []
        for record in records:
            entries.append((record.timestamp, self._seen, record))
            self._seen += 1

        size = self.policy.window_size
        self._earliest = heapq.nsmallest(size, self._earliest + entries, key=_entry_order)
        self._latest = heapq.nlargest(size, self._latest + entries, key=_entry_order)

    @property
    def seen(self) -> int:
        return self._seen

    @property
    def retained(self) -> List[StandupRecord]:
        """Distinct records currently held, oldest first"""
        entries = {entry[1]: entry for entry in self._earliest + self._latest}
        return [entry[2] for entry in sorted(entries.values(), key=_entry_order)]

    def trends(self) -> List[Trend]:
        if self._seen < self.policy.min_records:
            return [
                Trend(metric=name, direction=TrendDirection.INSUFFICIENT_DATA)
                for name in MEMBER_TREND_METRICS
            ]

        earlier = sorted(self._earliest, key=_entry_order)
        recent = sorted(self._latest, key=_entry_order)
        return [
            _classify(
                name,
                [extractor(entry[2]) for entry in earlier],
                [extractor(entry[2]) for entry in recent],
                self.policy
            )
            for name, extractor in MEMBER_TREND_METRICS.items()
        ]


def _entry_order(entry: Tuple[str, int, StandupRecord]) -> Tuple[str, int]:
    return entry[0], entry[1]


def _display_blocker(text: str) -> str:
    if len(text) > BLOCKER_DISPLAY_LENGTH:
        return text[:BLOCKER_DISPLAY_LENGTH] + "..."
    return text


def find_recurring_blockers(blocker_texts: Sequence[str]) -> List[RecurringBlocker]:
    """Blockers whose leading 20 characters show up in other blockers.

    An entry recurs when at least one *other* entry contains its lowercased
    20-character prefix. Identical entries are reported once per occurrence.
    """
    normalized = [text.lower() for text in blocker_texts]
    recurring = []

    for index, blocker in enumerate(normalized):
        prefix = blocker[:RECURRENCE_PREFIX_LENGTH]
        similar = sum(
            1 for other_index, other in enumerate(normalized)
            if other_index != index and prefix in other
        )
        if similar >= 1:
            recurring.append(
                RecurringBlocker(blocker=_display_blocker(blocker), occurrences=similar + 1)
            )

    recurring.sort(key=lambda item: -item.occurrences)
    return recurring[:RECURRING_BLOCKERS_LIMIT]


def consistency_level(rate: float) -> ConsistencyLevel:
    """Bucket a submission rate (percent of expected standups)."""
    if rate > 80:
        return ConsistencyLevel.EXCELLENT
    elif rate > 60:
        return ConsistencyLevel.GOOD
    elif rate > 40:
        return ConsistencyLevel.FAIR
    return ConsistencyLevel.POOR


def consistency_score(submitted_count: int, window_days: int) -> ConsistencyLevel:
    """Rate standup regularity, expecting at most one standup per day for 30 days."""
    expected = min(window_days, MAX_CONSISTENCY_WINDOW_DAYS)
    if expected <= 0:
        return ConsistencyLevel.NO_DATA
    return consistency_level(submitted_count / expected * 100)


def productivity_score(
    tasks: float,
    prs: float,
    blocker_count: int,
    standups: int,
    weights: Optional[ScoringWeights] = None
) -> ProductivityLevel:
    """Bucket productivity from per-standup task and PR averages.

    ``tasks`` and ``prs`` are averages per standup; the blocker penalty uses
    the share of standups that reported a blocker.
    """
    if standups <= 0:
        return ProductivityLevel.NO_DATA

    weights = weights or ScoringWeights()
    score = (
        tasks * weights.task_weight
        + prs * weights.pr_weight
        - (blocker_count / standups) * weights.blocker_penalty
    )

    if score > weights.high_threshold:
        return ProductivityLevel.HIGH
    elif score > weights.medium_threshold:
        return ProductivityLevel.MEDIUM
    return ProductivityLevel.LOW


def summarize_member(
    records: Sequence[StandupRecord],
    days: int,
    weights: Optional[ScoringWeights] = None
) -> MemberSummary:
    """Averages, blocker frequency and productivity/consistency labels."""
    if not records:
        return MemberSummary()

    count = len(records)
    total_tasks = sum(len(record.linked_task_refs) for record in records)
    total_prs = sum(len(record.linked_review_refs) for record in records)
    blocked = sum(1 for record in records if record.has_blocker)

    average_tasks = round_half_up(total_tasks / count)
    average_prs = round_half_up(total_prs / count)

    return MemberSummary(
        total_standups=count,
        average_tasks_per_standup=average_tasks,
        average_prs_per_standup=average_prs,
        blocker_frequency=int(round_half_up(blocked / count * 100, 0)),
        productivity=productivity_score(average_tasks, average_prs, blocked, count, weights),
        consistency=consistency_score(count, days)
    )


def _weekday(timestamp: str) -> Optional[str]:
    try:
        return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).strftime("%A")
    except ValueError:
        logger.debug(f"Unparseable standup timestamp: {timestamp}")
        return None


def history_analytics(records: Sequence[StandupRecord]) -> Optional[HistoryAnalytics]:
    """Descriptive statistics over a member's standup history."""
    if not records:
        return None

    count = len(records)
    total_tasks = sum(len(record.linked_task_refs) for record in records)
    total_prs = sum(len(record.linked_review_refs) for record in records)
    blocked = sum(1 for record in records if record.has_blocker)

    weekdays: Dict[str, int] = {}
    keywords: Counter = Counter()
    for record in records:
        day = _weekday(record.timestamp)
        if day is not None:
            weekdays[day] = weekdays.get(day, 0) + 1
        for word in KEYWORD_PATTERN.findall(record.today.lower()):
            if word not in KEYWORD_STOP_WORDS:
                keywords[word] += 1

    most_active_day = None
    best = 0
    for day, day_count in weekdays.items():
        if day_count > best:
            most_active_day, best = day, day_count

    return HistoryAnalytics(
        total_entries=count,
        average_tasks_per_standup=round_half_up(total_tasks / count),
        average_prs_per_standup=round_half_up(total_prs / count),
        blocker_frequency=int(round_half_up(blocked / count * 100, 0)),
        most_active_day=most_active_day,
        common_keywords=[
            KeywordCount(word=word, count=word_count)
            for word, word_count in keywords.most_common(KEYWORDS_LIMIT)
        ],
        work_patterns=weekdays
    )
