from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence, TypeVar, Union
from datetime import datetime, timedelta, timezone
import asyncio
import uuid

from ..agents.pattern_agent import PatternAnalysisAgent
from ..agents.question_agent import QuestionGenerator
from ..config import ScoringWeights, Settings
from ..integrations.base import CodeReviewAdapter, IssueTrackerAdapter
from ..models.analytics import DateRange, ProductivityLevel
from ..models.reports import (
    ActivityEntry,
    BlockerAnalysis,
    BlockerEntry,
    HistoryReport,
    MemberBlockerAnalysis,
    MemberProductivity,
    MemberReport,
    MemberSummaryReport,
    ProductivityReport,
    SubmissionResult,
    SubmissionSummary,
    TeamBlockerAnalysis,
    TeamMetricsReport,
    TeamProductivity,
)
from ..models.standup import LinkedReview, LinkedTask, StandupRecord, StandupSubmission
from ..utils.logging import get_logger
from .aggregator import MetricsAccumulator, aggregate, aggregate_stream, round_half_up
from .insight_engine import InsightEngine
from .pattern_detector import (
    TrendAccumulator,
    analyze_member_trends,
    find_recurring_blockers,
    history_analytics,
    productivity_score,
    summarize_member,
)
from .storage_service import RecordRepository

logger = get_logger(__name__)

T = TypeVar("T")

SUMMARY_TEXT_LENGTH = 100
RECENT_ACTIVITY_LIMIT = 5
RECENT_BLOCKERS_LIMIT = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix"""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def truncate(text: str, length: int = SUMMARY_TEXT_LENGTH) -> str:
    if len(text) > length:
        return text[:length] + "..."
    return text


class StandupService:
    """Ingestion and query surface for standup updates.

    Submissions are enriched with the member's tasks and reviews, get
    follow-up questions and submission insights, and are stored as
    immutable records. Every query recomputes its analytics from the stored
    records.
    """

    def __init__(
        self,
        repository: RecordRepository,
        question_generator: QuestionGenerator,
        settings: Settings,
        issue_tracker: Optional[IssueTrackerAdapter] = None,
        code_review: Optional[CodeReviewAdapter] = None,
        insight_engine: Optional[InsightEngine] = None,
        pattern_agent: Optional[PatternAnalysisAgent] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.repository = repository
        self.question_generator = question_generator
        self.settings = settings
        self.issue_tracker = issue_tracker
        self.code_review = code_review
        self.insight_engine = insight_engine or InsightEngine(settings.thresholds)
        self.pattern_agent = pattern_agent
        self.clock = clock

    async def aclose(self) -> None:
        """Close the issue-tracker and code-review adapters"""
        for adapter in (self.issue_tracker, self.code_review):
            if adapter is not None:
                await adapter.close()

    async def __aenter__(self) -> "StandupService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # Ingestion

    async def submit_standup(self, payload: Mapping[str, Any]) -> SubmissionResult:
        """Validate, enrich and store a standup submission.

        Raises ``ValidationError`` for incomplete payloads and ``StoreError``
        when the record cannot be saved. Adapter failures only shrink the
        enrichment.
        """
        submission = StandupSubmission.from_payload(payload)
        member_id = submission.member_id
        logger.info(f"Processing standup for {member_id}")

        previous = await self.repository.get_previous_updates(
            member_id, self.settings.previous_updates_limit
        )

        tasks, reviews = await asyncio.gather(
            self._safe_fetch("issue tracker", self._fetch_tasks, member_id),
            self._safe_fetch("code review", self._fetch_reviews, member_id)
        )
        logger.info(f"Retrieved {len(tasks)} tasks and {len(reviews)} reviews for {member_id}")

        draft = StandupRecord(
            id=str(uuid.uuid4()),
            member_id=member_id,
            timestamp=format_timestamp(self.clock()),
            yesterday=submission.yesterday,
            today=submission.today,
            blockers=submission.blockers,
            linked_task_refs=tuple(task.id for task in tasks),
            linked_review_refs=tuple(review.id for review in reviews)
        )

        questions = await self.question_generator.generate_follow_up_questions(
            draft, previous, tasks, reviews
        )
        insights = self.insight_engine.generate_submission_insights(draft, previous, reviews)

        record = draft.model_copy(update={
            "follow_up_questions": tuple(questions),
            "insights": tuple(insights)
        })
        await self.repository.save_record(record)

        return SubmissionResult(
            record=record,
            insights=insights,
            follow_up_questions=questions,
            metrics_summary=SubmissionSummary(
                yesterday=truncate(record.yesterday),
                today=truncate(record.today),
                blockers=truncate(record.blockers),
                task_count=len(tasks),
                open_review_count=sum(1 for review in reviews if review.is_open),
                question_count=len(questions)
            )
        )

    async def _fetch_tasks(self, member_id: str) -> List[LinkedTask]:
        if self.issue_tracker is None:
            return []
        return await self.issue_tracker.get_member_tasks(member_id)

    async def _fetch_reviews(self, member_id: str) -> List[LinkedReview]:
        if self.code_review is None:
            return []
        return await self.code_review.get_member_reviews(member_id)

    async def _safe_fetch(
        self,
        source: str,
        fetch: Callable[[str], Awaitable[List[T]]],
        member_id: str
    ) -> List[T]:
        """Run one adapter lookup under the integration timeout, [] on failure"""
        try:
            return await asyncio.wait_for(
                fetch(member_id),
                timeout=self.settings.integration_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"{source} lookup for {member_id} timed out after "
                f"{self.settings.integration_timeout_seconds}s"
            )
        except Exception as e:
            logger.warning(f"{source} lookup for {member_id} failed: {str(e)}")
        return []

    # Queries

    def _recent_window(self, days: int) -> DateRange:
        return DateRange(start=format_timestamp(self.clock() - timedelta(days=days)))

    async def get_team_metrics(self, date_range: Optional[DateRange] = None) -> TeamMetricsReport:
        """Team metrics, trends, insights and recommendations"""
        accumulator = MetricsAccumulator()
        trend_window = TrendAccumulator(self.settings.trend_policy)

        async for batch in self.repository.iter_batches(window=date_range):
            accumulator.add_all(batch)
            trend_window.add_all(batch)

        metrics = accumulator.result()
        trends = trend_window.trends()
        logger.debug(f"Team metrics over {trend_window.seen} standups")

        return TeamMetricsReport(
            date_range=date_range,
            metrics=metrics,
            trends=trends,
            insights=self.insight_engine.generate_insights(metrics, trends),
            recommendations=self.insight_engine.generate_recommendations(metrics, trends)
        )

    async def query(
        self,
        member_id: Optional[str] = None,
        date_range: Optional[DateRange] = None
    ) -> Union[TeamMetricsReport, MemberReport]:
        if member_id is None:
            return await self.get_team_metrics(date_range)

        records = await self.repository.get_records(member_id, date_range)
        metrics = aggregate(records)
        trends = analyze_member_trends(records, self.settings.trend_policy)

        return MemberReport(
            member_id=member_id,
            date_range=date_range,
            records=records,
            metrics=metrics,
            trends=trends,
            insights=self.insight_engine.generate_insights(metrics, trends)
        )

    async def get_member_summary(self, member_id: str, days: int = 30) -> MemberSummaryReport:
        records = await self.repository.get_records(member_id, self._recent_window(days))
        summary = summarize_member(records, days, self.settings.scoring)

        newest_first = sorted(records, key=lambda record: record.timestamp, reverse=True)
        recent_activity = [
            ActivityEntry(
                timestamp=record.timestamp,
                yesterday=truncate(record.yesterday),
                today=truncate(record.today),
                blockers=record.blockers,
                task_count=len(record.linked_task_refs),
                review_count=len(record.linked_review_refs)
            )
            for record in newest_first[:RECENT_ACTIVITY_LIMIT]
        ]

        return MemberSummaryReport(
            member_id=member_id,
            days=days,
            summary=summary,
            insights=self.insight_engine.generate_member_insights(summary),
            recent_activity=recent_activity,
            trends=analyze_member_trends(records, self.settings.trend_policy)
        )

    async def get_blocker_analysis(
        self,
        member_id: Optional[str] = None,
        days: int = 30
    ) -> BlockerAnalysis:
        window = self._recent_window(days)

        if member_id is None:
            metrics = await aggregate_stream(self.repository.iter_batches(window=window))
            return TeamBlockerAnalysis(
                top_blockers=metrics.top_blockers,
                active_members=metrics.active_members,
                recommendations=self.insight_engine.generate_team_blocker_recommendations(metrics)
            )

        records = await self.repository.get_records(member_id, window)
        blocked = [
            record for record in sorted(records, key=lambda r: r.timestamp, reverse=True)
            if record.has_blocker
        ]
        blocker_texts = [record.blockers for record in blocked]

        frequency = 0
        if records:
            frequency = int(round_half_up(len(blocked) / len(records) * 100, 0))

        return MemberBlockerAnalysis(
            member_id=member_id,
            total_blockers=len(blocked),
            blocker_frequency=frequency,
            recent_blockers=[
                BlockerEntry(
                    timestamp=record.timestamp,
                    blocker=record.blockers,
                    follow_up_questions=record.follow_up_questions
                )
                for record in blocked[:RECENT_BLOCKERS_LIMIT]
            ],
            recurring_blockers=find_recurring_blockers(blocker_texts),
            recommendations=self.insight_engine.generate_blocker_recommendations(blocker_texts)
        )

    async def get_standup_history(
        self,
        member_id: str,
        date_range: Optional[DateRange] = None,
        limit: int = 50
    ) -> HistoryReport:
        """Newest-first history with analytics and an AI pattern read"""
        records = await self.repository.get_records(member_id, date_range)
        limited = list(reversed(records))[:max(limit, 0)]

        if not limited:
            return HistoryReport(member_id=member_id)

        patterns = None
        if self.pattern_agent is not None:
            patterns = await self.pattern_agent.analyze(
                member_id, limited[0], list(reversed(limited))
            )

        return HistoryReport(
            member_id=member_id,
            records=limited,
            total_entries=len(limited),
            first_timestamp=limited[-1].timestamp,
            last_timestamp=limited[0].timestamp,
            analytics=history_analytics(limited),
            patterns=patterns
        )

    async def get_productivity(
        self,
        member_id: Optional[str] = None,
        date_range: Optional[DateRange] = None
    ) -> ProductivityReport:
        if member_id is None:
            metrics = await aggregate_stream(self.repository.iter_batches(window=date_range))
            return TeamProductivity(
                productivity=team_productivity_level(
                    metrics.standup_count,
                    metrics.average_tasks_per_member,
                    self.settings.scoring
                ),
                active_members=metrics.active_members,
                standup_count=metrics.standup_count,
                average_tasks_per_member=metrics.average_tasks_per_member,
                average_prs_per_member=metrics.average_prs_per_member
            )

        records = await self.repository.get_records(member_id, date_range)
        return member_productivity(member_id, records, self.settings)


def team_productivity_level(
    standup_count: int,
    average_tasks_per_member: float,
    weights: Optional[ScoringWeights] = None
) -> ProductivityLevel:
    if standup_count == 0:
        return ProductivityLevel.NO_DATA

    weights = weights or ScoringWeights()
    if average_tasks_per_member > weights.team_high_task_load:
        return ProductivityLevel.HIGH
    elif average_tasks_per_member > weights.team_medium_task_load:
        return ProductivityLevel.MEDIUM
    return ProductivityLevel.LOW


def member_productivity(
    member_id: str,
    records: Sequence[StandupRecord],
    settings: Settings
) -> MemberProductivity:
    if not records:
        return MemberProductivity(member_id=member_id)

    count = len(records)
    average_tasks = round_half_up(sum(len(r.linked_task_refs) for r in records) / count)
    average_prs = round_half_up(sum(len(r.linked_review_refs) for r in records) / count)
    blocked = sum(1 for record in records if record.has_blocker)

    return MemberProductivity(
        member_id=member_id,
        productivity=productivity_score(average_tasks, average_prs, blocked, count, settings.scoring),
        total_standups=count,
        average_tasks_per_standup=average_tasks,
        average_prs_per_standup=average_prs,
        blocker_rate=int(round_half_up(blocked / count * 100, 0))
    )
