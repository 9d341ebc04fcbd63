"""
Rule-based insights and recommendations.

Each table is an ordered tuple of independent rules. A rule looks at one
metric or trend, compares it with a configured threshold and contributes at
most one entry. Order only affects how results are displayed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import InsightThresholds
from ..models.analytics import (
    Insight,
    MemberSummary,
    Metrics,
    Priority,
    ProductivityLevel,
    ConsistencyLevel,
    Trend,
    TrendDirection,
)
from ..models.standup import LinkedReview, StandupRecord, is_meaningful_blocker
from ..utils.logging import get_logger

logger = get_logger(__name__)

RECURRENCE_PREFIX_LENGTH = 20

NO_DATA_INSIGHT = Insight(
    kind="info",
    message="No standup data available yet",
    priority=Priority.LOW
)
NO_DATA_RECOMMENDATION = "Start conducting regular standup meetings"
HEALTHY_RECOMMENDATION = "Team metrics look healthy - keep up the good work!"


@dataclass(frozen=True)
class RuleContext:
    metrics: Metrics
    trends: Dict[str, Trend]
    thresholds: InsightThresholds

    def trend_direction(self, metric: str) -> Optional[TrendDirection]:
        trend = self.trends.get(metric)
        return trend.direction if trend else None


InsightRule = Callable[[RuleContext], Optional[Insight]]
RecommendationRule = Callable[[RuleContext], Iterable[str]]


# Team insight rules

def _participation_insight(ctx: RuleContext) -> Optional[Insight]:
    if ctx.metrics.active_members == 0:
        return None
    per_member = ctx.metrics.standup_count / ctx.metrics.active_members
    if per_member < ctx.thresholds.low_participation_standups:
        return Insight(
            kind="concern",
            message="Low standup participation - encourage regular updates",
            priority=Priority.MEDIUM
        )
    if per_member > ctx.thresholds.high_participation_standups:
        return Insight(
            kind="positive",
            message="Excellent standup participation across the team",
            priority=Priority.LOW
        )
    return None


def _task_load_insight(ctx: RuleContext) -> Optional[Insight]:
    if ctx.metrics.average_tasks_per_member > ctx.thresholds.high_task_load:
        return Insight(
            kind="warning",
            message="High average task load - consider workload distribution",
            priority=Priority.HIGH
        )
    return None


def _review_load_insight(ctx: RuleContext) -> Optional[Insight]:
    if ctx.metrics.average_prs_per_member > ctx.thresholds.high_pr_load:
        return Insight(
            kind="warning",
            message="Many open PRs per member - prioritize reviews",
            priority=Priority.MEDIUM
        )
    return None


def _recurring_blocker_insight(ctx: RuleContext) -> Optional[Insight]:
    if not ctx.metrics.top_blockers:
        return None
    top = ctx.metrics.top_blockers[0]
    if top.count > ctx.thresholds.recurring_blocker_count:
        return Insight(
            kind="recurring_blocker",
            message=f'Recurring blocker detected: "{top.text}" - needs attention',
            priority=Priority.HIGH,
            details=[{"blocker": top.text, "count": top.count}]
        )
    return None


def _blocker_frequency_insight(ctx: RuleContext) -> Optional[Insight]:
    if ctx.metrics.blocker_frequency_pct > ctx.thresholds.high_blocker_frequency_pct:
        return Insight(
            kind="concern",
            message=f"{ctx.metrics.blocker_frequency_pct:g}% of standups report blockers",
            priority=Priority.MEDIUM
        )
    return None


def _task_trend_insight(ctx: RuleContext) -> Optional[Insight]:
    if ctx.trend_direction("tasks") == TrendDirection.INCREASING:
        return Insight(
            kind="trend",
            message="Task load is increasing compared with earlier standups",
            priority=Priority.MEDIUM
        )
    return None


def _blocker_trend_insight(ctx: RuleContext) -> Optional[Insight]:
    if ctx.trend_direction("blockers") == TrendDirection.INCREASING:
        return Insight(
            kind="trend",
            message="Blockers are being reported more often than before",
            priority=Priority.HIGH
        )
    return None


def _review_trend_insight(ctx: RuleContext) -> Optional[Insight]:
    if ctx.trend_direction("reviews") == TrendDirection.INCREASING:
        return Insight(
            kind="trend",
            message="Open review count is growing",
            priority=Priority.LOW
        )
    return None


TEAM_INSIGHT_RULES: Tuple[InsightRule, ...] = (
    _participation_insight,
    _task_load_insight,
    _review_load_insight,
    _recurring_blocker_insight,
    _blocker_frequency_insight,
    _task_trend_insight,
    _blocker_trend_insight,
    _review_trend_insight,
)


# Team recommendation rules

def _participation_recommendation(ctx: RuleContext) -> Iterable[str]:
    if ctx.metrics.active_members < ctx.thresholds.min_active_members:
        yield "Encourage more team members to participate in standups"


def _workload_recommendation(ctx: RuleContext) -> Iterable[str]:
    if ctx.metrics.average_tasks_per_member > ctx.thresholds.task_rebalance_load:
        yield "Review task distribution and consider load balancing"


def _review_recommendation(ctx: RuleContext) -> Iterable[str]:
    if ctx.metrics.average_prs_per_member > ctx.thresholds.pr_review_load:
        yield "Implement regular PR review sessions"


def _blocker_recommendations(ctx: RuleContext) -> Iterable[str]:
    if len(ctx.metrics.top_blockers) > ctx.thresholds.blocker_sessions_count:
        yield "Schedule blocker resolution sessions"
        yield "Consider creating a blocker escalation process"


def _blocker_trend_recommendation(ctx: RuleContext) -> Iterable[str]:
    if ctx.trend_direction("blockers") == TrendDirection.INCREASING:
        yield "Review what changed recently - blockers are trending up"


TEAM_RECOMMENDATION_RULES: Tuple[RecommendationRule, ...] = (
    _participation_recommendation,
    _workload_recommendation,
    _review_recommendation,
    _blocker_recommendations,
    _blocker_trend_recommendation,
)


class InsightEngine:
    """Evaluates the rule tables against metrics and trends.

    The engine never raises: a failing rule is logged and skipped.
    """

    def __init__(self, thresholds: Optional[InsightThresholds] = None) -> None:
        self.thresholds = thresholds or InsightThresholds()

    def _context(self, metrics: Metrics, trends: Sequence[Trend]) -> RuleContext:
        return RuleContext(
            metrics=metrics,
            trends={trend.metric: trend for trend in trends},
            thresholds=self.thresholds
        )

    def generate_insights(
        self,
        metrics: Metrics,
        trends: Sequence[Trend] = ()
    ) -> List[Insight]:
        """Team insights, or the informational no-data insight."""
        if metrics.standup_count == 0:
            return [NO_DATA_INSIGHT.model_copy()]

        ctx = self._context(metrics, trends)
        insights = []
        for rule in TEAM_INSIGHT_RULES:
            try:
                insight = rule(ctx)
            except Exception as e:
                logger.warning(f"Insight rule {rule.__name__} failed: {str(e)}")
                continue
            if insight is not None:
                insights.append(insight)
        return insights

    def generate_recommendations(
        self,
        metrics: Metrics,
        trends: Sequence[Trend] = ()
    ) -> List[str]:
        """Team recommendations; never empty."""
        if metrics.standup_count == 0:
            return [NO_DATA_RECOMMENDATION]

        ctx = self._context(metrics, trends)
        recommendations: List[str] = []
        for rule in TEAM_RECOMMENDATION_RULES:
            try:
                recommendations.extend(rule(ctx))
            except Exception as e:
                logger.warning(f"Recommendation rule {rule.__name__} failed: {str(e)}")

        if not recommendations:
            recommendations.append(HEALTHY_RECOMMENDATION)
        return recommendations

    def generate_member_insights(self, summary: MemberSummary) -> List[str]:
        """Plain-text observations about one member's summary."""
        insights = []

        if summary.productivity == ProductivityLevel.HIGH:
            insights.append("Maintaining high productivity levels")
        elif summary.productivity == ProductivityLevel.LOW:
            insights.append("Consider reviewing workload and removing blockers")

        if summary.consistency == ConsistencyLevel.POOR:
            insights.append("Irregular standup participation - try to maintain daily updates")
        elif summary.consistency == ConsistencyLevel.EXCELLENT:
            insights.append("Excellent standup consistency")

        if summary.blocker_frequency > self.thresholds.member_blocker_frequency_pct:
            insights.append("High blocker frequency - may need additional support")
        elif summary.total_standups > 0 and summary.blocker_frequency == 0:
            insights.append("No blockers reported - smooth workflow")

        return insights

    def generate_submission_insights(
        self,
        current: StandupRecord,
        previous: Sequence[StandupRecord],
        reviews: Sequence[LinkedReview]
    ) -> List[Insight]:
        """Insights returned to a member right after they submit."""
        insights = []

        latest = max(previous, key=lambda record: record.timestamp) if previous else None
        if (
            latest is not None
            and is_meaningful_blocker(latest.blockers)
            and is_meaningful_blocker(current.blockers)
        ):
            current_text = current.blockers.lower()
            last_text = latest.blockers.lower()
            if (
                last_text[:RECURRENCE_PREFIX_LENGTH] in current_text
                or current_text[:RECURRENCE_PREFIX_LENGTH] in last_text
            ):
                insights.append(Insight(
                    kind="recurring_blocker",
                    message="Similar blockers detected from previous standup. "
                            "Consider escalating or seeking additional help.",
                    priority=Priority.HIGH
                ))

        open_reviews = [review for review in reviews if review.is_open]
        if len(open_reviews) > self.thresholds.open_reviews_warning:
            insights.append(Insight(
                kind="high_pr_count",
                message=f"You have {len(open_reviews)} open PRs. "
                        f"Consider prioritizing reviews and merges.",
                priority=Priority.MEDIUM
            ))

        busy_reviews = [
            review for review in open_reviews
            if review.comment_count > self.thresholds.review_comment_warning
        ]
        if busy_reviews:
            insights.append(Insight(
                kind="pr_review_issues",
                message=f"{len(busy_reviews)} PR(s) have extensive review comments. "
                        f"These may need immediate attention.",
                priority=Priority.HIGH,
                details=[
                    {"title": review.title, "comments": review.comment_count, "url": review.url}
                    for review in busy_reviews
                ]
            ))

        return insights

    def generate_blocker_recommendations(self, blockers: Sequence[str]) -> List[str]:
        """Recommendations for a member's blockers, most recent first."""
        if not blockers:
            return ["No recent blockers - workflow is smooth"]

        recommendations = []
        if len(blockers) > self.thresholds.frequent_blockers_count:
            recommendations.append("High blocker frequency - consider process improvements")

        recommendations.append(f"Address current blocker: {blockers[0][:50]}...")
        recommendations.append("Schedule 1:1 to discuss blocker resolution strategies")
        return recommendations

    def generate_team_blocker_recommendations(self, metrics: Metrics) -> List[str]:
        if metrics.top_blockers:
            return ["Address recurring blockers", "Implement blocker escalation process"]
        return ["Team has minimal blockers - good workflow"]
