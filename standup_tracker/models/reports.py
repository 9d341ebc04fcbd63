"""
Result models returned by the standup service.
"""
from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from .analytics import (
    BlockerCount,
    DateRange,
    HistoryAnalytics,
    Insight,
    MemberSummary,
    Metrics,
    PatternAnalysis,
    ProductivityLevel,
    RecurringBlocker,
    Trend,
)
from .standup import StandupRecord


class SubmissionSummary(BaseModel):
    yesterday: str
    today: str
    blockers: str
    task_count: int = 0
    open_review_count: int = 0
    question_count: int = 0


class SubmissionResult(BaseModel):
    record: StandupRecord
    insights: List[Insight] = Field(default_factory=list)
    follow_up_questions: List[str] = Field(default_factory=list)
    metrics_summary: SubmissionSummary


class TeamMetricsReport(BaseModel):
    date_range: Optional[DateRange] = None
    metrics: Metrics
    trends: List[Trend] = Field(default_factory=list)
    insights: List[Insight] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class MemberReport(BaseModel):
    """Member-scoped answer to a plain query"""

    member_id: str
    date_range: Optional[DateRange] = None
    records: List[StandupRecord] = Field(default_factory=list)
    metrics: Metrics
    trends: List[Trend] = Field(default_factory=list)
    insights: List[Insight] = Field(default_factory=list)


class ActivityEntry(BaseModel):
    timestamp: str
    yesterday: str
    today: str
    blockers: str
    task_count: int = 0
    review_count: int = 0


class MemberSummaryReport(BaseModel):
    member_id: str
    days: int
    summary: MemberSummary
    insights: List[str] = Field(default_factory=list)
    recent_activity: List[ActivityEntry] = Field(default_factory=list)
    trends: List[Trend] = Field(default_factory=list)


class BlockerEntry(BaseModel):
    timestamp: str
    blocker: str
    follow_up_questions: List[str] = Field(default_factory=list)


class MemberBlockerAnalysis(BaseModel):
    member_id: str
    total_blockers: int = 0
    blocker_frequency: int = Field(default=0, ge=0, le=100)
    recent_blockers: List[BlockerEntry] = Field(default_factory=list)
    recurring_blockers: List[RecurringBlocker] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class TeamBlockerAnalysis(BaseModel):
    top_blockers: List[BlockerCount] = Field(default_factory=list)
    active_members: int = 0
    recommendations: List[str] = Field(default_factory=list)


BlockerAnalysis = Union[MemberBlockerAnalysis, TeamBlockerAnalysis]


class HistoryReport(BaseModel):
    member_id: str
    records: List[StandupRecord] = Field(default_factory=list)
    total_entries: int = 0
    first_timestamp: Optional[str] = None
    last_timestamp: Optional[str] = None
    analytics: Optional[HistoryAnalytics] = None
    patterns: Optional[PatternAnalysis] = None


class MemberProductivity(BaseModel):
    member_id: str
    productivity: ProductivityLevel = ProductivityLevel.NO_DATA
    total_standups: int = 0
    average_tasks_per_standup: float = 0.0
    average_prs_per_standup: float = 0.0
    blocker_rate: int = Field(default=0, ge=0, le=100)


class TeamProductivity(BaseModel):
    productivity: ProductivityLevel
    active_members: int = 0
    standup_count: int = 0
    average_tasks_per_member: float = 0.0
    average_prs_per_member: float = 0.0


ProductivityReport = Union[MemberProductivity, TeamProductivity]
