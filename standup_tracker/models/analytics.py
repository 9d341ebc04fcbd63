"""
Derived analytics models.

Everything here is recomputed from the record set on demand and is never
persisted as a source of truth.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class ConsistencyLevel(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    NO_DATA = "No data"


class ProductivityLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NO_DATA = "No data"


class Insight(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    message: str
    priority: Priority
    details: Optional[List[Dict[str, Any]]] = None


class DateRange(BaseModel):
    """Inclusive range of ISO-8601 timestamps, compared as strings."""

    start: Optional[str] = None
    end: Optional[str] = None

    def contains(self, timestamp: str) -> bool:
        if self.start is not None and timestamp < self.start:
            return False
        if self.end is not None and timestamp > self.end:
            return False
        return True


class BlockerCount(BaseModel):
    text: str
    count: int = Field(ge=0)


class MemberStats(BaseModel):
    standup_count: int = Field(default=0, ge=0)
    total_tasks: int = Field(default=0, ge=0)
    total_prs: int = Field(default=0, ge=0)
    blockers: List[str] = Field(default_factory=list)


class Metrics(BaseModel):
    standup_count: int = Field(default=0, ge=0)
    active_members: int = Field(default=0, ge=0)
    average_tasks_per_member: float = Field(default=0.0, ge=0)
    average_prs_per_member: float = Field(default=0.0, ge=0)
    blocker_frequency_pct: float = Field(default=0.0, ge=0, le=100)
    top_blockers: List[BlockerCount] = Field(default_factory=list)
    per_member_stats: Dict[str, MemberStats] = Field(default_factory=dict)


class Trend(BaseModel):
    metric: str
    direction: TrendDirection
    recent_avg: float = 0.0
    earlier_avg: float = 0.0

    @property
    def has_data(self) -> bool:
        return self.direction != TrendDirection.INSUFFICIENT_DATA


class RecurringBlocker(BaseModel):
    blocker: str
    occurrences: int = Field(ge=2)


class KeywordCount(BaseModel):
    word: str
    count: int


class HistoryAnalytics(BaseModel):
    total_entries: int = 0
    average_tasks_per_standup: float = 0.0
    average_prs_per_standup: float = 0.0
    blocker_frequency: int = Field(default=0, ge=0, le=100)
    most_active_day: Optional[str] = None
    common_keywords: List[KeywordCount] = Field(default_factory=list)
    work_patterns: Dict[str, int] = Field(default_factory=dict)


class MemberSummary(BaseModel):
    total_standups: int = 0
    average_tasks_per_standup: float = 0.0
    average_prs_per_standup: float = 0.0
    blocker_frequency: int = Field(default=0, ge=0, le=100)
    productivity: ProductivityLevel = ProductivityLevel.NO_DATA
    consistency: ConsistencyLevel = ConsistencyLevel.NO_DATA


class PatternAnalysis(BaseModel):
    trends: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
