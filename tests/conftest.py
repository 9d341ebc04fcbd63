"""
Pytest configuration and shared fixtures

Provides record factories, an in-memory record store and fake adapters.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
import uuid

import pytest

from standup_tracker.config import TestingConfig
from standup_tracker.integrations.base import (
    CodeReviewAdapter,
    GenerativeTextAdapter,
    IssueTrackerAdapter,
)
from standup_tracker.integrations.record_store import InMemoryRecordStore
from standup_tracker.models.standup import LinkedReview, LinkedTask, StandupRecord


BASE_TIME = datetime(2026, 2, 2, 9, 0, 0, tzinfo=timezone.utc)


def iso(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_record(
    member_id: str = "alice",
    day: int = 0,
    tasks: int = 0,
    reviews: int = 0,
    blockers: str = "None",
    today: str = "Implement the login page",
    yesterday: str = "Reviewed pull requests",
    follow_up_questions: Optional[List[str]] = None
) -> StandupRecord:
    """Build a StandupRecord ``day`` days after BASE_TIME"""
    return StandupRecord(
        id=str(uuid.uuid4()),
        member_id=member_id,
        timestamp=iso(BASE_TIME + timedelta(days=day)),
        yesterday=yesterday,
        today=today,
        blockers=blockers,
        linked_task_refs=[f"PROJ-{day}-{n}" for n in range(tasks)],
        linked_review_refs=[f"{day}{n}" for n in range(reviews)],
        follow_up_questions=follow_up_questions or []
    )


class FakeIssueTracker(IssueTrackerAdapter):
    def __init__(self, tasks: Optional[List[LinkedTask]] = None, error: Optional[Exception] = None):
        self.tasks = tasks or []
        self.error = error
        self.calls: List[str] = []

    async def get_member_tasks(self, member_id: str) -> List[LinkedTask]:
        self.calls.append(member_id)
        if self.error is not None:
            raise self.error
        return list(self.tasks)


class FakeCodeReview(CodeReviewAdapter):
    def __init__(self, reviews: Optional[List[LinkedReview]] = None, error: Optional[Exception] = None):
        self.reviews = reviews or []
        self.error = error
        self.calls: List[str] = []

    async def get_member_reviews(self, member_id: str) -> List[LinkedReview]:
        self.calls.append(member_id)
        if self.error is not None:
            raise self.error
        return list(self.reviews)


class FakeTextAdapter(GenerativeTextAdapter):
    """Returns a canned response, or raises when given an exception"""

    def __init__(self, response: object = None, error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.prompts: List[str] = []

    async def invoke(self, prompt: str, max_tokens: int, temperature: float) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def record_factory():
    """Provide the record factory"""
    return make_record


@pytest.fixture
def settings():
    """Testing settings with AI suggestions enabled"""
    return TestingConfig(enable_ai_suggestions=True)


@pytest.fixture
def memory_store():
    return InMemoryRecordStore()


@pytest.fixture
def sample_tasks():
    return [
        LinkedTask(id="PROJ-1", title="Login page", status="In Progress"),
        LinkedTask(id="PROJ-2", title="Session timeout", status="To Do"),
    ]


@pytest.fixture
def sample_reviews():
    return [
        LinkedReview(id="41", title="Add login form", state="open", comment_count=2),
        LinkedReview(id="42", title="Fix flaky test", state="MERGED", comment_count=12),
    ]
