from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.exceptions import ValidationError
from .analytics import Insight


REQUIRED_SUBMISSION_FIELDS = ("member_id", "yesterday", "today", "blockers")

# Payload keys accepted for each submission field
_FIELD_ALIASES = {
    "member_id": ("member_id", "memberId", "teamMemberName"),
    "yesterday": ("yesterday",),
    "today": ("today",),
    "blockers": ("blockers",),
}


class StandupSubmission(BaseModel):
    """Raw update as submitted by a team member."""

    member_id: str
    yesterday: str
    today: str
    blockers: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> StandupSubmission:
        """Build a submission, rejecting missing or blank required fields."""
        values = {}
        missing = []
        for field_name in REQUIRED_SUBMISSION_FIELDS:
            value = None
            for key in _FIELD_ALIASES[field_name]:
                if key in payload:
                    value = payload[key]
                    break
            if not isinstance(value, str) or not value.strip():
                missing.append(field_name)
            else:
                values[field_name] = value.strip()

        if missing:
            raise ValidationError(missing)

        return cls(**values)


class LinkedTask(BaseModel):
    """Issue-tracker task assigned to a member."""

    id: str
    title: str
    status: str = "Unknown"
    status_category: Optional[str] = None
    priority: str = "None"
    updated_at: Optional[str] = None
    url: Optional[str] = None


class LinkedReview(BaseModel):
    """Code review (pull request) authored by a member."""

    id: str
    title: str
    state: str = "OPEN"
    comment_count: int = Field(default=0, ge=0)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    reviewers: List[str] = Field(default_factory=list)
    url: Optional[str] = None

    @field_validator("state")
    @classmethod
    def normalize_state(cls, v: str) -> str:
        return v.upper()

    @property
    def is_open(self) -> bool:
        return self.state == "OPEN"


class StandupRecord(BaseModel):
    """Immutable, append-only standup submission.

    Collections are tuples so a stored record cannot be changed in place.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    member_id: str
    timestamp: str
    yesterday: str
    today: str
    blockers: str
    linked_task_refs: Tuple[str, ...] = ()
    linked_review_refs: Tuple[str, ...] = ()
    follow_up_questions: Tuple[str, ...] = ()
    insights: Tuple[Insight, ...] = ()

    @property
    def has_blocker(self) -> bool:
        return is_meaningful_blocker(self.blockers)


def is_meaningful_blocker(text: Optional[str]) -> bool:
    """True unless the blocker text is empty or a plain "none"."""
    if not text:
        return False
    stripped = text.strip()
    return bool(stripped) and stripped.lower() != "none"
