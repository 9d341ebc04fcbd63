"""
Adapters for the standup tracker's external collaborators.

- Record store (in-memory, SQLAlchemy)
- Issue tracker (Jira)
- Code review (GitHub)
"""

from .base import (
    RecordStore,
    IssueTrackerAdapter,
    CodeReviewAdapter,
    GenerativeTextAdapter,
    StoredObjectInfo,
    BaseIntegration,
    IntegrationConfig,
)
from .record_store import InMemoryRecordStore, SQLRecordStore
from .jira_client import JiraClient, JiraConfig
from .github_client import GitHubClient, GitHubConfig

__all__ = [
    "RecordStore",
    "IssueTrackerAdapter",
    "CodeReviewAdapter",
    "GenerativeTextAdapter",
    "StoredObjectInfo",
    "BaseIntegration",
    "IntegrationConfig",
    "InMemoryRecordStore",
    "SQLRecordStore",
    "JiraClient",
    "JiraConfig",
    "GitHubClient",
    "GitHubConfig",
]
