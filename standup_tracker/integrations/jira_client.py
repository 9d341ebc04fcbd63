from __future__ import annotations

from typing import Dict, Any, List, Optional

import httpx
from pydantic import field_validator

from ..core.exceptions import AdapterUnavailable
from ..models.standup import LinkedTask
from .base import BaseIntegration, IntegrationConfig, IssueTrackerAdapter


SEARCH_FIELDS = [
    "summary",
    "status",
    "priority",
    "updated",
]


class JiraConfig(IntegrationConfig):
    """Jira integration configuration."""

    name: str = "jira"
    base_url: str = ""
    email: Optional[str] = None
    api_token: Optional[str] = None
    max_results: int = 50

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Base URL must start with http:// or https://")
        return v.rstrip("/")


class JiraClient(BaseIntegration, IssueTrackerAdapter):
    """
    Issue-tracker adapter backed by the Jira Cloud REST API.

    Raw issues are validated into ``LinkedTask`` here so callers never deal
    with optional Jira fields. Any failure degrades to an empty task list.
    """

    config: JiraConfig

    def __init__(
        self,
        config: JiraConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        super().__init__(config, transport)

    @property
    def is_configured(self) -> bool:
        return bool(self.config.base_url and self.config.email and self.config.api_token)

    def _get_auth(self) -> Optional[httpx.Auth]:
        if self.config.email and self.config.api_token:
            return httpx.BasicAuth(self.config.email, self.config.api_token)
        return None

    async def get_member_tasks(self, member_id: str) -> List[LinkedTask]:
        """Get unresolved tasks assigned to a member, most recently updated first."""
        if not self.is_configured:
            self._logger.warning("Jira not configured, returning empty tasks")
            return []

        jql = f'assignee = "{member_id}" AND resolution = Unresolved ORDER BY updated DESC'

        try:
            response = await self._make_request(
                "GET",
                "/rest/api/3/search",
                params={
                    "jql": jql,
                    "maxResults": self.config.max_results,
                    "fields": ",".join(SEARCH_FIELDS)
                }
            )
            payload = response.json()
        except AdapterUnavailable as e:
            self._logger.warning(f"Jira unavailable for {member_id}: {str(e)}")
            return []
        except ValueError as e:
            self._logger.warning(f"Jira returned invalid JSON: {str(e)}")
            return []

        tasks = []
        for issue in payload.get("issues") or []:
            task = self._parse_issue(issue)
            if task is not None:
                tasks.append(task)

        self._logger.info(f"Found {len(tasks)} Jira tasks for {member_id}")
        return tasks

    def _parse_issue(self, issue: Dict[str, Any]) -> Optional[LinkedTask]:
        """Parse a raw Jira issue, or None when it lacks a key."""
        key = issue.get("key")
        if not key:
            self._logger.debug(f"Skipping Jira issue without key: {issue.get('id')}")
            return None

        fields = issue.get("fields") or {}
        status = fields.get("status") or {}
        priority = fields.get("priority") or {}
        category = status.get("statusCategory") or {}

        return LinkedTask(
            id=key,
            title=fields.get("summary") or key,
            status=status.get("name") or "Unknown",
            status_category=category.get("name"),
            priority=priority.get("name") or "None",
            updated_at=fields.get("updated"),
            url=f"{self.config.base_url}/browse/{key}"
        )
