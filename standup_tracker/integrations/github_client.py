"""
GitHub integration client for the standup tracker
Supplies the pull requests authored by a member as code-review state
"""

from typing import Dict, List, Optional, Any

import httpx

from ..core.exceptions import AdapterUnavailable
from ..models.standup import LinkedReview
from .base import BaseIntegration, IntegrationConfig, CodeReviewAdapter


class GitHubConfig(IntegrationConfig):
    """GitHub integration configuration."""

    name: str = "github"
    base_url: str = "https://api.github.com"
    token: Optional[str] = None
    per_page: int = 50


class GitHubClient(BaseIntegration, CodeReviewAdapter):
    """Code-review adapter backed by the GitHub search API"""

    config: GitHubConfig

    def __init__(
        self,
        config: GitHubConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        super().__init__(config, transport)

    @property
    def is_configured(self) -> bool:
        return bool(self.config.token)

    def _get_default_headers(self) -> Dict[str, str]:
        headers = super()._get_default_headers()
        headers["Accept"] = "application/vnd.github.v3+json"
        if self.config.token:
            headers["Authorization"] = f"token {self.config.token}"
        return headers

    async def get_member_reviews(self, member_id: str) -> List[LinkedReview]:
        """Get pull requests authored by a member, most recently updated first"""
        if not self.is_configured:
            self._logger.warning("GitHub not configured, returning empty reviews")
            return []

        params = {
            "q": f"is:pr author:{member_id}",
            "sort": "updated",
            "order": "desc",
            "per_page": self.config.per_page
        }

        try:
            response = await self._make_request("GET", "/search/issues", params=params)
            payload = response.json()
        except AdapterUnavailable as e:
            self._logger.warning(f"GitHub unavailable for {member_id}: {str(e)}")
            return []
        except ValueError as e:
            self._logger.warning(f"GitHub returned invalid JSON: {str(e)}")
            return []

        reviews = [self._parse_pull_request(item) for item in payload.get("items") or []]
        self._logger.info(f"Found {len(reviews)} pull requests for {member_id}")
        return reviews

    def _parse_pull_request(self, item: Dict[str, Any]) -> LinkedReview:
        """Map a search result onto a LinkedReview"""
        pull_request = item.get("pull_request") or {}
        if pull_request.get("merged_at"):
            state = "MERGED"
        else:
            state = item.get("state") or "OPEN"

        reviewers = [
            reviewer.get("login")
            for reviewer in item.get("requested_reviewers") or []
            if reviewer.get("login")
        ]

        return LinkedReview(
            id=str(item.get("number") or item.get("id")),
            title=item.get("title") or "",
            state=state,
            comment_count=item.get("comments") or 0,
            created_at=item.get("created_at"),
            updated_at=item.get("updated_at"),
            reviewers=reviewers,
            url=item.get("html_url")
        )
