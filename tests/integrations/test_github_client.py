"""
Tests for the GitHub code-review adapter
"""

import httpx
import pytest

from standup_tracker.integrations.github_client import GitHubClient, GitHubConfig


def github_config(**overrides):
    values = dict(token="ghp_test", retry_delay=0.0)
    values.update(overrides)
    return GitHubConfig(**values)


def pull_request(number, state="open", merged_at=None, comments=0, reviewers=()):
    return {
        "number": number,
        "title": f"PR {number}",
        "state": state,
        "comments": comments,
        "created_at": "2026-02-01T10:00:00Z",
        "updated_at": "2026-02-03T10:00:00Z",
        "html_url": f"https://github.com/acme/app/pull/{number}",
        "requested_reviewers": [{"login": login} for login in reviewers],
        "pull_request": {"merged_at": merged_at},
    }


class TestGetMemberReviews:
    @pytest.mark.asyncio
    async def test_parses_pull_requests(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json={"items": [
                pull_request(12, comments=4, reviewers=["bob"]),
                pull_request(11, state="closed", merged_at="2026-02-02T10:00:00Z"),
                pull_request(10, state="closed"),
            ]})

        async with GitHubClient(github_config(), transport=httpx.MockTransport(handler)) as client:
            reviews = await client.get_member_reviews("alice")

        request = seen["request"]
        assert request.url.path == "/search/issues"
        assert request.url.params["q"] == "is:pr author:alice"
        assert request.headers["Authorization"] == "token ghp_test"

        assert [r.id for r in reviews] == ["12", "11", "10"]
        assert [r.state for r in reviews] == ["OPEN", "MERGED", "CLOSED"]
        assert reviews[0].is_open
        assert reviews[0].comment_count == 4
        assert reviews[0].reviewers == ["bob"]
        assert reviews[0].url == "https://github.com/acme/app/pull/12"

    @pytest.mark.asyncio
    async def test_without_token_returns_empty(self):
        def handler(request):
            raise AssertionError("no request expected")

        client = GitHubClient(github_config(token=None), transport=httpx.MockTransport(handler))

        assert await client.get_member_reviews("alice") == []

    @pytest.mark.asyncio
    async def test_rate_limited_degrades(self):
        def handler(request):
            return httpx.Response(403, json={"message": "API rate limit exceeded"})

        async with GitHubClient(github_config(), transport=httpx.MockTransport(handler)) as client:
            assert await client.get_member_reviews("alice") == []

    @pytest.mark.asyncio
    async def test_timeout_degrades(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out")

        async with GitHubClient(github_config(retry_attempts=0), transport=httpx.MockTransport(handler)) as client:
            assert await client.get_member_reviews("alice") == []
