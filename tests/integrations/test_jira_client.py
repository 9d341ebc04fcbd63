"""
Tests for the Jira issue-tracker adapter

HTTP traffic is served by httpx.MockTransport.
"""

import httpx
import pytest

from standup_tracker.integrations.jira_client import JiraClient, JiraConfig


def jira_config(**overrides):
    values = dict(
        base_url="https://example.atlassian.net/",
        email="bot@example.com",
        api_token="secret",
        retry_delay=0.0
    )
    values.update(overrides)
    return JiraConfig(**values)


def issue(key, summary="Build login", status="In Progress", priority="High"):
    return {
        "key": key,
        "fields": {
            "summary": summary,
            "status": {"name": status, "statusCategory": {"name": "In Progress"}},
            "priority": {"name": priority},
            "updated": "2026-02-10T10:00:00.000+0000",
        },
    }


class TestJiraConfig:
    def test_trailing_slash_removed(self):
        assert jira_config().base_url == "https://example.atlassian.net"

    def test_rejects_non_http_url(self):
        with pytest.raises(ValueError):
            jira_config(base_url="example.atlassian.net")


class TestGetMemberTasks:
    @pytest.mark.asyncio
    async def test_parses_issues(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json={"issues": [
                issue("PROJ-1"),
                {"key": "PROJ-2", "fields": {}},
                {"id": "1003", "fields": {"summary": "No key"}},
            ]})

        async with JiraClient(jira_config(), transport=httpx.MockTransport(handler)) as client:
            tasks = await client.get_member_tasks("alice")

        request = seen["request"]
        assert request.url.path == "/rest/api/3/search"
        assert request.url.params["jql"] == (
            'assignee = "alice" AND resolution = Unresolved ORDER BY updated DESC'
        )
        assert request.url.params["maxResults"] == "50"
        assert request.headers["Authorization"].startswith("Basic ")

        assert [t.id for t in tasks] == ["PROJ-1", "PROJ-2"]
        assert tasks[0].status == "In Progress"
        assert tasks[0].priority == "High"
        assert tasks[0].url == "https://example.atlassian.net/browse/PROJ-1"
        assert tasks[1].title == "PROJ-2"
        assert tasks[1].status == "Unknown"
        assert tasks[1].priority == "None"

    @pytest.mark.asyncio
    async def test_unconfigured_returns_empty(self):
        def handler(request):
            raise AssertionError("no request expected")

        client = JiraClient(jira_config(api_token=None), transport=httpx.MockTransport(handler))

        assert await client.get_member_tasks("alice") == []

    @pytest.mark.asyncio
    async def test_server_errors_are_retried_then_degrade(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        async with JiraClient(jira_config(), transport=httpx.MockTransport(handler)) as client:
            tasks = await client.get_member_tasks("alice")

        assert tasks == []
        assert len(calls) == 3
        assert client.metrics.failed_requests == 1

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"errorMessages": ["Unauthorized"]})

        async with JiraClient(jira_config(), transport=httpx.MockTransport(handler)) as client:
            assert await client.get_member_tasks("alice") == []

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self):
        responses = iter([httpx.Response(502), httpx.Response(200, json={"issues": [issue("PROJ-7")]})])

        def handler(request):
            return next(responses)

        async with JiraClient(jira_config(), transport=httpx.MockTransport(handler)) as client:
            tasks = await client.get_member_tasks("alice")

        assert [t.id for t in tasks] == ["PROJ-7"]
        assert client.metrics.success_rate == 100.0

    @pytest.mark.asyncio
    async def test_network_error_degrades(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        async with JiraClient(jira_config(), transport=httpx.MockTransport(handler)) as client:
            assert await client.get_member_tasks("alice") == []

    @pytest.mark.asyncio
    async def test_invalid_json_degrades(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>maintenance</html>")

        async with JiraClient(jira_config(), transport=httpx.MockTransport(handler)) as client:
            assert await client.get_member_tasks("alice") == []
