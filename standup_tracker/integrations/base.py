from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
from datetime import datetime, timezone
import asyncio
import logging

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..core.exceptions import AdapterUnavailable
from ..models.standup import LinkedReview, LinkedTask


# Data models
class StoredObjectInfo(BaseModel):
    """Listing entry returned by a record store."""

    key: str
    last_modified: datetime


class IntegrationConfig(BaseModel):
    """Base configuration for all integrations."""

    model_config = ConfigDict(extra="forbid")

    name: str
    base_url: str
    timeout: float = Field(default=10.0, gt=0, le=300)
    retry_attempts: int = Field(default=2, ge=0, le=10)
    retry_delay: float = Field(default=0.5, ge=0.0, le=60.0)


class IntegrationMetrics(BaseModel):
    """Integration performance metrics."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    last_error: Optional[str] = None
    last_success: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Calculate success rate percentage."""
        if self.total_requests == 0:
            return 0.0
        return (self.successful_requests / self.total_requests) * 100


# Collaborator interfaces
class RecordStore(ABC):
    """Append-only key/bytes storage for standup records."""

    @abstractmethod
    async def put(self, key: str, data: bytes) -> None:
        """Store ``data`` under ``key``. Raises StoreError on failure."""

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Return the object body, or None when the key does not exist."""

    @abstractmethod
    async def list(self, prefix: str) -> List[StoredObjectInfo]:
        """List objects under ``prefix`` ordered by key."""


class IssueTrackerAdapter(ABC):
    @abstractmethod
    async def get_member_tasks(self, member_id: str) -> List[LinkedTask]:
        """Open tasks assigned to the member; empty list when unreachable."""

    async def close(self) -> None:
        """Release connections held by the adapter."""


class CodeReviewAdapter(ABC):
    @abstractmethod
    async def get_member_reviews(self, member_id: str) -> List[LinkedReview]:
        """Reviews authored by the member; empty list when unreachable."""

    async def close(self) -> None:
        """Release connections held by the adapter."""


class GenerativeTextAdapter(ABC):
    @abstractmethod
    async def invoke(self, prompt: str, max_tokens: int, temperature: float) -> str:
        """Return generated text. May raise on any failure."""


# Base HTTP integration
class BaseIntegration(ABC):
    """
    Base class for HTTP-backed collaborators.

    Provides common functionality:
    - HTTP client management
    - Retry logic with exponential backoff
    - Error mapping to AdapterUnavailable
    - Metrics tracking
    """

    def __init__(
        self,
        config: IntegrationConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        self.config = config
        self.metrics = IntegrationMetrics()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether enough configuration exists to call the service."""

    def _get_default_headers(self) -> Dict[str, str]:
        """Get default headers for requests."""
        return {
            "User-Agent": f"Standup-Tracker/{self.config.name}",
            "Accept": "application/json",
        }

    def _get_auth(self) -> Optional[httpx.Auth]:
        """Authentication applied to every request, if any."""
        return None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers=self._get_default_headers(),
                auth=self._get_auth(),
                transport=self._transport
            )
        return self._client

    async def _make_request(
        self,
        method: str,
        url: str,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with error handling and retry logic.

        Server errors, timeouts and network errors are retried with
        exponential backoff. Client errors fail immediately.

        Raises:
            AdapterUnavailable: when the request cannot be completed
        """
        client = self._get_client()

        for attempt in range(self.config.retry_attempts + 1):
            try:
                response = await client.request(method, url, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                if attempt < self.config.retry_attempts:
                    await asyncio.sleep(self.config.retry_delay * (2 ** attempt))
                    continue
                self._update_metrics_failure(str(e))
                raise AdapterUnavailable(
                    f"Network error: {str(e)}",
                    self.config.name
                ) from e

            if response.is_success:
                self._update_metrics_success()
                return response

            if response.status_code >= 500 and attempt < self.config.retry_attempts:
                await asyncio.sleep(self.config.retry_delay * (2 ** attempt))
                continue

            self._update_metrics_failure(f"HTTP {response.status_code}")
            raise AdapterUnavailable(
                f"{self.config.name} returned {response.status_code}",
                self.config.name,
                status_code=response.status_code
            )

        # Should never reach here
        raise AdapterUnavailable(
            "Request failed after all retries",
            self.config.name
        )

    def _update_metrics_success(self) -> None:
        self.metrics.total_requests += 1
        self.metrics.successful_requests += 1
        self.metrics.last_success = datetime.now(timezone.utc)

    def _update_metrics_failure(self, error: str) -> None:
        self.metrics.total_requests += 1
        self.metrics.failed_requests += 1
        self.metrics.last_error = error

    async def close(self) -> None:
        """Close HTTP client and cleanup resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> BaseIntegration:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


__all__ = [
    "StoredObjectInfo",
    "IntegrationConfig",
    "IntegrationMetrics",
    "RecordStore",
    "IssueTrackerAdapter",
    "CodeReviewAdapter",
    "GenerativeTextAdapter",
    "BaseIntegration",
]
