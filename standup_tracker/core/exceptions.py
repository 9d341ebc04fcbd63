from datetime import datetime, timezone
from typing import List, Optional


class StandupTrackerError(Exception):
    """Base exception for the standup tracker."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.timestamp = datetime.now(timezone.utc)


class ValidationError(StandupTrackerError):
    """A submission is missing required fields."""

    def __init__(self, missing_fields: List[str]) -> None:
        super().__init__(f"Missing required fields: {', '.join(missing_fields)}")
        self.missing_fields = list(missing_fields)


class AdapterUnavailable(StandupTrackerError):
    """An optional external collaborator failed or timed out."""

    def __init__(
        self,
        message: str,
        adapter_name: str,
        status_code: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.adapter_name = adapter_name
        self.status_code = status_code


class StoreError(StandupTrackerError):
    """The record store failed to read or write an object."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key
