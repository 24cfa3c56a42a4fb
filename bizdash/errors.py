from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base error for the dashboard core."""


class BackendError(DashboardError):
    """A read or write against the hosted backend failed."""

    def __init__(self, message: str, *, table: Optional[str] = None) -> None:
        super().__init__(message)
        self.table = table


class DashboardFetchError(DashboardError):
    """The fetch plan for a dashboard view aborted; partial results are discarded."""


class RecordValidationError(DashboardError):
    """A record-entry form failed client-side validation."""
