"""Exception types raised by the order board engine and its service client."""

from __future__ import annotations

from typing import Optional


class OrderBoardError(Exception):
    """Base class for every error raised by this package."""


class OrderServiceError(OrderBoardError):
    """
    Raised when the remote order service answers with an error (or cannot be
    reached after retries). Carries enough context for the sync indicator.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        endpoint: str = "",
        response_excerpt: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint
        self.response_excerpt = response_excerpt


class ReadOnlyStatusError(OrderBoardError):
    """A collapsed (read-only) canonical status was fed back to the remote vocabulary."""


class UnmappedStatusError(OrderBoardError):
    """A status has no column in the active role's board: data-integrity defect."""
