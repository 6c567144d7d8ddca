"""Error types raised by the closet core."""

from __future__ import annotations

from typing import Sequence


class ClosetError(RuntimeError):
    """Base class for every error surfaced to presentation code."""


class InvalidInputError(ClosetError):
    """Raised when a caller passes an argument that violates the operation contract."""


class OperationInProgressError(InvalidInputError):
    """Raised when an operation is requested while an identical one is still pending."""


class BackendRequestError(ClosetError):
    """Raised when the AI gateway cannot be reached or answers with an error status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class BackendResponseError(ClosetError):
    """Raised when the gateway answers but the payload does not match the expected shape."""


class SafetyBlockedError(ClosetError):
    """Raised when the model declines a request for policy reasons."""

    def __init__(self, message: str, blocked_categories: Sequence[str] = ()) -> None:
        self.blocked_categories = tuple(blocked_categories)
        super().__init__(message)


class ImageDecodeError(ClosetError):
    """Raised when image bytes cannot be decoded or re-encoded."""


class ContextUnavailableError(ClosetError):
    """Raised by location and weather collaborators; always absorbed by the advisor."""
