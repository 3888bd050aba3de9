"""Exception taxonomy shared by the core and the HTTP layer."""

from __future__ import annotations


class VibeShiftError(Exception):
    """Base class for every error raised by vibeshift."""


class TransportError(VibeShiftError):
    """A policy-service round-trip failed.

    Covers network failures, timeouts, non-2xx responses and unparseable
    bodies.  ``status`` is ``None`` when no HTTP response was received.
    Transport errors are surfaced to the caller and never retried.
    """

    def __init__(self, operation: str, status: int | None, detail: str = "") -> None:
        self.operation = operation
        self.status = status
        self.detail = detail
        label = f"{operation} {status}" if status is not None else f"{operation} (no response)"
        super().__init__(f"{label}: {detail}" if detail else label)


class ValidationError(VibeShiftError, ValueError):
    """Malformed input to one of the pure functions (e.g. ``n < 1``)."""


class SessionStateError(VibeShiftError):
    """A session operation was attempted in a state that does not allow it."""
