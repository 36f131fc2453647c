# tenancy/domain/errors.py
from __future__ import annotations


class TenancyError(Exception):
    """
    Base for every error the engine raises on purpose.

    `message` is short and human readable; the HTTP layer returns it verbatim.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TenancyError):
    """Caller-correctable input problem. Raised before any store/notifier call."""


class IllegalTransition(TenancyError):
    """Action not allowed from the current termination state (programming error)."""

    def __init__(self, message: str, *, state: str | None = None, action: str | None = None):
        super().__init__(message)
        self.state = state
        self.action = action


class CollaboratorError(TenancyError):
    """Contract store failure. Retryable by the caller; nothing was advanced."""


class LeaseNotFound(CollaboratorError):
    pass


class ConcurrentUpdate(CollaboratorError):
    """The lease row changed between read and write (version mismatch)."""
