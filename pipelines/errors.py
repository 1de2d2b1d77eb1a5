"""
pipelines/errors.py

Error taxonomy for the portal core.

Every user-facing failure subclasses PortalError and carries the exact
message the UI shows.  None of them is fatal: the auth flow turns them into
a ``failure`` status and the form stays editable.
"""

from __future__ import annotations


class PortalError(Exception):
    """Base class for recoverable, user-visible failures."""

    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    """Malformed email, weak password, mismatched confirmation, short name."""


class DuplicateAccount(PortalError):
    default_message = "An account with this email already exists"


class InvalidCredentials(PortalError):
    # same text for "no such account" and "wrong password"
    default_message = "Invalid username or password"


class NotFound(PortalError):
    default_message = "No account found with this email address"


class GenerationFailure(PortalError):
    """A response generator could not produce a reply."""

    default_message = "Response generation failed"


class TransitionError(RuntimeError):
    """An event was applied in a state that does not allow it."""


class ConversationStateError(RuntimeError):
    """A conversation operation was called in the wrong phase."""
