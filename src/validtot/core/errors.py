"""
Domain exceptions for the vote core.

Policy rejections are expected and user-facing; they carry the message
shown to the voter. Conflicts are internal and always recovered by the
ledger. Backend failures are retry-safe only when raised before a vote
insert was issued.
"""

from typing import Optional


class ValidtotError(Exception):
    """Base class for all application errors."""

    status_code: int = 400
    message: str = "Request could not be completed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


# =============================================================================
# Policy rejections
# =============================================================================


class PolicyRejection(ValidtotError):
    """Expected refusal to act. Never retried automatically."""

    status_code = 403


class VotingClosedError(PolicyRejection):
    """The post's voting window does not currently accept votes."""

    message = "Voting is not open for this post"

    def __init__(self, state: str, message: Optional[str] = None):
        super().__init__(message)
        self.state = state


class AuthenticationRequiredError(PolicyRejection):
    status_code = 401
    message = "Sign in to vote"


class AccountBannedError(PolicyRejection):
    message = "This account is not allowed to vote"


class PostLockedError(PolicyRejection):
    message = "Enter the access code to unlock this post"


class AdminRequiredError(PolicyRejection):
    message = "Admin access required"


# =============================================================================
# Lookup and validation
# =============================================================================


class PostNotFoundError(ValidtotError):
    status_code = 404
    message = "Post not found"


class InvalidOptionError(ValidtotError):
    message = "Invalid option for this post"


class PostValidationError(ValidtotError):
    status_code = 422
    message = "Invalid post"


# =============================================================================
# Store signals
# =============================================================================


class VoteConflictError(ValidtotError):
    """A vote row for this (post, account) already exists."""

    status_code = 409
    message = "Vote already recorded"


class BackendUnavailableError(ValidtotError):
    """The data store could not be reached. Safe to retry the whole operation."""

    status_code = 503
    message = "Something went wrong. Please try again."


class StorageUnavailable(Exception):
    """Client-side storage cannot be read or written."""
