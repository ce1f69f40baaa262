"""Domain errors raised by the login guard and quiz services.

Routers translate these into HTTP responses; none of them is fatal to the
process.
"""

from __future__ import annotations

from datetime import datetime


class QuizHubError(Exception):
    """Base class for quizhub domain errors."""


class StoreUnavailable(QuizHubError):
    """The database could not be reached (or timed out) after one retry."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Store unavailable during {operation}")


class BlockedAccount(QuizHubError, PermissionError):
    """Sign-in refused because the email is locked after repeated failures."""

    def __init__(self, email: str, blocked_until: datetime | None = None) -> None:
        self.email = email
        self.blocked_until = blocked_until
        super().__init__("Account temporarily locked after too many failed attempts. Reset your password to continue.")


class InvalidCredentials(QuizHubError, ValueError):
    """Email or password did not match."""

    def __init__(self, remaining_attempts: int | None = None) -> None:
        self.remaining_attempts = remaining_attempts
        super().__init__("Invalid email or password")
