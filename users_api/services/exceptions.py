"""Exceptions raised by the user store."""

from typing import List, Optional


class NoSuchUser(RuntimeError):
    """User does not exist."""


class AuthenticationFailed(RuntimeError):
    """Failed to authenticate user with provided credentials."""


class PasswordAuthenticationFailed(RuntimeError):
    """Password is not correct."""


class StampMismatch(RuntimeError):
    """The user's security stamp changed before the update was applied."""


class RegistrationFailed(RuntimeError):
    """A new account could not be created."""


class DuplicateUsername(RegistrationFailed):
    """An account with that username already exists."""


class DuplicateEmail(RegistrationFailed):
    """An account with that e-mail address already exists."""


class WeakPassword(ValueError):
    """A password does not satisfy the password policy."""

    def __init__(self, problems: Optional[List[str]] = None) -> None:
        """Keep the individual policy violations for reporting."""
        self.problems = problems or []
        super(WeakPassword, self).__init__('; '.join(self.problems))
