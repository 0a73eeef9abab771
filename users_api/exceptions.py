"""
Errors raised by the account lifecycle.

Every error carries a list of :class:`Problem` records, so that the HTTP
layer can render a structured, field-tagged list of what went wrong without
knowing anything about the store or the token layer underneath.
"""

from typing import List, NamedTuple, Optional


class Problem(NamedTuple):
    """One thing that is wrong with a request."""

    field: Optional[str]
    """The request field at fault, if any."""

    kind: str
    """The error kind, e.g. ``DuplicateEmail``."""

    message: str
    """Human-readable description."""


class AccountError(RuntimeError):
    """Base class for lifecycle failures."""

    field: Optional[str] = None
    message = 'The request could not be completed.'

    def __init__(self, message: Optional[str] = None,
                 problems: Optional[List[Problem]] = None) -> None:
        """Use the class defaults unless a message or problems are given."""
        message = message or self.message
        super(AccountError, self).__init__(message)
        if problems is None:
            problems = [Problem(self.field, self.kind, message)]
        self.problems = problems

    @property
    def kind(self) -> str:
        """The error kind reported to callers."""
        return type(self).__name__


class ValidationError(AccountError):
    """Malformed or missing input."""

    message = 'The request is not valid.'


class DuplicateEmail(AccountError):
    """An account with that e-mail address already exists."""

    field = 'email'
    message = 'An account with that email already exists.'


class DuplicateUsername(AccountError):
    """An account with that username already exists."""

    field = 'username'
    message = 'An account with that username already exists.'


class WeakPassword(AccountError):
    """The password does not satisfy the password policy."""

    field = 'password'
    message = 'The password does not satisfy the password policy.'


class NotFound(AccountError):
    """There is no such user."""

    message = 'User not found.'


class NotEligible(AccountError):
    """
    The account cannot be recovered with a password reset.

    Raised both for unknown and for unconfirmed addresses, so that callers
    cannot use it to discover which addresses have accounts.
    """

    field = 'email'
    message = 'Please verify your e-mail address.'


class InvalidToken(AccountError):
    """The code is malformed, expired, for another purpose, or used."""

    field = 'code'
    message = 'Invalid token.'


class InvalidCredentials(AccountError):
    """The username or password is incorrect."""

    message = 'Invalid username or password.'


class DeliveryFailure(AccountError):
    """
    A notification e-mail could not be sent.

    This is never raised from a lifecycle operation once the state change
    has been committed; it is reported as a warning instead.
    """

    message = 'We could not send you an e-mail. Please try again later.'
