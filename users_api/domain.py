"""Defines the core data structures for the users-api service."""

from typing import Any, Optional, NamedTuple
from datetime import datetime
from pytz import UTC


class TokenPurpose:
    """Operations for which a single-use account token may be issued."""

    EMAIL_CONFIRMATION = 'EmailConfirmation'
    """Proves control of the e-mail address given at registration."""

    PASSWORD_RESET = 'PasswordReset'
    """Authorizes replacing the password of a confirmed account."""

    ALL = (EMAIL_CONFIRMATION, PASSWORD_RESET)


class User(NamedTuple):
    """Represents a user account."""

    username: str
    """Slug-like username."""

    email: str
    """The user's primary e-mail address."""

    user_id: Optional[str] = None
    """Unique identifier for the user. If ``None``, the user does not exist."""

    name: str = ''
    """First name or given name."""

    surname: str = ''
    """Last name or family name."""

    email_confirmed: bool = False
    """Whether or not the user's e-mail address has been confirmed."""

    security_stamp: Optional[str] = None
    """
    Opaque value that changes whenever credentials or confirmation change.

    Tokens embed the stamp that was current when they were issued, so rotating
    the stamp invalidates every outstanding token for the user.
    """

    created: Optional[datetime] = None
    """When the account was registered."""


class UserRegistration(NamedTuple):
    """Represents a request to register a new user."""

    username: str
    password: str
    email: str
    name: str
    surname: str

    def to_user(self) -> User:
        """Generate an unsaved :class:`.User` from this registration."""
        return User(username=self.username, email=self.email,
                    name=self.name, surname=self.surname)


class TokenClaims(NamedTuple):
    """Claims carried by a purpose-scoped account token."""

    user_id: str
    """The user to whom the token was issued."""

    stamp: str
    """Snapshot of the user's security stamp at the time of issue."""

    purpose: str
    """One of :attr:`TokenPurpose.ALL`."""

    issued: datetime
    expires: datetime

    @property
    def expired(self) -> bool:
        """Expired if the current time is at or after :attr:`.expires`."""
        return datetime.now(tz=UTC) >= self.expires


class Session(NamedTuple):
    """An authenticated session, as carried by a bearer token."""

    user_id: str
    username: str
    email: str
    email_confirmed: bool = False
    issued: Optional[datetime] = None
    expires: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User, issued: datetime,
                  expires: datetime) -> 'Session':
        """Start a session for ``user``."""
        assert user.user_id is not None
        return cls(user_id=user.user_id, username=user.username,
                   email=user.email, email_confirmed=user.email_confirmed,
                   issued=issued, expires=expires)


def to_dict(obj: tuple) -> dict:
    """
    Generate a dict representation of a NamedTuple instance.

    Nested NamedTuples are cast recursively, and datetimes are rendered as
    ISO-8601 strings, so that the result can be serialized as JSON.

    Parameters
    ----------
    obj : tuple
        A NamedTuple instance.

    Returns
    -------
    dict

    """
    if not hasattr(obj, '_asdict'):  # NamedTuple-generated classes have this.
        return {}

    def _cast(value: Any) -> Any:
        if hasattr(value, '_asdict'):
            return to_dict(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, list):
            return [_cast(o) for o in value]
        return value

    return {key: _cast(value) for key, value in obj._asdict().items()}
