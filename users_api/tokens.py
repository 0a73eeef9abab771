"""
Stateless, purpose-scoped account tokens.

This module issues and checks the single-use codes that are mailed to users
to confirm their e-mail address or to reset their password. Nothing is stored
on the server.

A token is a signed JWT that carries the user's ID, the purpose for which it
was issued, an expiration, and a snapshot of the user's security stamp. The
token is signed using a server-side secret, so it cannot be forged or altered.

When a token is checked with :func:`validate`, the embedded stamp is compared
to the user's *current* stamp. Confirming an e-mail address or resetting a
password rotates the stamp, so a token stops working as soon as it has been
used, and so does every other outstanding token for the same user. This is
the only revocation mechanism, and it fails closed: if the user cannot be
found, the token is rejected.

Any failure raises a subclass of :class:`InvalidToken`; the subclass tells
the caller why, for logging purposes.
"""

from typing import Any, Mapping
from datetime import datetime, timedelta
import hmac
import logging

from pytz import UTC
import dateutil.parser
import jwt

from . import domain
from .services import users

logger = logging.getLogger(__name__)

ALGORITHM = 'HS256'
DEFAULT_LIFESPAN = 86400
"""Tokens are valid for one day unless otherwise configured."""


class InvalidToken(ValueError):
    """A token was passed that cannot be used for the requested operation."""


class MalformedToken(InvalidToken):
    """The token cannot be decoded, or was not signed with our secret."""


class ExpiredToken(InvalidToken):
    """The token is past its expiration."""


class WrongPurpose(InvalidToken):
    """The token was issued for a different operation."""


class StampMismatch(InvalidToken):
    """The user's credentials changed after the token was issued."""


def issue(user: domain.User, purpose: str, secret: str,
          lifespan: int = DEFAULT_LIFESPAN) -> str:
    """
    Generate a token for ``user`` that can be used for ``purpose``.

    Parameters
    ----------
    user : :class:`.domain.User`
        Must have a ``user_id`` and a ``security_stamp``.
    purpose : str
        One of :attr:`.domain.TokenPurpose.ALL`.
    secret : str
        Used to sign the token.
    lifespan : int
        Number of seconds for which the token is valid. Default is 86400 (one
        day).

    Returns
    -------
    str
        An opaque token.

    """
    if purpose not in domain.TokenPurpose.ALL:
        raise ValueError(f'Unknown token purpose: {purpose}')
    if user.user_id is None or user.security_stamp is None:
        raise ValueError('Cannot issue a token for an unsaved user')
    issued = datetime.now(tz=UTC)
    claims = {
        'user_id': user.user_id,
        'stamp': user.security_stamp,
        'purpose': purpose,
        'issued': issued.isoformat(),
        'expires': (issued + timedelta(seconds=lifespan)).isoformat()
    }
    token: str = jwt.encode(claims, secret, algorithm=ALGORITHM)
    return token


def unpack(token: str, secret: str) -> domain.TokenClaims:
    """
    Decode a token, without checking purpose, expiry, or stamp.

    Raises
    ------
    :class:`MalformedToken`
        If the token cannot be decoded, the signature is bad, or a claim is
        missing or unreadable.

    """
    try:
        claims: Mapping[str, Any] = jwt.decode(token, secret,
                                               algorithms=[ALGORITHM])
    except jwt.exceptions.InvalidTokenError as e:
        raise MalformedToken('Could not decode token') from e
    try:
        return domain.TokenClaims(
            user_id=str(claims['user_id']),
            stamp=str(claims['stamp']),
            purpose=str(claims['purpose']),
            issued=dateutil.parser.parse(claims['issued']),
            expires=dateutil.parser.parse(claims['expires'])
        )
    except (KeyError, TypeError, ValueError, OverflowError) as e:
        raise MalformedToken('Malformed content') from e


def validate(token: str, purpose: str, secret: str) -> domain.TokenClaims:
    """
    Check that a token may be used for ``purpose`` right now.

    Parameters
    ----------
    token : str
        A token generated by :func:`issue`.
    purpose : str
        The operation that the caller is about to perform.
    secret : str
        The secret that was used to sign the token.

    Returns
    -------
    :class:`.domain.TokenClaims`
        The claims of the token. ``stamp`` is the user's current stamp, and
        can be used as the expected stamp for a conditional update.

    Raises
    ------
    :class:`MalformedToken`
    :class:`WrongPurpose`
    :class:`ExpiredToken`
    :class:`StampMismatch`

    """
    claims = unpack(token, secret)
    if claims.purpose != purpose:
        logger.debug('Token for %s presented for %s', claims.purpose, purpose)
        raise WrongPurpose(f'Token was not issued for {purpose}')
    if claims.expired:
        logger.debug('Token expired at %s', claims.expires)
        raise ExpiredToken('Expired token')

    user = users.get_user_by_id(claims.user_id)
    if user is None or user.security_stamp is None:
        raise StampMismatch('No such user')
    if not hmac.compare_digest(user.security_stamp, claims.stamp):
        raise StampMismatch('Security stamp has changed')
    return claims
