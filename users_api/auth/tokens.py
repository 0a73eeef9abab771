"""Functions for working with bearer tokens on user requests."""

from datetime import datetime
from typing import Any, Dict

from pytz import UTC
import jwt

from . import exceptions
from .. import domain

ALGORITHM = 'HS256'


def encode(session: domain.Session, secret: str, issuer: str,
           audience: str) -> str:
    """Encode session information as a signed JWT."""
    if session.issued is None or session.expires is None:
        raise ValueError('Session must have an issue and expiry time')
    claims: Dict[str, Any] = {
        'sub': session.user_id,
        'username': session.username,
        'email': session.email,
        'email_confirmed': session.email_confirmed,
        'iat': session.issued,
        'exp': session.expires,
        'iss': issuer,
        'aud': audience,
    }
    token: str = jwt.encode(claims, secret, algorithm=ALGORITHM)
    return token


def decode(token: str, secret: str, issuer: str,
           audience: str) -> domain.Session:
    """
    Decode a bearer token to access session information.

    Issuer, audience, lifetime and signature are all checked, with no
    allowance for clock skew.

    Raises
    ------
    :class:`.exceptions.ExpiredToken`
    :class:`.exceptions.InvalidToken`

    """
    try:
        data: dict = jwt.decode(token, secret, algorithms=[ALGORITHM],
                                issuer=issuer, audience=audience, leeway=0,
                                options={'require': ['exp', 'iss', 'aud',
                                                     'sub']})
    except jwt.exceptions.ExpiredSignatureError as e:
        raise exceptions.ExpiredToken('Token has expired') from e
    except jwt.exceptions.InvalidTokenError as e:
        raise exceptions.InvalidToken('Not a valid token') from e

    try:
        return domain.Session(
            user_id=str(data['sub']),
            username=data['username'],
            email=data['email'],
            email_confirmed=bool(data.get('email_confirmed', False)),
            issued=datetime.fromtimestamp(data['iat'], tz=UTC)
            if 'iat' in data else None,
            expires=datetime.fromtimestamp(data['exp'], tz=UTC)
        )
    except (KeyError, TypeError, ValueError) as e:
        raise exceptions.InvalidToken('Malformed token') from e
