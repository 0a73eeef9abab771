"""
Credential store: persistence of user accounts and password hashes.

Every function that changes credentials or confirmation state also rotates
the user's security stamp in the same UPDATE statement. Callers that hold a
token may pass the stamp embedded in that token as ``expected_stamp``; the
update is then applied only if the stored stamp still matches, so that two
concurrent operations consuming tokens for the same user cannot both
succeed.
"""

from typing import Any, Dict, List, Optional
import logging

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, OperationalError

from .. import domain
from . import util
from .models import DBUser
from .exceptions import NoSuchUser, AuthenticationFailed, \
    PasswordAuthenticationFailed, StampMismatch, DuplicateUsername, \
    DuplicateEmail, WeakPassword

logger = logging.getLogger(__name__)

MAX_USER_ID = 2 ** 63 - 1
"""Largest ID that fits in a 64-bit signed INTEGER column."""


def username_exists(username: str) -> bool:
    """Determine whether a user with a particular username already exists."""
    with util.transaction() as session:
        data = (
            session.query(DBUser.user_id)
            .filter(DBUser.normalized_username == util.normalize(username))
            .first()
        )
        return data is not None


def email_exists(email: str) -> bool:
    """Determine whether a user with a particular address already exists."""
    with util.transaction() as session:
        data = (
            session.query(DBUser.user_id)
            .filter(DBUser.normalized_email == util.normalize(email))
            .first()
        )
        return data is not None


def password_problems(password: str) -> List[str]:
    """
    Check a password against the configured password policy.

    Parameters
    ----------
    password : str

    Returns
    -------
    list
        Human-readable descriptions of each rule that the password breaks.
        Empty if the password is acceptable.

    """
    config = current_app.config
    problems = []
    min_length = int(config.get('PASSWORD_MIN_LENGTH', 6))
    if len(password) < min_length:
        problems.append(f'Passwords must be at least {min_length}'
                        ' characters.')
    if int(config.get('PASSWORD_REQUIRE_NON_ALPHANUMERIC', 1)) \
            and all(c.isalnum() for c in password):
        problems.append('Passwords must have at least one non alphanumeric'
                        ' character.')
    if int(config.get('PASSWORD_REQUIRE_DIGIT', 1)) \
            and not any(c.isdigit() for c in password):
        problems.append("Passwords must have at least one digit ('0'-'9').")
    if int(config.get('PASSWORD_REQUIRE_LOWERCASE', 1)) \
            and not any(c.islower() for c in password):
        problems.append("Passwords must have at least one lowercase"
                        " ('a'-'z').")
    if int(config.get('PASSWORD_REQUIRE_UPPERCASE', 1)) \
            and not any(c.isupper() for c in password):
        problems.append("Passwords must have at least one uppercase"
                        " ('A'-'Z').")
    unique = int(config.get('PASSWORD_REQUIRED_UNIQUE_CHARS', 1))
    if len(set(password)) < unique:
        problems.append(f'Passwords must use at least {unique} different'
                        ' characters.')
    return problems


def create(user: domain.User, password: str) -> domain.User:
    """
    Create a new, unconfirmed user.

    Parameters
    ----------
    user : :class:`.domain.User`
        User data for the new account.
    password : str
        Password for the account. Only a salted hash is stored.

    Returns
    -------
    :class:`.domain.User`
        Data about the created user, including its ID and security stamp.

    Raises
    ------
    :class:`.DuplicateUsername`
    :class:`.DuplicateEmail`
    :class:`.WeakPassword`

    """
    if username_exists(user.username):
        raise DuplicateUsername(f'Username {user.username} is already taken.')
    if email_exists(user.email):
        raise DuplicateEmail(f'Email {user.email} is already taken.')
    problems = password_problems(password)
    if problems:
        raise WeakPassword(problems)

    db_user = DBUser(
        username=user.username,
        normalized_username=util.normalize(user.username),
        email=user.email,
        normalized_email=util.normalize(user.email),
        name=user.name,
        surname=user.surname,
        password_hash=util.hash_password(password),
        email_confirmed=False,
        security_stamp=util.new_security_stamp(),
        created=util.now()
    )
    try:
        with util.transaction() as session:
            session.add(db_user)
    except IntegrityError as e:
        # Lost a race with a concurrent registration.
        logger.debug('Integrity error on create: %s', e)
        if username_exists(user.username):
            raise DuplicateUsername(
                f'Username {user.username} is already taken.'
            ) from e
        raise DuplicateEmail(f'Email {user.email} is already taken.') from e
    logger.debug('Created user %s', db_user.user_id)
    return _to_domain(db_user)


def get_user_by_id(user_id: str) -> Optional[domain.User]:
    """Load user data from the database, or ``None`` if there is no match."""
    key = _key(user_id)
    if key is None:
        return None
    with util.transaction() as session:
        try:
            db_user = session.get(DBUser, key)
        except OperationalError as e:
            raise IOError(f'Could not query database: {e}') from e
        if db_user is None:
            return None
        return _to_domain(db_user)


def get_user_by_email(email: str) -> Optional[domain.User]:
    """Load user data by (case-insensitive) e-mail address."""
    with util.transaction() as session:
        db_user = (
            session.query(DBUser)
            .filter(DBUser.normalized_email == util.normalize(email))
            .first()
        )
        if db_user is None:
            return None
        return _to_domain(db_user)


def authenticate(username_or_email: str, password: str) -> domain.User:
    """
    Validate username (or e-mail) and password.

    Raises
    ------
    :class:`.AuthenticationFailed`
        Raised if there is no such user, or the password is incorrect.

    """
    key = util.normalize(username_or_email)
    with util.transaction() as session:
        db_user = (
            session.query(DBUser)
            .filter(or_(DBUser.normalized_username == key,
                        DBUser.normalized_email == key))
            .first()
        )
        if db_user is None:
            logger.debug('No such user: %s', username_or_email)
            raise AuthenticationFailed('Invalid username or password')
        try:
            util.check_password(password, db_user.password_hash)
        except PasswordAuthenticationFailed as e:
            logger.debug('Password check failed for %s', db_user.user_id)
            raise AuthenticationFailed('Invalid username or password') from e
        return _to_domain(db_user)


def update_password(user_id: str, password: str,
                    expected_stamp: Optional[str] = None) -> domain.User:
    """
    Replace a user's password hash, and rotate the security stamp.

    Parameters
    ----------
    user_id : str
    password : str
        The new password (plaintext).
    expected_stamp : str or None
        If given, the update is applied only if this is still the user's
        current security stamp.

    Returns
    -------
    :class:`.domain.User`
        The updated user.

    Raises
    ------
    :class:`.WeakPassword`
    :class:`.NoSuchUser`
    :class:`.StampMismatch`

    """
    problems = password_problems(password)
    if problems:
        raise WeakPassword(problems)
    return _rotate(user_id, {'password_hash': util.hash_password(password)},
                   expected_stamp)


def confirm_email(user_id: str,
                  expected_stamp: Optional[str] = None) -> domain.User:
    """
    Mark a user's e-mail address as confirmed, and rotate the stamp.

    Raises
    ------
    :class:`.NoSuchUser`
    :class:`.StampMismatch`

    """
    return _rotate(user_id, {'email_confirmed': True}, expected_stamp)


def _rotate(user_id: str, values: Dict[str, Any],
            expected_stamp: Optional[str]) -> domain.User:
    """Apply ``values`` and a new stamp in a single conditional UPDATE."""
    key = _key(user_id)
    if key is None:
        raise NoSuchUser('User does not exist')
    values = dict(values, security_stamp=util.new_security_stamp())
    with util.transaction() as session:
        query = session.query(DBUser).filter(DBUser.user_id == key)
        if expected_stamp is not None:
            query = query.filter(DBUser.security_stamp == expected_stamp)
        updated = query.update(values, synchronize_session=False)
        session.commit()

    if updated == 0:
        if get_user_by_id(user_id) is None:
            raise NoSuchUser('User does not exist')
        logger.debug('Security stamp for user %s has changed', user_id)
        raise StampMismatch('Security stamp has changed')
    user = get_user_by_id(user_id)
    if user is None:    # Should not happen; users are never deleted.
        raise NoSuchUser('User does not exist')
    return user


def _key(user_id: str) -> Optional[int]:
    """Get the primary key for ``user_id``, or ``None`` if it cannot exist."""
    try:
        key = int(user_id)
    except (TypeError, ValueError):
        return None
    if key < 1 or key > MAX_USER_ID:
        return None
    return key


def _to_domain(db_user: DBUser) -> domain.User:
    return domain.User(
        user_id=str(db_user.user_id),
        username=db_user.username,
        email=db_user.email,
        name=db_user.name,
        surname=db_user.surname,
        email_confirmed=bool(db_user.email_confirmed),
        security_stamp=db_user.security_stamp,
        created=db_user.created
    )
