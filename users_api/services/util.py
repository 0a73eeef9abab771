"""Helpers and Flask application integration for the user store."""

from typing import Generator
from datetime import datetime
from contextlib import contextmanager
from base64 import b64encode, b64decode
import binascii
import hashlib
import hmac
import logging
import secrets

from flask import Flask
from sqlalchemy import text
from sqlalchemy.orm.session import Session
from pytz import UTC

from .models import db
from .exceptions import PasswordAuthenticationFailed

logger = logging.getLogger(__name__)

SALT_BYTES = 16
HASH_ITERATIONS = 260000


def now() -> datetime:
    """Get the current time, in UTC."""
    return datetime.now(tz=UTC)


@contextmanager
def transaction() -> Generator[Session, None, None]:
    """Context manager for database transaction."""
    try:
        yield db.session
        # The caller may have explicitly committed already, in order to
        # implement exception handling logic. We only want to commit here if
        # there is anything remaining that is not flushed.
        if db.session.new or db.session.dirty or db.session.deleted:
            db.session.commit()
    except Exception as e:
        logger.error('Commit failed, rolling back: %s', str(e))
        db.session.rollback()
        raise


def init_app(app: Flask) -> None:
    """Set configuration defaults and attach session to the application."""
    app.config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)
    db.init_app(app)


def current_session() -> Session:
    """Get/create database session for this context."""
    return db.session


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()


def normalize(value: str) -> str:
    """Normalize a username or e-mail address for case-insensitive lookup."""
    return value.strip().upper()


def new_security_stamp() -> str:
    """Generate a fresh, unguessable security stamp."""
    return secrets.token_hex(16)


def hash_password(password: str) -> str:
    """Generate a salted hash of a password."""
    salt = secrets.token_bytes(SALT_BYTES)
    hashed = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt,
                                 HASH_ITERATIONS)
    return b64encode(salt + hashed).decode('ascii')


def check_password(password: str, encrypted: str) -> bool:
    """
    Check a password against a hash produced by :func:`hash_password`.

    Raises
    ------
    :class:`.PasswordAuthenticationFailed`
        If the password does not match, or the stored hash is unreadable.

    """
    try:
        decoded = b64decode(encrypted.encode('ascii'), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise PasswordAuthenticationFailed('Unreadable password hash') from e
    salt, enc_hashed = decoded[:SALT_BYTES], decoded[SALT_BYTES:]
    try:
        encoded = password.encode('utf-8')
    except UnicodeEncodeError as e:
        raise PasswordAuthenticationFailed('Unreadable password') from e
    pass_hashed = hashlib.pbkdf2_hmac('sha256', encoded, salt,
                                      HASH_ITERATIONS)
    if not hmac.compare_digest(pass_hashed, enc_hashed):
        raise PasswordAuthenticationFailed('Incorrect password')
    return True


def is_available() -> bool:
    """Check our connection to the database."""
    try:
        db.session.execute(text('SELECT 1'))
    except Exception as e:
        logger.error('Encountered an error talking to database: %s', e)
        return False
    return True
