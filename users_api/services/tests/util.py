"""Testing helpers."""

from contextlib import contextmanager
from typing import Any, Generator

from flask import Flask
from sqlalchemy.orm.session import Session

from .. import util
from ..mail import MailSession

TEST_CONFIG = {
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'TOKEN_SECRET': 'footokensecret',
    'TOKEN_LIFESPAN': 86400,
    'JWT_SECRET': 'foojwtsecret',
    'JWT_ISSUER': 'users-api',
    'JWT_AUDIENCE': 'users-api',
    'SESSION_DURATION': 3600,
    'EMAIL_CONFIRMATION_URL': 'https://example.org/Account/ConfirmEmail',
    'RESET_PASSWORD_URL': 'https://example.org/Account/ResetPassword',
    'MAIL_SUPPRESS_SEND': 1,
}


@contextmanager
def temporary_db(database_url: str = 'sqlite:///:memory:',
                 create: bool = True, drop: bool = True,
                 **config: Any) -> Generator[Session, None, None]:
    """Provide an in-memory sqlite database for testing purposes."""
    app = Flask('foo')
    app.config.update(TEST_CONFIG)
    app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    app.config.update(config)
    util.init_app(app)
    MailSession.init_app(app)
    with app.app_context():
        if create:
            util.create_all()
        try:
            with util.transaction():
                yield util.current_session()
        finally:
            if drop:
                util.drop_all()
