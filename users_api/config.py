"""Flask configuration."""
import secrets
import os

#################### General config for app ####################
BASE_SERVER = os.environ.get('BASE_SERVER', 'localhost:8000')
"""Sets base server for use when domain name is needed.

The default configs for `EMAIL_CONFIRMATION_URL` and `RESET_PASSWORD_URL`
will use this. They can be independently configured if needed.
"""

SECRET_KEY = os.environ.get('SECRET_KEY', secrets.token_urlsafe(16))
"""Sets the `Flask` secret key. Not directly used by users-api."""

LOGLEVEL = int(os.environ.get('LOGLEVEL', 20))
"""Log level for the `users_api` logger."""

VERSION = '0.1.0'
"""The application version."""


#################### Account tokens ####################
TOKEN_SECRET = os.environ.get('TOKEN_SECRET', secrets.token_urlsafe(32))
"""Signs e-mail confirmation and password reset codes.

If not set, a random secret is generated at startup; codes that were mailed
before a restart will then be rejected. Multiple instances behind a load
balancer must share this value.
"""

TOKEN_LIFESPAN = int(os.environ.get('TOKEN_LIFESPAN', '86400'))
"""Number of seconds for which a confirmation or reset code is valid."""

EMAIL_CONFIRMATION_URL = os.environ.get(
    'EMAIL_CONFIRMATION_URL',
    f'https://{BASE_SERVER}/Account/ConfirmEmail'
)
"""Target of the link in the confirmation e-mail.

``userId`` and ``code`` are added as query parameters.
"""

RESET_PASSWORD_URL = os.environ.get(
    'RESET_PASSWORD_URL',
    f'https://{BASE_SERVER}/Account/ResetPassword'
)
"""Target of the link in the password reset e-mail.

``email`` and ``code`` are added as query parameters. This will usually be a
page in a front-end application that collects the new password and POSTs it
to ``/Account/ResetPassword``.
"""


#################### Bearer tokens ####################
JWT_SECRET = os.environ.get('JWT_SECRET', secrets.token_urlsafe(32))
"""Signs bearer tokens issued at login."""

JWT_ISSUER = os.environ.get('JWT_ISSUER', 'users-api')
JWT_AUDIENCE = os.environ.get('JWT_AUDIENCE', 'users-api')

SESSION_DURATION = int(os.environ.get('SESSION_DURATION', '3600'))
"""Number of seconds for which a bearer token is valid."""

AUTH_REQUIRE_CONFIRMED_EMAIL = bool(
    int(os.environ.get('AUTH_REQUIRE_CONFIRMED_EMAIL', '0'))
)
"""If set, users must confirm their e-mail address before logging in."""


#################### Password policy ####################
PASSWORD_MIN_LENGTH = int(os.environ.get('PASSWORD_MIN_LENGTH', '6'))
PASSWORD_REQUIRE_DIGIT = int(os.environ.get('PASSWORD_REQUIRE_DIGIT', '1'))
PASSWORD_REQUIRE_LOWERCASE = int(
    os.environ.get('PASSWORD_REQUIRE_LOWERCASE', '1')
)
PASSWORD_REQUIRE_UPPERCASE = int(
    os.environ.get('PASSWORD_REQUIRE_UPPERCASE', '1')
)
PASSWORD_REQUIRE_NON_ALPHANUMERIC = int(
    os.environ.get('PASSWORD_REQUIRE_NON_ALPHANUMERIC', '1')
)
PASSWORD_REQUIRED_UNIQUE_CHARS = int(
    os.environ.get('PASSWORD_REQUIRED_UNIQUE_CHARS', '1')
)


#################### Database ####################
SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI',
                                         'sqlite:///users.db')
"""Any SQLAlchemy database URI."""

SQLALCHEMY_TRACK_MODIFICATIONS = False

CREATE_DB = bool(int(os.environ.get('CREATE_DB', '0')))
"""Create tables at startup, if they do not already exist."""


#################### Mail ####################
MAIL_SERVER = os.environ.get('MAIL_SERVER', 'localhost')
MAIL_PORT = int(os.environ.get('MAIL_PORT', '25'))
MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
MAIL_USE_TLS = int(os.environ.get('MAIL_USE_TLS', '0'))
MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER',
                                     f'noreply@{BASE_SERVER.split(":")[0]}')

MAIL_TIMEOUT = float(os.environ.get('MAIL_TIMEOUT', '3'))
"""Seconds to wait for the SMTP server on each attempt.

Mail is sent while the request is handled, and delivery is tried three times,
so keep this short.
"""

MAIL_SUPPRESS_SEND = int(os.environ.get('MAIL_SUPPRESS_SEND', '0'))
"""Log outgoing mail instead of sending it. Useful for testing, dev."""
