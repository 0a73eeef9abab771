"""
Account lifecycle: registration, confirmation, and password recovery.

A new account starts out unconfirmed. The user proves control of their e-mail
address by following a link that carries an ``EmailConfirmation`` token, which
moves the account to the confirmed state. A confirmed user who has forgotten
their password can request a ``PasswordReset`` token, and use it to set a new
password; this does not change the confirmation state.

Both transitions rotate the user's security stamp, which invalidates the token
that was used and every other token outstanding for that user (see
:mod:`users_api.tokens`). The stamp that was embedded in the token is passed
to the store as the expected stamp, so a token can be consumed at most once
even if two requests race.

Store and token errors are translated here into the errors defined in
:mod:`users_api.exceptions`; nothing from the layers below escapes to the
caller. Notification e-mail is best-effort: once the state change has been
committed, a delivery failure is logged and reported back as a flag rather
than raised.
"""

from typing import NamedTuple, Tuple
from urllib.parse import urlencode
import logging

from flask import current_app
from markupsafe import escape

from . import domain, exceptions, tokens
from .auth import issue_token
from .domain import TokenPurpose
from .services import mail, users
from .services import exceptions as store

logger = logging.getLogger(__name__)


class RegistrationResult(NamedTuple):
    """Outcome of a successful registration."""

    user: domain.User
    email_sent: bool


class ForgotPasswordResult(NamedTuple):
    """Outcome of a successful password-reset request."""

    email_sent: bool


def register(registration: domain.UserRegistration) -> RegistrationResult:
    """
    Create a new, unconfirmed account and send a confirmation link.

    Parameters
    ----------
    registration : :class:`.domain.UserRegistration`
        Input that has already been checked for shape (see
        :class:`.controllers.forms.RegistrationForm`).

    Returns
    -------
    :class:`RegistrationResult`

    Raises
    ------
    :class:`.exceptions.DuplicateUsername`
    :class:`.exceptions.DuplicateEmail`
    :class:`.exceptions.WeakPassword`

    """
    try:
        user = users.create(registration.to_user(), registration.password)
    except store.DuplicateUsername as e:
        raise exceptions.DuplicateUsername() from e
    except store.DuplicateEmail as e:
        raise exceptions.DuplicateEmail() from e
    except store.WeakPassword as e:
        raise _weak_password(e) from e
    logger.info('Registered user %s', user.user_id)

    code = _issue(user, TokenPurpose.EMAIL_CONFIRMATION)
    link = _link('EMAIL_CONFIRMATION_URL', userId=user.user_id, code=code)
    sent = _notify(
        user.email, 'Confirm your email',
        'Please confirm your account by clicking this link:'
        f" <a href='{escape(link)}'>link</a>"
    )
    return RegistrationResult(user=user, email_sent=sent)


def confirm_email(user_id: str, code: str) -> domain.User:
    """
    Confirm a user's e-mail address using an ``EmailConfirmation`` token.

    Confirming an address that is already confirmed, with a token that is
    still valid, succeeds and has no further effect.

    Raises
    ------
    :class:`.exceptions.NotFound`
    :class:`.exceptions.InvalidToken`

    """
    user = users.get_user_by_id(user_id)
    if user is None:
        logger.debug('Confirmation requested for unknown user %s', user_id)
        raise exceptions.NotFound()
    claims = _validate(user, code, TokenPurpose.EMAIL_CONFIRMATION)
    try:
        user = users.confirm_email(user.user_id, expected_stamp=claims.stamp)
    except store.StampMismatch as e:
        logger.info('Confirmation for user %s lost a race', user.user_id)
        raise exceptions.InvalidToken() from e
    except store.NoSuchUser as e:
        raise exceptions.NotFound() from e
    logger.info('Confirmed e-mail address for user %s', user.user_id)
    return user


def forgot_password(email: str) -> ForgotPasswordResult:
    """
    Send a password-reset link to a confirmed user.

    Raises
    ------
    :class:`.exceptions.NotEligible`
        If there is no account with that address, or the account has not been
        confirmed. The two cases are deliberately indistinguishable.

    """
    user = users.get_user_by_email(email)
    if user is None or not user.email_confirmed:
        logger.debug('Password reset requested for ineligible address')
        raise exceptions.NotEligible()

    code = _issue(user, TokenPurpose.PASSWORD_RESET)
    link = _link('RESET_PASSWORD_URL', email=user.email, code=code)
    sent = _notify(
        user.email, 'Reset Password',
        'Please reset your password by clicking here:'
        f" <a href='{escape(link)}'>link</a>"
    )
    logger.info('Issued password reset for user %s', user.user_id)
    return ForgotPasswordResult(email_sent=sent)


def reset_password(email: str, code: str, password: str) -> domain.User:
    """
    Set a new password using a ``PasswordReset`` token.

    Raises
    ------
    :class:`.exceptions.NotFound`
    :class:`.exceptions.InvalidToken`
    :class:`.exceptions.WeakPassword`

    """
    user = users.get_user_by_email(email)
    if user is None:
        logger.debug('Password reset attempted for unknown address')
        raise exceptions.NotFound()
    claims = _validate(user, code, TokenPurpose.PASSWORD_RESET)
    try:
        user = users.update_password(user.user_id, password,
                                     expected_stamp=claims.stamp)
    except store.WeakPassword as e:
        raise _weak_password(e) from e
    except store.StampMismatch as e:
        logger.info('Password reset for user %s lost a race', user.user_id)
        raise exceptions.InvalidToken() from e
    except store.NoSuchUser as e:
        raise exceptions.NotFound() from e
    logger.info('Reset password for user %s', user.user_id)
    return user


def login(username_or_email: str,
          password: str) -> Tuple[domain.User, domain.Session, str]:
    """
    Check credentials, and issue a bearer token.

    Raises
    ------
    :class:`.exceptions.InvalidCredentials`

    """
    try:
        user = users.authenticate(username_or_email, password)
    except store.AuthenticationFailed as e:
        raise exceptions.InvalidCredentials() from e
    if current_app.config.get('AUTH_REQUIRE_CONFIRMED_EMAIL') \
            and not user.email_confirmed:
        logger.debug('User %s is not confirmed', user.user_id)
        raise exceptions.InvalidCredentials(
            'Your account has not yet been verified.'
        )
    session, token = issue_token(user)
    return user, session, token


def _issue(user: domain.User, purpose: str) -> str:
    config = current_app.config
    return tokens.issue(user, purpose, config['TOKEN_SECRET'],
                        int(config.get('TOKEN_LIFESPAN',
                                       tokens.DEFAULT_LIFESPAN)))


def _validate(user: domain.User, code: str,
              purpose: str) -> domain.TokenClaims:
    """Validate ``code`` for ``purpose``, and check that it belongs to user."""
    try:
        claims = tokens.validate(code, purpose,
                                 current_app.config['TOKEN_SECRET'])
    except tokens.InvalidToken as e:
        logger.info('Rejected %s token for user %s: %s (%s)', purpose,
                    user.user_id, type(e).__name__, e)
        raise exceptions.InvalidToken() from e
    if claims.user_id != user.user_id:
        logger.info('Rejected %s token for user %s: issued to another user',
                    purpose, user.user_id)
        raise exceptions.InvalidToken()
    return claims


def _link(config_key: str, **params: str) -> str:
    base = current_app.config[config_key]
    separator = '&' if '?' in base else '?'
    return f'{base}{separator}{urlencode(params)}'


def _notify(to: str, subject: str, html_body: str) -> bool:
    try:
        mail.send(to, subject, html_body)
    except mail.DeliveryFailed as e:
        logger.error('%s: %s', exceptions.DeliveryFailure.__name__, e)
        return False
    return True


def _weak_password(e: store.WeakPassword) -> exceptions.WeakPassword:
    problems = [
        exceptions.Problem('password', 'WeakPassword', message)
        for message in e.problems
    ]
    return exceptions.WeakPassword(problems=problems or None)
