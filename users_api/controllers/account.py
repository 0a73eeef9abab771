"""
Controllers for account registration and recovery.

Each controller takes request data that has already been pulled off the
request (a decoded JSON body or query parameters), and returns a tuple of
response data, status code, and headers. Request data is validated with the
forms in :mod:`.forms` before anything is written to the store.

Failures are rendered as a list of problems:

.. code-block:: json

   {"errors": [{"field": "email", "kind": "DuplicateEmail",
                "message": "An account with that email already exists."}]}

"""

from typing import Any, Dict, List, Optional, Tuple
from http import HTTPStatus as status
import logging

from werkzeug.datastructures import MultiDict

from .. import exceptions, lifecycle
from ..exceptions import Problem
from . import forms

logger = logging.getLogger(__name__)

ResponseData = Tuple[Any, int, Dict[str, str]]

PASSWORD_RESET_SENT = 'Please check your email to reset your password.'
PASSWORD_RESET_DONE = 'Your password has been reset.'


def register(payload: Optional[Any]) -> ResponseData:
    """
    Handle a request to register a new account.

    Parameters
    ----------
    payload : dict
        Should include ``name``, ``surname``, ``username``, ``email`` and
        ``password``.

    Returns
    -------
    dict
        Response data.
    int
        Status code. This should be 201 (Created) if all goes well.
    dict
        Headers to add to the response. Includes ``Location`` on success.

    """
    form = forms.RegistrationForm(forms.formdata(payload))
    if not form.validate():
        logger.debug('Registration data not valid')
        return _errors(forms.problems(form))

    try:
        result = lifecycle.register(form.to_domain())
    except exceptions.AccountError as e:
        logger.debug('Registration failed: %s', e.kind)
        return _errors(e.problems)

    data: Dict[str, Any] = {'user_id': result.user.user_id}
    if not result.email_sent:
        data['warnings'] = _render(exceptions.DeliveryFailure().problems)
    headers = {'Location': f'User/{result.user.user_id}'}
    return data, status.CREATED, headers


def confirm_email(params: MultiDict) -> ResponseData:
    """
    Handle a click on an e-mail confirmation link.

    Parameters
    ----------
    params : :class:`MultiDict`
        Query parameters; should include ``userId`` and ``code``.

    """
    form = forms.ConfirmEmailForm(params)
    if not form.validate():
        return _errors(forms.problems(form))
    try:
        lifecycle.confirm_email(str(form.userId.data), form.code.data)
    except (exceptions.NotFound, exceptions.InvalidToken):
        # Unknown users look exactly like bad codes.
        return _errors(exceptions.InvalidToken().problems)
    return True, status.OK, {}


def forgot_password(payload: Optional[Any]) -> ResponseData:
    """Handle a request for a password reset link."""
    form = forms.ForgotPasswordForm(forms.formdata(payload))
    if not form.validate():
        return _errors(forms.problems(form))
    try:
        result = lifecycle.forgot_password(form.email.data.strip())
    except exceptions.NotEligible as e:
        return _errors(e.problems)

    data: Dict[str, Any] = {'message': PASSWORD_RESET_SENT}
    if not result.email_sent:
        data['warnings'] = _render(exceptions.DeliveryFailure().problems)
    return data, status.OK, {}


def reset_password(payload: Optional[Any]) -> ResponseData:
    """Handle a request to set a new password using a reset code."""
    form = forms.ResetPasswordForm(forms.formdata(payload))
    if not form.validate():
        return _errors(forms.problems(form))
    try:
        lifecycle.reset_password(form.email.data.strip(), form.code.data,
                                 form.password.data)
    except (exceptions.NotFound, exceptions.InvalidToken):
        # Unknown addresses look exactly like bad codes.
        return _errors(exceptions.InvalidToken().problems)
    except exceptions.AccountError as e:
        return _errors(e.problems)
    return {'message': PASSWORD_RESET_DONE}, status.OK, {}


def login(payload: Optional[Any]) -> ResponseData:
    """Handle a request for a bearer token."""
    form = forms.LoginForm(forms.formdata(payload))
    if not form.validate():
        return _errors(forms.problems(form))
    try:
        _, session, token = lifecycle.login(form.username.data.strip(),
                                            form.password.data)
    except exceptions.InvalidCredentials as e:
        logger.debug('Login failed')
        return _errors(e.problems)
    assert session.expires is not None
    data = {
        'access_token': token,
        'token_type': 'bearer',
        'expires': session.expires.isoformat()
    }
    return data, status.OK, {}


def _render(problems: List[Problem]) -> List[Dict[str, Any]]:
    return [problem._asdict() for problem in problems]


def _errors(problems: List[Problem]) -> ResponseData:
    return {'errors': _render(problems)}, status.BAD_REQUEST, {}
