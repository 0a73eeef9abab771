"""Provides the JSON API for account management."""

from typing import Any
from http import HTTPStatus as status
import logging

from flask import Blueprint, Response, jsonify, make_response, request

from .. import domain
from ..auth.decorators import authenticated
from ..controllers import account, users
from ..services import util

logger = logging.getLogger(__name__)
blueprint = Blueprint('api', __name__, url_prefix='')


def user_is_owner(session: domain.Session, user_id: str, **kw: Any) -> bool:
    """Determine whether the authenticated user matches the requested user."""
    return bool(session.user_id == user_id)


def _json_body() -> Any:
    """Get the decoded JSON body, or ``None`` if there isn't a valid one."""
    return request.get_json(silent=True)


def _respond(data: Any, code: int, headers: dict) -> Response:
    response: Response = make_response(jsonify(data), code, headers)
    return response


@blueprint.after_request
def apply_response_headers(response: Response) -> Response:
    """Apply response headers to all responses."""
    response.headers['Cache-Control'] = 'no-store'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    return response


@blueprint.route('/Account/Register', methods=['POST'])
def register() -> Response:
    """Create a new account."""
    return _respond(*account.register(_json_body()))


@blueprint.route('/Account/ConfirmEmail', methods=['GET'])
def confirm_email() -> Response:
    """Confirm an e-mail address using the code from the confirmation link."""
    return _respond(*account.confirm_email(request.args))


@blueprint.route('/Account/ForgotPassword', methods=['POST'])
def forgot_password() -> Response:
    """Request a password reset link."""
    return _respond(*account.forgot_password(_json_body()))


@blueprint.route('/Account/ResetPassword', methods=['POST'])
def reset_password() -> Response:
    """Set a new password using the code from the reset link."""
    return _respond(*account.reset_password(_json_body()))


@blueprint.route('/Account/Login', methods=['POST'])
def login() -> Response:
    """Exchange a username (or e-mail) and password for a bearer token."""
    return _respond(*account.login(_json_body()))


@blueprint.route('/User/<string:user_id>', methods=['GET'])
@authenticated(authorizer=user_is_owner)
def view_user(user_id: str) -> Response:
    """Get account details for the authenticated user."""
    return _respond(*users.view_user(user_id, request.auth))


@blueprint.route('/status', methods=['GET'])
def service_status() -> Response:
    """Get if the app is running, and can talk to its database."""
    if not util.is_available():
        return _respond({'status': 'unavailable'},
                        status.SERVICE_UNAVAILABLE, {})
    return _respond({'status': 'ok'}, status.OK, {})
