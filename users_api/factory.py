"""Application factory for the users-api app."""

from typing import Any, Mapping, Optional
import logging

from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException

from .auth import Auth
from .routes import api
from .services import util
from .services.mail import MailSession


def jsonify_exception(error: HTTPException) -> Response:
    """Render an HTTP exception as JSON, without internal details."""
    response: Response = jsonify(reason=error.description)
    response.status_code = error.code or 500
    return response


def create_web_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Initialize and configure the users-api application.

    Parameters
    ----------
    config : dict
        Optional. Overrides for values in :mod:`users_api.config`.

    """
    app = Flask('users_api')
    app.config.from_pyfile('config.py')
    if config is not None:
        app.config.update(config)

    logging.getLogger('users_api').setLevel(app.config['LOGLEVEL'])

    util.init_app(app)
    MailSession.init_app(app)
    Auth(app)   # Attaches the authenticated session to each request.

    app.register_blueprint(api.blueprint)
    app.register_error_handler(HTTPException, jsonify_exception)

    if app.config['CREATE_DB']:
        with app.app_context():
            util.create_all()

    return app
