"""Web Server Gateway Interface entry-point."""

import os
from typing import Any, Callable, Optional

from flask import Flask

from users_api.factory import create_web_app

__flask_app__: Optional[Flask] = None


def application(environ: dict, start_response: Callable) -> Any:
    """WSGI application."""
    global __flask_app__
    for key, value in environ.items():
        # The server may pass a container ID as SERVER_NAME, which is useless
        # for building URLs; that one stays in config.py.
        if key == 'SERVER_NAME' or not isinstance(value, str):
            continue
        os.environ[key] = value
    if __flask_app__ is None:
        __flask_app__ = create_web_app()
    return __flask_app__(environ, start_response)
