"""
Authorization of user requests.

This module provides :func:`authenticated`, a decorator factory used to
protect Flask routes that require an authenticated user. An authorizer
function may be provided to add application-specific checks, e.g. that the
authenticated user owns the requested resource. Its call signature should be
``(session: domain.Session, *args, **kwargs) -> bool``, where ``*args`` and
``**kwargs`` are the parameters passed by Flask to the route function.

.. code-block:: python

   def is_owner(session: domain.Session, user_id: str, **kwargs) -> bool:
       return session.user_id == user_id


   @blueprint.route('/User/<string:user_id>', methods=['GET'])
   @authenticated(authorizer=is_owner)
   def get_user(user_id: str):
       ...

"""

from typing import Optional, Callable, Any
from functools import wraps
import logging

from flask import request
from werkzeug.exceptions import Unauthorized, Forbidden

logger = logging.getLogger(__name__)


def authenticated(authorizer: Optional[Callable] = None) -> Callable:
    """
    Generate a decorator to enforce authentication requirements.

    Parameters
    ----------
    authorizer : function
        Optional. Called with the session and the route parameters; if it
        returns ``False``, a :class:`.Forbidden` exception is raised.

    Returns
    -------
    function

    """
    def protector(func: Callable) -> Callable:
        """Decorator that provides authentication enforcement."""
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            session = getattr(request, 'auth', None)
            if session is None:
                logger.debug('No valid session; aborting')
                raise Unauthorized('Not a valid session')

            if authorizer and not authorizer(session, *args, **kwargs):
                logger.debug('Authorizer returned negative result')
                raise Forbidden('Access denied')

            logger.debug('Request is authorized, proceeding')
            return func(*args, **kwargs)
        return wrapper
    return protector
