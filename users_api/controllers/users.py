"""Controllers for viewing user accounts."""

from typing import Any, Dict, Tuple
from http import HTTPStatus as status
import logging

from werkzeug.exceptions import NotFound

from .. import domain
from ..services import users

logger = logging.getLogger(__name__)

ResponseData = Tuple[Any, int, Dict[str, str]]


def view_user(user_id: str, session: domain.Session) -> ResponseData:
    """Handle requests to view a user's account details."""
    logger.debug('User %s requested account %s', session.user_id, user_id)
    user = users.get_user_by_id(user_id)
    if user is None:
        raise NotFound('No such user')
    data = domain.to_dict(user)
    data.pop('security_stamp')
    return data, status.OK, {}
