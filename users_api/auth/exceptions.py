"""Exceptions raised while handling bearer tokens."""


class InvalidToken(ValueError):
    """Token in request is not valid."""


class ExpiredToken(InvalidToken):
    """Token in request has expired."""


class ConfigurationError(RuntimeError):
    """The application is not configured correctly."""
