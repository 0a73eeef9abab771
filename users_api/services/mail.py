"""Provides a unified API for sending account e-mail."""

from typing import Optional
from email.message import EmailMessage
import logging
import smtplib

from flask import Flask, current_app
from retry import retry

logger = logging.getLogger(__name__)


class DeliveryFailed(RuntimeError):
    """A message could not be handed off to the SMTP service."""


class MailSession(object):
    """A connection profile for an SMTP service."""

    def __init__(self, host: str = 'localhost', port: int = 25,
                 sender: str = '', username: Optional[str] = None,
                 password: Optional[str] = None, use_tls: bool = False,
                 suppress: bool = False, timeout: float = 3) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._suppress = suppress
        self._timeout = timeout

    def _new_connection(self) -> smtplib.SMTP:
        conn = smtplib.SMTP(host=self._host, port=self._port,
                            timeout=self._timeout)
        if self._use_tls:
            conn.starttls()
        if self._username:
            conn.login(self._username, self._password or '')
        return conn

    def _message(self, to: str, subject: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message['From'] = self._sender
        message['To'] = to
        message['Subject'] = subject
        message.set_content(html_body, subtype='html')
        return message

    @retry((smtplib.SMTPException, OSError), tries=3, delay=0.5, backoff=2)
    def _deliver(self, message: EmailMessage) -> None:
        with self._new_connection() as conn:
            conn.send_message(message)

    def send(self, to: str, subject: str, html_body: str) -> None:
        """
        Send an HTML e-mail message.

        Parameters
        ----------
        to : str
            Recipient address.
        subject : str
        html_body : str

        Raises
        ------
        :class:`DeliveryFailed`
            If the message could not be delivered after retrying.

        """
        message = self._message(to, subject, html_body)
        if self._suppress:
            logger.info('Mail sending is suppressed; not sending %r to %s',
                        subject, to)
            return
        try:
            self._deliver(message)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryFailed(f'Could not send mail to {to}: {e}') from e
        logger.debug('Sent %r to %s', subject, to)

    @classmethod
    def init_app(cls, app: Flask) -> None:
        """Set default configuration parameters for an application instance."""
        app.config.setdefault('MAIL_SERVER', 'localhost')
        app.config.setdefault('MAIL_PORT', 25)
        app.config.setdefault('MAIL_USERNAME', None)
        app.config.setdefault('MAIL_PASSWORD', None)
        app.config.setdefault('MAIL_USE_TLS', False)
        app.config.setdefault('MAIL_DEFAULT_SENDER', 'noreply@localhost')
        app.config.setdefault('MAIL_SUPPRESS_SEND', False)
        app.config.setdefault('MAIL_TIMEOUT', 3)

    @classmethod
    def current_session(cls) -> 'MailSession':
        """Get a mail session configured for the current application."""
        config = current_app.config
        return cls(
            host=config['MAIL_SERVER'],
            port=int(config['MAIL_PORT']),
            sender=config['MAIL_DEFAULT_SENDER'],
            username=config.get('MAIL_USERNAME'),
            password=config.get('MAIL_PASSWORD'),
            use_tls=bool(int(config.get('MAIL_USE_TLS', 0))),
            suppress=bool(int(config.get('MAIL_SUPPRESS_SEND', 0))),
            timeout=float(config.get('MAIL_TIMEOUT', 3))
        )


def send(to: str, subject: str, html_body: str) -> None:
    """Send an e-mail using the current application's mail session."""
    MailSession.current_session().send(to, subject, html_body)
