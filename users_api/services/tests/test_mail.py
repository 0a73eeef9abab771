"""Tests for :mod:`users_api.services.mail`."""

from unittest import TestCase, mock
import smtplib

from flask import Flask

from .. import mail


class TestSend(TestCase):
    """Tests for :meth:`.mail.MailSession.send`."""

    def setUp(self):
        self.session = mail.MailSession(host='mail.example.org', port=587,
                                        sender='noreply@example.org')

    @mock.patch(f'{mail.__name__}.smtplib.SMTP')
    def test_send(self, mock_SMTP):
        """An HTML message is handed to the SMTP server."""
        conn = mock_SMTP.return_value.__enter__.return_value
        self.session.send('foo@bar.com', 'Hello', '<p>Hi</p>')

        mock_SMTP.assert_called_once_with(host='mail.example.org', port=587,
                                          timeout=3)
        self.assertEqual(conn.send_message.call_count, 1)
        message = conn.send_message.call_args[0][0]
        self.assertEqual(message['To'], 'foo@bar.com')
        self.assertEqual(message['From'], 'noreply@example.org')
        self.assertEqual(message['Subject'], 'Hello')
        self.assertEqual(message.get_content_type(), 'text/html')

    @mock.patch(f'{mail.__name__}.smtplib.SMTP')
    def test_login_and_tls(self, mock_SMTP):
        """Credentials and STARTTLS are used when configured."""
        session = mail.MailSession(host='mail.example.org', port=587,
                                   sender='noreply@example.org',
                                   username='foo', password='bar',
                                   use_tls=True)
        session.send('foo@bar.com', 'Hello', '<p>Hi</p>')
        mock_SMTP.return_value.starttls.assert_called_once()
        mock_SMTP.return_value.login.assert_called_once_with('foo', 'bar')

    @mock.patch(f'{mail.__name__}.smtplib.SMTP')
    def test_suppressed(self, mock_SMTP):
        """Nothing is sent when sending is suppressed."""
        session = mail.MailSession(suppress=True)
        session.send('foo@bar.com', 'Hello', '<p>Hi</p>')
        self.assertEqual(mock_SMTP.call_count, 0)

    @mock.patch('time.sleep')
    @mock.patch(f'{mail.__name__}.smtplib.SMTP')
    def test_transient_failure(self, mock_SMTP, mock_sleep):
        """A failed attempt is retried."""
        conn = mock_SMTP.return_value.__enter__.return_value
        conn.send_message.side_effect = [
            smtplib.SMTPServerDisconnected('nope'),
            None
        ]
        self.session.send('foo@bar.com', 'Hello', '<p>Hi</p>')
        self.assertEqual(conn.send_message.call_count, 2)

    @mock.patch('time.sleep')
    @mock.patch(f'{mail.__name__}.smtplib.SMTP')
    def test_delivery_failed(self, mock_SMTP, mock_sleep):
        """Raises :class:`.DeliveryFailed` once retries are exhausted."""
        mock_SMTP.side_effect = ConnectionRefusedError('nope')
        with self.assertRaises(mail.DeliveryFailed):
            self.session.send('foo@bar.com', 'Hello', '<p>Hi</p>')
        self.assertEqual(mock_SMTP.call_count, 3)


class TestCurrentSession(TestCase):
    """Mail settings are read from the application config."""

    def test_current_session(self):
        app = Flask('foo')
        app.config['MAIL_SERVER'] = 'mail.example.org'
        app.config['MAIL_SUPPRESS_SEND'] = '1'
        mail.MailSession.init_app(app)
        with app.app_context():
            session = mail.MailSession.current_session()
        self.assertEqual(session._host, 'mail.example.org')
        self.assertEqual(session._port, 25)
        self.assertTrue(session._suppress)

    def test_timeout(self):
        """The SMTP timeout can be configured."""
        app = Flask('foo')
        app.config['MAIL_TIMEOUT'] = '1.5'
        mail.MailSession.init_app(app)
        with app.app_context():
            session = mail.MailSession.current_session()
        self.assertEqual(session._timeout, 1.5)

    @mock.patch(f'{mail.__name__}.smtplib.SMTP')
    def test_module_send(self, mock_SMTP):
        """:func:`.mail.send` uses the current application's settings."""
        app = Flask('foo')
        mail.MailSession.init_app(app)
        with app.app_context():
            mail.send('foo@bar.com', 'Hello', '<p>Hi</p>')
        mock_SMTP.assert_called_once_with(host='localhost', port=25,
                                          timeout=3)
