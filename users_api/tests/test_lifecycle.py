"""Tests for :mod:`users_api.lifecycle`."""

from unittest import TestCase, mock
from typing import Dict
from urllib.parse import urlparse, parse_qs
import html
import re

from flask import current_app

from .. import domain, exceptions, lifecycle, tokens
from ..domain import TokenPurpose
from ..services import mail, users
from ..services.tests.util import temporary_db

PASSWORD = 'Passw0rd!'


def _registration(username: str = 'foouser',
                  email: str = 'foo@bar.com') -> domain.UserRegistration:
    return domain.UserRegistration(username=username, password=PASSWORD,
                                   email=email, name='Foo', surname='User')


def _link_params(mock_send: mock.MagicMock) -> Dict[str, str]:
    """Get the query parameters of the link in the last message sent."""
    body = mock_send.call_args[0][2]
    link = html.unescape(re.search(r"href='([^']+)'", body).group(1))
    return {k: v[0] for k, v in parse_qs(urlparse(link).query).items()}


@mock.patch.object(mail, 'send')
class TestRegister(TestCase):
    """Tests for :func:`.lifecycle.register`."""

    def test_register(self, mock_send):
        """A new account is unconfirmed, and a confirmation link is sent."""
        with temporary_db():
            result = lifecycle.register(_registration())
            self.assertTrue(result.email_sent)
            self.assertFalse(result.user.email_confirmed)

            to, subject, _ = mock_send.call_args[0]
            self.assertEqual(to, 'foo@bar.com')
            self.assertEqual(subject, 'Confirm your email')
            params = _link_params(mock_send)
            self.assertEqual(params['userId'], result.user.user_id)
            claims = tokens.validate(params['code'],
                                     TokenPurpose.EMAIL_CONFIRMATION,
                                     current_app.config['TOKEN_SECRET'])
            self.assertEqual(claims.user_id, result.user.user_id)

    def test_link_target(self, mock_send):
        """The link points at the configured confirmation URL."""
        with temporary_db():
            lifecycle.register(_registration())
            body = mock_send.call_args[0][2]
            self.assertIn(
                "href='https://example.org/Account/ConfirmEmail?userId=",
                body
            )

    def test_duplicate_email(self, mock_send):
        with temporary_db():
            first = lifecycle.register(_registration()).user
            mock_send.reset_mock()
            with self.assertRaises(exceptions.DuplicateEmail) as ctx:
                lifecycle.register(_registration('other', 'FOO@bar.com'))
            self.assertEqual(ctx.exception.problems[0].field, 'email')
            self.assertEqual(ctx.exception.problems[0].kind,
                             'DuplicateEmail')
            self.assertEqual(mock_send.call_count, 0, 'No mail is sent')
            self.assertEqual(users.get_user_by_id(first.user_id), first)

    def test_duplicate_username(self, mock_send):
        with temporary_db():
            lifecycle.register(_registration())
            with self.assertRaises(exceptions.DuplicateUsername):
                lifecycle.register(_registration('FOOUSER', 'other@bar.com'))

    def test_weak_password(self, mock_send):
        """Each broken password rule is reported as a separate problem."""
        with temporary_db():
            registration = _registration()._replace(password='abc')
            with self.assertRaises(exceptions.WeakPassword) as ctx:
                lifecycle.register(registration)
            self.assertEqual(len(ctx.exception.problems), 4)
            for problem in ctx.exception.problems:
                self.assertEqual(problem.field, 'password')
                self.assertEqual(problem.kind, 'WeakPassword')
            self.assertIsNone(users.get_user_by_email('foo@bar.com'))

    def test_delivery_failure(self, mock_send):
        """The account is created even if the e-mail cannot be sent."""
        mock_send.side_effect = mail.DeliveryFailed('nope')
        with temporary_db():
            result = lifecycle.register(_registration())
            self.assertFalse(result.email_sent)
            self.assertIsNotNone(users.get_user_by_id(result.user.user_id))


@mock.patch.object(mail, 'send')
class TestConfirmEmail(TestCase):
    """Tests for :func:`.lifecycle.confirm_email`."""

    def test_confirm(self, mock_send):
        with temporary_db():
            user = lifecycle.register(_registration()).user
            code = _link_params(mock_send)['code']
            confirmed = lifecycle.confirm_email(user.user_id, code)
            self.assertTrue(confirmed.email_confirmed)
            self.assertNotEqual(confirmed.security_stamp,
                                user.security_stamp)

    def test_code_is_single_use(self, mock_send):
        with temporary_db():
            user = lifecycle.register(_registration()).user
            code = _link_params(mock_send)['code']
            lifecycle.confirm_email(user.user_id, code)
            with self.assertRaises(exceptions.InvalidToken):
                lifecycle.confirm_email(user.user_id, code)

    def test_another_users_code(self, mock_send):
        """A code issued to one user cannot confirm another."""
        with temporary_db():
            lifecycle.register(_registration())
            code = _link_params(mock_send)['code']
            other = lifecycle.register(_registration('bar', 'bar@bar.com'))
            with self.assertRaises(exceptions.InvalidToken):
                lifecycle.confirm_email(other.user.user_id, code)
            self.assertFalse(
                users.get_user_by_id(other.user.user_id).email_confirmed
            )

    def test_reset_code(self, mock_send):
        """A password reset code cannot be used to confirm an address."""
        with temporary_db():
            user = lifecycle.register(_registration()).user
            code = tokens.issue(user, TokenPurpose.PASSWORD_RESET,
                                current_app.config['TOKEN_SECRET'])
            with self.assertRaises(exceptions.InvalidToken):
                lifecycle.confirm_email(user.user_id, code)

    def test_garbage_code(self, mock_send):
        with temporary_db():
            user = lifecycle.register(_registration()).user
            with self.assertRaises(exceptions.InvalidToken) as ctx:
                lifecycle.confirm_email(user.user_id, 'foo')
            self.assertEqual(ctx.exception.problems[0].field, 'code')

    def test_no_such_user(self, mock_send):
        with temporary_db():
            with self.assertRaises(exceptions.NotFound):
                lifecycle.confirm_email('1234', 'foo')

    def test_lost_race(self, mock_send):
        """If the stamp changes after validation, the code is rejected."""
        with temporary_db():
            user = lifecycle.register(_registration()).user
            code = _link_params(mock_send)['code']
            with mock.patch.object(users, 'confirm_email') as mock_confirm:
                mock_confirm.side_effect = lifecycle.store.StampMismatch
                with self.assertRaises(exceptions.InvalidToken):
                    lifecycle.confirm_email(user.user_id, code)
                self.assertEqual(
                    mock_confirm.call_args[1]['expected_stamp'],
                    user.security_stamp,
                    'The stamp from the code is the expected stamp'
                )


@mock.patch.object(mail, 'send')
class TestPasswordRecovery(TestCase):
    """Tests for :func:`.lifecycle.forgot_password` and reset."""

    def _confirmed_user(self, mock_send) -> domain.User:
        user = lifecycle.register(_registration()).user
        return lifecycle.confirm_email(user.user_id,
                                       _link_params(mock_send)['code'])

    def test_forgot_password(self, mock_send):
        with temporary_db():
            self._confirmed_user(mock_send)
            result = lifecycle.forgot_password('FOO@bar.com')
            self.assertTrue(result.email_sent)
            to, subject, body = mock_send.call_args[0]
            self.assertEqual(to, 'foo@bar.com')
            self.assertEqual(subject, 'Reset Password')
            self.assertIn(
                "href='https://example.org/Account/ResetPassword?email=",
                body
            )
            self.assertEqual(_link_params(mock_send)['email'],
                             'foo@bar.com')

    def test_not_eligible(self, mock_send):
        """Unknown and unconfirmed addresses are indistinguishable."""
        with temporary_db():
            lifecycle.register(_registration())
            mock_send.reset_mock()
            with self.assertRaises(exceptions.NotEligible) as unconfirmed:
                lifecycle.forgot_password('foo@bar.com')
            with self.assertRaises(exceptions.NotEligible) as unknown:
                lifecycle.forgot_password('nobody@bar.com')
            self.assertEqual(unconfirmed.exception.problems,
                             unknown.exception.problems)
            self.assertEqual(mock_send.call_count, 0)

    def test_forgot_password_delivery_failure(self, mock_send):
        with temporary_db():
            self._confirmed_user(mock_send)
            mock_send.side_effect = mail.DeliveryFailed('nope')
            self.assertFalse(lifecycle.forgot_password('foo@bar.com')
                             .email_sent)

    def test_reset_password(self, mock_send):
        """The new password works, the old one does not."""
        with temporary_db():
            user = self._confirmed_user(mock_send)
            lifecycle.forgot_password('foo@bar.com')
            code = _link_params(mock_send)['code']
            updated = lifecycle.reset_password('foo@bar.com', code,
                                               'N3w!pass')
            self.assertTrue(updated.email_confirmed)
            self.assertNotEqual(updated.security_stamp, user.security_stamp)

            with self.assertRaises(exceptions.InvalidCredentials):
                lifecycle.login('foouser', PASSWORD)
            logged_in, session, token = lifecycle.login('foouser',
                                                        'N3w!pass')
            self.assertEqual(logged_in.user_id, user.user_id)

    def test_reset_code_is_single_use(self, mock_send):
        with temporary_db():
            self._confirmed_user(mock_send)
            lifecycle.forgot_password('foo@bar.com')
            code = _link_params(mock_send)['code']
            lifecycle.reset_password('foo@bar.com', code, 'N3w!pass')
            with self.assertRaises(exceptions.InvalidToken):
                lifecycle.reset_password('foo@bar.com', code, 'Other1!x')
            lifecycle.login('foouser', 'N3w!pass')

    def test_reset_invalidates_other_codes(self, mock_send):
        """Using one reset code revokes the others."""
        with temporary_db():
            self._confirmed_user(mock_send)
            lifecycle.forgot_password('foo@bar.com')
            first = _link_params(mock_send)['code']
            lifecycle.forgot_password('foo@bar.com')
            second = _link_params(mock_send)['code']
            lifecycle.reset_password('foo@bar.com', second, 'N3w!pass')
            with self.assertRaises(exceptions.InvalidToken):
                lifecycle.reset_password('foo@bar.com', first, 'Other1!x')

    def test_confirmation_code_cannot_reset(self, mock_send):
        with temporary_db():
            user = self._confirmed_user(mock_send)
            code = tokens.issue(user, TokenPurpose.EMAIL_CONFIRMATION,
                                current_app.config['TOKEN_SECRET'])
            with self.assertRaises(exceptions.InvalidToken):
                lifecycle.reset_password('foo@bar.com', code, 'N3w!pass')

    def test_weak_password(self, mock_send):
        """A weak password is refused, and the code can still be used."""
        with temporary_db():
            self._confirmed_user(mock_send)
            lifecycle.forgot_password('foo@bar.com')
            code = _link_params(mock_send)['code']
            with self.assertRaises(exceptions.WeakPassword):
                lifecycle.reset_password('foo@bar.com', code, 'weak')
            lifecycle.reset_password('foo@bar.com', code, 'N3w!pass')

    def test_unknown_address(self, mock_send):
        with temporary_db():
            with self.assertRaises(exceptions.NotFound):
                lifecycle.reset_password('nobody@bar.com', 'foo', 'N3w!pass')

    def test_another_users_code(self, mock_send):
        with temporary_db():
            self._confirmed_user(mock_send)
            lifecycle.forgot_password('foo@bar.com')
            code = _link_params(mock_send)['code']
            lifecycle.register(_registration('bar', 'bar@bar.com'))
            with self.assertRaises(exceptions.InvalidToken):
                lifecycle.reset_password('bar@bar.com', code, 'N3w!pass')


@mock.patch.object(mail, 'send')
class TestLogin(TestCase):
    """Tests for :func:`.lifecycle.login`."""

    def test_login(self, mock_send):
        with temporary_db():
            registered = lifecycle.register(_registration()).user
            user, session, token = lifecycle.login('foo@bar.com', PASSWORD)
            self.assertEqual(user.user_id, registered.user_id)
            self.assertEqual(session.user_id, registered.user_id)
            self.assertTrue(token)

    def test_bad_password(self, mock_send):
        with temporary_db():
            lifecycle.register(_registration())
            with self.assertRaises(exceptions.InvalidCredentials):
                lifecycle.login('foouser', 'Wr0ng!pass')

    def test_confirmation_required(self, mock_send):
        """Unconfirmed users cannot log in if confirmation is required."""
        with temporary_db(AUTH_REQUIRE_CONFIRMED_EMAIL=True):
            user = lifecycle.register(_registration()).user
            with self.assertRaises(exceptions.InvalidCredentials):
                lifecycle.login('foouser', PASSWORD)
            lifecycle.confirm_email(user.user_id,
                                    _link_params(mock_send)['code'])
            lifecycle.login('foouser', PASSWORD)
