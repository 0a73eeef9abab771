"""Provides forms for validating account requests."""

from typing import Any, List, Mapping, Optional

from werkzeug.datastructures import MultiDict
from wtforms import Form, IntegerField, PasswordField, StringField
from wtforms.validators import DataRequired, Email, InputRequired, Length, \
    NumberRange, Regexp, ValidationError

from ..domain import UserRegistration
from .. import exceptions
from ..exceptions import Problem
from ..services.users import MAX_USER_ID

USERNAME_PATTERN = r'^[A-Za-z0-9\-._@+]+$'
"""Characters allowed in a username."""


def formdata(payload: Optional[Any]) -> MultiDict:
    """
    Generate form data from a decoded JSON request body.

    Anything that is not a JSON object is treated as an empty body. Values
    that are not scalars are dropped, so that they fail as missing.
    """
    data: MultiDict = MultiDict()
    if not isinstance(payload, Mapping):
        return data
    for key, value in payload.items():
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (str, int, float)):
            data.add(key, str(value))
    return data


def problems(form: Form) -> List[Problem]:
    """Generate a field-tagged problem list from a form's errors."""
    return [
        Problem(field, exceptions.ValidationError.__name__, message)
        for field, messages in form.errors.items()
        for message in messages
    ]


def encodable(form: Form, field: StringField) -> None:
    """Values are stored, hashed and signed as UTF-8."""
    try:
        field.data.encode('utf-8')
    except UnicodeEncodeError as e:
        raise ValidationError(f'{field.label.text} contains invalid'
                              ' characters.') from e


class RegistrationForm(Form):
    """User registration form."""

    name = StringField('First or given name',
                       validators=[DataRequired(), Length(max=50), encodable])
    surname = StringField('Last or family name',
                          validators=[DataRequired(), Length(max=50),
                                      encodable])
    username = StringField(
        'Username',
        validators=[DataRequired(), Length(max=256),
                    Regexp(USERNAME_PATTERN,
                           message='Username may only contain letters, digits'
                                   ' and - . _ @ +')]
    )
    email = StringField('Email address',
                        validators=[DataRequired(), Email(), Length(max=256)])
    password = PasswordField('Password',
                             validators=[DataRequired(), encodable])

    def to_domain(self) -> UserRegistration:
        """Generate a :class:`.UserRegistration` from this form's data."""
        return UserRegistration(
            username=self.username.data.strip(),
            password=self.password.data,
            email=self.email.data.strip(),
            name=self.name.data.strip(),
            surname=self.surname.data.strip()
        )


class ConfirmEmailForm(Form):
    """Query parameters for the e-mail confirmation link."""

    userId = IntegerField(
        'User ID',
        validators=[InputRequired(), NumberRange(min=1, max=MAX_USER_ID)]
    )
    code = StringField('Code', validators=[DataRequired(), encodable])


class ForgotPasswordForm(Form):
    """Request a password reset link."""

    email = StringField('Email address', validators=[DataRequired(), Email()])


class ResetPasswordForm(Form):
    """Set a new password using a reset code."""

    email = StringField('Email address', validators=[DataRequired(), Email()])
    code = StringField('Code', validators=[DataRequired(), encodable])
    password = PasswordField('Password',
                             validators=[DataRequired(), encodable])


class LoginForm(Form):
    """Log in form."""

    username = StringField('Username or e-mail',
                           validators=[DataRequired(), encodable])
    password = PasswordField('Password',
                             validators=[DataRequired(), encodable])
