"""
Authentication forms using Flask-WTF.
Validates login credentials posted as a form or a JSON body.
"""

from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField
from wtforms.validators import DataRequired, Length


class LoginForm(FlaskForm):
    """Login form with username and password."""

    username = StringField('Username', validators=[
        DataRequired(message='Username is required'),
        Length(max=80)
    ])

    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required')
    ])

    remember_me = BooleanField('Remember me')
