from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, SelectField
from wtforms.validators import DataRequired, Length, Email, Optional
from buildmart.utils.validators import validate_phone


class LoginForm(FlaskForm):
    """登录表单 (买家/管理员 或 经销商)"""
    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Email(message='Please provide a valid email')
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required')
    ])
    account_type = SelectField('Account type', choices=[
        ('user', 'User'),
        ('distributor', 'Distributor')
    ], default='user')


class RegisterForm(FlaskForm):
    """买家注册表单"""
    name = StringField('Name', validators=[
        DataRequired(message='Name is required'), Length(min=2, max=128)
    ])
    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Email(message='Please provide a valid email')
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required'),
        Length(min=6, message='Password must be at least 6 characters')
    ])
    phone = StringField('Phone', validators=[Optional(), validate_phone])
