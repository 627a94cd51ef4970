from flask import request
from flask_wtf import FlaskForm
from wtforms import Field, StringField, TextAreaField, PasswordField, BooleanField
from wtforms.validators import DataRequired, AnyOf, StopValidation, ValidationError
import re

from models import ROLES, RECOMMENDATION_APPROVED, RECOMMENDATION_REJECTED
from utils.error_handling import ValidationError as PayloadError

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$')
ZIPCODE_PATTERN = re.compile(r'^\d{5}(-\d{4})?$')
OTP_PATTERN = re.compile(r'^\d{6}$')


class StringValue:
    """Optional string with an optional maximum length; empty values stop the chain"""

    def __init__(self, max_length=None, min_length=None, pattern=None, message=None):
        self.max_length = max_length
        self.min_length = min_length
        self.pattern = pattern
        self.message = message

    def __call__(self, form, field):
        if field.data is None or field.data == '':
            field.errors[:] = []
            raise StopValidation()
        if not isinstance(field.data, str):
            raise StopValidation('Must be a string')
        value = field.data.strip()
        if self.max_length is not None and len(value) > self.max_length:
            raise ValidationError(f'Must be at most {self.max_length} characters')
        if self.min_length is not None and len(value) < self.min_length:
            raise ValidationError(f'Must be at least {self.min_length} characters')
        if self.pattern is not None and not self.pattern.match(value):
            raise ValidationError(self.message or 'Invalid format')


def valid_email(form, field):
    if isinstance(field.data, str) and not EMAIL_PATTERN.match(field.data.strip()):
        raise ValidationError('Please enter a valid email address')


class TagListField(Field):
    """A list of strings; a single string is accepted as a one-element list"""

    def process_formdata(self, valuelist):
        self.data = list(valuelist)

    def _value(self):
        return ','.join(self.data or [])

    def pre_validate(self, form):
        if not all(isinstance(v, str) for v in self.data or []):
            raise ValidationError('Must be a list of strings')
        self.data = [v.strip() for v in self.data or [] if v.strip()]


class IdField(Field):
    """Integer identifier; JSON null and empty strings read as no value"""

    def process_formdata(self, valuelist):
        self.data = None
        if not valuelist or valuelist[0] in (None, ''):
            return
        value = valuelist[0]
        if isinstance(value, bool):
            raise ValueError('Not a valid id')
        try:
            self.data = int(value)
        except (TypeError, ValueError):
            raise ValueError('Not a valid id')


class JsonForm(FlaskForm):
    """Form bound to the JSON body of the current request"""

    class Meta:
        csrf = False

    def provided(self, name):
        """True when the request body carried the key"""
        return name in (request.get_json(silent=True) or {})

    def first_error(self):
        for name, errors in self.errors.items():
            if errors:
                return f"{name}: {errors[0]}"
        return 'Invalid request'


def validate_payload(form_class):
    """
    Build form_class from the request body and validate it

    Raises:
        utils.error_handling.ValidationError: body is not a JSON object or a field is invalid
    """
    if not isinstance(request.get_json(silent=True), dict):
        raise PayloadError('Request body must be a JSON object')
    form = form_class()
    if not form.validate():
        raise PayloadError(form.first_error())
    return form


class SignupForm(JsonForm):
    email = StringField('Email', validators=[DataRequired(), StringValue(max_length=120), valid_email])
    password = PasswordField('Password', validators=[DataRequired(), StringValue(min_length=6, max_length=128)])
    name = StringField('Name', validators=[StringValue(max_length=120)])


class LoginForm(JsonForm):
    email = StringField('Email', validators=[DataRequired(), StringValue(max_length=120)])
    password = PasswordField('Password', validators=[DataRequired(), StringValue()])


class OtpRequestForm(JsonForm):
    email = StringField('Email', validators=[DataRequired(), StringValue(max_length=120)])


class OtpVerifyForm(JsonForm):
    userId = IdField('User', validators=[DataRequired()])
    otp = StringField('OTP', validators=[DataRequired(), StringValue(pattern=OTP_PATTERN, message='OTP must be 6 digits')])


class ChangePasswordForm(JsonForm):
    email = StringField('Email', validators=[DataRequired(), StringValue(max_length=120)])
    currentPassword = PasswordField('Current password', validators=[DataRequired(), StringValue()])
    newPassword = PasswordField('New password', validators=[DataRequired(), StringValue(min_length=6, max_length=128)])


class CompletePasswordChangeForm(JsonForm):
    userId = IdField('User', validators=[DataRequired()])
    otp = StringField('OTP', validators=[DataRequired(), StringValue(pattern=OTP_PATTERN, message='OTP must be 6 digits')])
    newPassword = PasswordField('New password', validators=[DataRequired(), StringValue(min_length=6, max_length=128)])


class RecommendationForm(JsonForm):
    name = StringField('Name', validators=[DataRequired(), StringValue(max_length=200)])
    type = StringField('Type', validators=[DataRequired(), AnyOf(['state', 'national'], message="Type must be 'state' or 'national'")])
    state = StringField('State', validators=[StringValue(max_length=50)])
    description = TextAreaField('Description', validators=[DataRequired(), StringValue()])
    category = TagListField('Category', validators=[DataRequired(message='At least one category is required')])
    note = TextAreaField('Note', validators=[DataRequired(), StringValue()])
    submittedBy = StringField('Submitted by', validators=[StringValue(max_length=120)])
    email = StringField('Email', validators=[StringValue(max_length=120), valid_email])

    def validate(self, extra_validators=None):
        if not super().validate(extra_validators):
            return False
        if self.type.data == 'state' and not (isinstance(self.state.data, str) and self.state.data.strip()):
            self.state.errors.append('State is required for state-level resources')
            return False
        return True


class RecommendationStatusForm(JsonForm):
    status = StringField('Status', validators=[
        DataRequired(),
        AnyOf([RECOMMENDATION_APPROVED, RECOMMENDATION_REJECTED], message="Status must be 'approved' or 'rejected'"),
    ])


class ReviewForm(JsonForm):
    content = TextAreaField('Review', validators=[DataRequired(), StringValue(max_length=1000)])


class ProfileForm(JsonForm):
    name = StringField('Name', validators=[StringValue(max_length=120)])
    ageGroup = StringField('Age group', validators=[StringValue(max_length=50)])
    gender = StringField('Gender', validators=[StringValue(max_length=50)])
    raceEthnicity = StringField('Race/ethnicity', validators=[StringValue(max_length=100)])
    sexualOrientation = StringField('Sexual orientation', validators=[StringValue(max_length=50)])
    zipcode = StringField('Zipcode', validators=[StringValue(pattern=ZIPCODE_PATTERN, message='Zipcode must be 5 digits')])
    state = StringField('State', validators=[StringValue(min_length=2, max_length=2)])
    resourceInterests = TagListField('Resource interests')


class AdminUserForm(JsonForm):
    email = StringField('Email', validators=[DataRequired(), StringValue(max_length=120), valid_email])
    password = PasswordField('Password', validators=[DataRequired(), StringValue(min_length=6, max_length=128)])
    name = StringField('Name', validators=[StringValue(max_length=120)])
    role = StringField('Role', validators=[StringValue(), AnyOf(list(ROLES), message='Unknown role')])
    managedResourceId = IdField('Managed resource')


class RoleForm(JsonForm):
    role = StringField('Role', validators=[DataRequired(), AnyOf(list(ROLES), message='Unknown role')])
    managedResourceId = IdField('Managed resource')


class UserStatusForm(JsonForm):
    isActive = BooleanField('Active')

    def validate_isActive(self, field):
        raw = getattr(field, 'raw_data', None)
        if not raw or not isinstance(raw[0], bool):
            raise ValidationError('isActive must be true or false')


class ZipcodeBatchForm(JsonForm):
    zipcodes = TagListField('Zipcodes', validators=[DataRequired(message='zipcodes must be a non-empty list')])


class AddressBatchForm(JsonForm):
    addresses = TagListField('Addresses', validators=[DataRequired(message='addresses must be a non-empty list')])
