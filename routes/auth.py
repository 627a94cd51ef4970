from flask import Blueprint, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
import logging

from forms import (SignupForm, LoginForm, OtpRequestForm, OtpVerifyForm, ChangePasswordForm,
                   CompletePasswordChangeForm, validate_payload)
from models import db
from utils.email_service import EmailService
from utils.error_handling import AppError, ValidationError, NotFoundError, AuthenticationError
from utils.otp import (generate_otp, save_otp, verify_otp, clear_otp, PURPOSE_VERIFY_EMAIL,
                       PURPOSE_CHANGE_PASSWORD)
from utils.user_service import UserService, serialize_user

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


def _send_otp(user, purpose):
    """Store a fresh code on the user and email it; clears the code again if delivery fails"""
    expiry = current_app.config['OTP_EXPIRY_MINUTES']
    otp = generate_otp()
    save_otp(user, otp, purpose, expiry_minutes=expiry)
    db.session.commit()

    if not EmailService().send_otp_email(user, otp, expiry):
        clear_otp(user)
        db.session.commit()
        raise AppError('Failed to send verification email. Please try again later.', 500)
    logger.info(f"Verification code sent to user {user.id}")


def _check_otp(user, otp, purpose):
    ok, message = verify_otp(user, otp, purpose)
    if not ok:
        # Keep the failed-attempt count
        db.session.commit()
        raise ValidationError(message)


@auth_bp.route('/signup', methods=['POST'])
def signup():
    form = validate_payload(SignupForm)
    user = UserService(db.session).signup(form.email.data, form.password.data, name=form.name.data)
    return jsonify({'id': user.id, 'email': user.email}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    form = validate_payload(LoginForm)
    user = UserService(db.session).authenticate(form.email.data, form.password.data)
    login_user(user)
    logger.info(f"User {user.id} logged in")
    return jsonify({'user': serialize_user(user)})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out'})


@auth_bp.route('/session', methods=['GET'])
@login_required
def session_info():
    return jsonify({'user': serialize_user(current_user)})


@auth_bp.route('/otp/generate', methods=['POST'])
def generate():
    form = validate_payload(OtpRequestForm)
    user = UserService(db.session).find_by_email(form.email.data)
    if user is None:
        # Same message as for a real account; only userId differs
        return jsonify({'message': 'If an account exists for this email, a verification code has been sent.'})
    _send_otp(user, PURPOSE_VERIFY_EMAIL)
    return jsonify({
        'message': 'If an account exists for this email, a verification code has been sent.',
        'userId': user.id,
    })


@auth_bp.route('/otp/verify', methods=['POST'])
def verify():
    form = validate_payload(OtpVerifyForm)
    user = UserService(db.session).get(form.userId.data)
    _check_otp(user, form.otp.data, PURPOSE_VERIFY_EMAIL)
    clear_otp(user)
    user.is_email_verified = True
    db.session.commit()
    return jsonify({'message': 'Verification successful'})


@auth_bp.route('/change-password', methods=['POST'])
def change_password():
    """First step of a password change: confirm the current password, then email a code"""
    form = validate_payload(ChangePasswordForm)
    user = UserService(db.session).find_by_email(form.email.data)
    if user is None:
        raise NotFoundError('User not found')
    if not user.check_password(form.currentPassword.data):
        raise AuthenticationError('Current password is incorrect')
    _send_otp(user, PURPOSE_CHANGE_PASSWORD)
    return jsonify({'message': 'A verification code has been sent to your email.', 'userId': user.id})


@auth_bp.route('/change-password/complete', methods=['POST'])
def complete_password_change():
    form = validate_payload(CompletePasswordChangeForm)
    service = UserService(db.session)
    user = service.get(form.userId.data)
    _check_otp(user, form.otp.data, PURPOSE_CHANGE_PASSWORD)
    clear_otp(user)
    service.set_password(user, form.newPassword.data)
    logger.info(f"Password changed for user {user.id}")
    return jsonify({'message': 'Password changed successfully'})
