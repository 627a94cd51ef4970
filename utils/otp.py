"""
One-time codes for email verification and password changes

Codes are six random digits, stored only as a password hash on the user and
valid for a fixed number of minutes. Each code is tied to the flow that issued
it and is discarded after MAX_ATTEMPTS wrong guesses.
"""

import secrets
from datetime import datetime, timedelta
from werkzeug.security import generate_password_hash, check_password_hash

OTP_LENGTH = 6
DEFAULT_EXPIRY_MINUTES = 10
MAX_ATTEMPTS = 5

PURPOSE_VERIFY_EMAIL = 'verify_email'
PURPOSE_CHANGE_PASSWORD = 'change_password'


def generate_otp():
    return ''.join(secrets.choice('0123456789') for _ in range(OTP_LENGTH))


def save_otp(user, otp, purpose, expiry_minutes=DEFAULT_EXPIRY_MINUTES, now=None):
    """Attach a hashed code, its purpose and its expiry to the user; the caller commits"""
    now = now or datetime.utcnow()
    user.otp_secret = generate_password_hash(otp)
    user.otp_expiry = now + timedelta(minutes=expiry_minutes)
    user.otp_purpose = purpose
    user.otp_attempts = 0


def verify_otp(user, otp, purpose, now=None, max_attempts=MAX_ATTEMPTS):
    """
    Check a submitted code for the given flow

    A wrong guess is counted on the user; the code is cleared once the count
    reaches max_attempts. The caller commits either way.

    Returns:
        (ok, message): message explains a failure and is None on success
    """
    if not user.otp_secret or not user.otp_expiry or user.otp_purpose != purpose:
        return False, 'No verification code has been requested'
    now = now or datetime.utcnow()
    if now > user.otp_expiry:
        return False, 'Verification code has expired'
    if not otp or not check_password_hash(user.otp_secret, str(otp).strip()):
        user.otp_attempts = (user.otp_attempts or 0) + 1
        if user.otp_attempts >= max_attempts:
            clear_otp(user)
            return False, 'Too many incorrect attempts. Please request a new code.'
        return False, 'Invalid verification code'
    return True, None


def clear_otp(user):
    user.otp_secret = None
    user.otp_expiry = None
    user.otp_purpose = None
    user.otp_attempts = 0
