"""
Email service for one-time codes and account notifications
"""
import logging
import smtplib
from flask import current_app
from flask_mail import Mail, Message

logger = logging.getLogger(__name__)

mail = Mail()


class EmailService:
    def __init__(self, mailer=None):
        self.mailer = mailer or mail

    def send_email(self, to_email, subject, html_content, text_content=None):
        """Send an email through Flask-Mail; returns False instead of raising on delivery failure"""
        sender = current_app.config.get('MAIL_DEFAULT_SENDER') or current_app.config.get('MAIL_USERNAME')
        if not sender and not current_app.config.get('MAIL_SUPPRESS_SEND'):
            logger.error("Email configuration missing. Please set MAIL_DEFAULT_SENDER or MAIL_USERNAME.")
            return False

        msg = Message(subject=subject, recipients=[to_email], html=html_content, body=text_content,
                      sender=sender or 'noreply@localhost')
        try:
            self.mailer.send(msg)
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP Authentication Error: {e}")
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email to {to_email}: {e}")
            return False

        logger.info(f"Email sent successfully to {to_email}")
        return True

    def send_otp_email(self, user, otp, expiry_minutes):
        """Send a password-change verification code"""
        subject = "Your verification code"
        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h2>Password change verification</h2>
                <p>Hello {user.name or user.email},</p>
                <p>Use this code to confirm your password change:</p>
                <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px;">{otp}</p>
                <p>The code expires in {expiry_minutes} minutes. If you did not request it, you can ignore this email.</p>
            </div>
        </body>
        </html>
        """
        text_content = (
            f"Hello {user.name or user.email},\n\n"
            f"Your verification code is {otp}. It expires in {expiry_minutes} minutes.\n"
            "If you did not request it, you can ignore this email.\n"
        )
        return self.send_email(user.email, subject, html_content, text_content)
