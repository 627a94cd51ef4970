"""
Database initialization script

Creates all tables and, when ADMIN_EMAIL and ADMIN_PASSWORD are set, an
administrator account.

Usage:
    python init_db.py
"""

import os
import logging

from app import create_app
from models import db, User, ROLE_ADMIN

logger = logging.getLogger(__name__)


def seed_admin(email, password, name='Admin'):
    """Create the admin account unless the email is already registered"""
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        logger.info(f"Admin user {email} already exists")
        return None
    admin = User(email=email, name=name, role=ROLE_ADMIN, is_active=True, is_email_verified=True)
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    logger.info(f"Admin user {email} created")
    return admin


def init_database(app):
    """Initialize the database with all tables"""
    with app.app_context():
        db.create_all()
        logger.info("Database tables created")

        email = os.environ.get('ADMIN_EMAIL')
        password = os.environ.get('ADMIN_PASSWORD')
        if email and password:
            seed_admin(email, password)
        else:
            logger.info("ADMIN_EMAIL / ADMIN_PASSWORD not set; no admin account seeded")


if __name__ == '__main__':
    init_database(create_app())
