from flask import Flask, request, jsonify
from flask_login import LoginManager
from flask_cors import CORS
from sqlalchemy.pool import QueuePool
import os
import logging

from models import db, User
from utils.email_service import mail
from utils.error_handling import register_error_handlers

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

login_manager = LoginManager()


def _env_bool(name, default):
    return os.environ.get(name, default).lower() in ['true', 'on', '1']


def load_config(app):
    """Read configuration from the environment"""
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('SQLALCHEMY_DATABASE_URI') or os.environ.get('DATABASE_URL', 'sqlite:///advo.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    app.config['MAIL_SERVER'] = os.environ.get('MAIL_SERVER', 'localhost')
    app.config['MAIL_PORT'] = int(os.environ.get('MAIL_PORT', 587))
    app.config['MAIL_USE_TLS'] = _env_bool('MAIL_USE_TLS', 'true')
    app.config['MAIL_USERNAME'] = os.environ.get('MAIL_USERNAME')
    app.config['MAIL_PASSWORD'] = os.environ.get('MAIL_PASSWORD')
    app.config['MAIL_DEFAULT_SENDER'] = os.environ.get('MAIL_DEFAULT_SENDER', os.environ.get('MAIL_USERNAME'))

    # Geocoding
    app.config['GOOGLE_MAPS_API_KEY'] = os.environ.get('GOOGLE_MAPS_API_KEY')
    app.config['GEOCODE_TIMEOUT'] = float(os.environ.get('GEOCODE_TIMEOUT', 5))
    app.config['GEOCODE_BATCH_SIZE'] = int(os.environ.get('GEOCODE_BATCH_SIZE', 10))
    app.config['GEOCODE_BATCH_DELAY'] = float(os.environ.get('GEOCODE_BATCH_DELAY', 1.0))  # seconds

    app.config['OTP_EXPIRY_MINUTES'] = int(os.environ.get('OTP_EXPIRY_MINUTES', 10))
    app.config['SEARCH_DEFAULT_LIMIT'] = int(os.environ.get('SEARCH_DEFAULT_LIMIT', 20))
    app.config['SEARCH_MAX_LIMIT'] = int(os.environ.get('SEARCH_MAX_LIMIT', 100))

    app.config['CORS_ORIGINS'] = [o.strip() for o in os.environ.get('CORS_ORIGINS', 'http://localhost:3000').split(',') if o.strip()]


def engine_options(database_uri):
    """Connection pooling for server databases; SQLite keeps SQLAlchemy's defaults"""
    if database_uri.startswith('sqlite'):
        return {}
    return {
        'poolclass': QueuePool,
        'pool_size': 20,
        'pool_recycle': 600,  # Recycle connections every 10 minutes
        'pool_pre_ping': True,  # Verify connections before use
        'max_overflow': 10,
        'pool_timeout': 30,
        'pool_reset_on_return': 'rollback'
    }


def create_app(test_config=None):
    app = Flask(__name__)
    load_config(app)
    if test_config:
        app.config.update(test_config)
    app.config.setdefault('SQLALCHEMY_ENGINE_OPTIONS', engine_options(app.config['SQLALCHEMY_DATABASE_URI']))

    # Keep count-ordered breakdowns in insertion order
    app.json.sort_keys = False

    CORS(app,
         origins=app.config['CORS_ORIGINS'],
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         expose_headers=["Content-Type", "X-Total-Count"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"]
    )

    # Initialize extensions
    db.init_app(app)
    mail.init_app(app)
    login_manager.init_app(app)

    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        return response

    # Request logging middleware
    @app.before_request
    def log_request_info():
        logger.info(f"Request: {request.method} {request.url} from {request.remote_addr}")

    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Remove database session at the end of each request/app context"""
        db.session.remove()

    from routes.auth import auth_bp
    from routes.resources import resources_bp
    from routes.recommendations import recommendations_bp
    from routes.users import users_bp
    from routes.admin import admin_bp
    from routes.analytics import analytics_bp
    from routes.geocode import geocode_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(resources_bp, url_prefix='/api/v1/resources')
    app.register_blueprint(recommendations_bp, url_prefix='/api/v1/recommendations')
    app.register_blueprint(users_bp, url_prefix='/api/v1')
    app.register_blueprint(admin_bp, url_prefix='/api/v1/admin')
    app.register_blueprint(analytics_bp, url_prefix='/api/v1/admin')
    app.register_blueprint(geocode_bp, url_prefix='/api/v1')

    register_error_handlers(app)

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    return app


@login_manager.user_loader
def load_user(user_id):
    user = db.session.get(User, int(user_id))
    # Frozen accounts are treated as signed out
    if user is None or not user.is_active:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Unauthorized. Authentication required.'}), 401


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        db.create_all()
    app.run(host=os.environ.get('HOST', '0.0.0.0'), port=int(os.environ.get('PORT', 5000)))
