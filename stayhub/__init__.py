from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_socketio import SocketIO
from flask_cors import CORS
from flask_mail import Mail
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from redis import Redis, ConnectionPool
import logging

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
socketio = SocketIO()
cors = CORS()
mail = Mail()
limiter = Limiter(key_func=get_remote_address)
redis_client = Redis()


def configure_logging(app):
    """Attach a stream handler with the app's log level"""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    ))
    app.logger.handlers = [handler]
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))


def create_app(config_name='development'):
    app = Flask(__name__)

    # Load configuration
    from .config import config_by_name
    app.config.from_object(config_by_name[config_name])

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    cors.init_app(app, origins=app.config['CORS_ORIGINS'])
    mail.init_app(app)
    limiter.init_app(app)
    socketio.init_app(app, cors_allowed_origins=app.config['SOCKETIO_CORS_ALLOWED_ORIGINS'])

    # Point the shared Redis client at the configured server
    redis_client.connection_pool = ConnectionPool.from_url(app.config['REDIS_URL'])

    # Register blueprints
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.properties import properties_bp
    from .routes.bookings import bookings_bp
    from .routes.payments import payments_bp
    from .routes.reviews import reviews_bp
    from .routes.messages import messages_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(properties_bp, url_prefix='/api/properties')
    app.register_blueprint(bookings_bp, url_prefix='/api/bookings')
    app.register_blueprint(payments_bp, url_prefix='/api/payments')
    app.register_blueprint(reviews_bp, url_prefix='/api/reviews')
    app.register_blueprint(messages_bp, url_prefix='/api/messages')

    # Import models to ensure they're registered
    from .models import user, property, booking, payment, review, message

    # Import socket events
    from . import socket_events

    from .exceptions import APIError
    from .utils.helpers import create_error_response

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return create_error_response('Token has expired', 401)

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return create_error_response('Invalid token', 401)

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return create_error_response('Authentication required', 401)

    # Error handlers
    @app.errorhandler(APIError)
    def api_error(error):
        return create_error_response(error.message, error.status_code, error.errors)

    @app.errorhandler(404)
    def not_found(error):
        return create_error_response('Resource not found', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return create_error_response('Method not allowed', 405)

    @app.errorhandler(429)
    def rate_limit_exceeded(error):
        return create_error_response('Rate limit exceeded', 429)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception('Unhandled error: %s', error)
        return create_error_response('Internal server error', 500)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'message': 'StayHub API is running'}

    return app
