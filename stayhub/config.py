from datetime import timedelta
from decouple import config, Csv


class Config:
    SECRET_KEY = config('SECRET_KEY', default='your-secret-key-here')
    JWT_SECRET_KEY = config('JWT_SECRET_KEY', default='jwt-secret-key-here')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=30)

    LOG_LEVEL = config('LOG_LEVEL', default='INFO')

    # Database
    SQLALCHEMY_DATABASE_URI = config('DATABASE_URL', default='sqlite:///stayhub.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Email configuration
    MAIL_SERVER = config('MAIL_SERVER', default='smtp.gmail.com')
    MAIL_PORT = config('MAIL_PORT', default=587, cast=int)
    MAIL_USE_TLS = config('MAIL_USE_TLS', default=True, cast=bool)
    MAIL_USERNAME = config('MAIL_USERNAME', default='')
    MAIL_PASSWORD = config('MAIL_PASSWORD', default='')
    MAIL_DEFAULT_SENDER = config('MAIL_DEFAULT_SENDER', default='noreply@stayhub.com')
    FRONTEND_URL = config('FRONTEND_URL', default='http://localhost:3000')

    # Redis
    REDIS_URL = config('REDIS_URL', default='redis://localhost:6379/0')
    CACHE_ENABLED = config('CACHE_ENABLED', default=True, cast=bool)
    CACHE_TTL_SECONDS = config('CACHE_TTL_SECONDS', default=300, cast=int)
    NOTIFICATIONS_ENABLED = config('NOTIFICATIONS_ENABLED', default=True, cast=bool)

    # Celery
    CELERY_BROKER_URL = config('CELERY_BROKER_URL', default='redis://localhost:6379/0')
    CELERY_RESULT_BACKEND = config('CELERY_RESULT_BACKEND', default='redis://localhost:6379/0')

    # Stripe
    STRIPE_PUBLISHABLE_KEY = config('STRIPE_PUBLISHABLE_KEY', default='')
    STRIPE_SECRET_KEY = config('STRIPE_SECRET_KEY', default='')
    STRIPE_WEBHOOK_SECRET = config('STRIPE_WEBHOOK_SECRET', default='')
    PAYMENT_CURRENCY = config('PAYMENT_CURRENCY', default='usd')

    # Bookings
    BOOKING_PENDING_TTL_HOURS = config('BOOKING_PENDING_TTL_HOURS', default=24, cast=int)
    BOOKING_MAX_NIGHTS = config('BOOKING_MAX_NIGHTS', default=365, cast=int)

    # Rate limiting
    RATELIMIT_STORAGE_URI = config('RATELIMIT_STORAGE_URI', default='memory://')

    # CORS
    CORS_ORIGINS = config('CORS_ORIGINS', default='http://localhost:3000', cast=Csv())

    # Socket.IO
    SOCKETIO_CORS_ALLOWED_ORIGINS = config('SOCKETIO_CORS_ALLOWED_ORIGINS', default='http://localhost:5173,http://localhost:3000').split(',')


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    CACHE_ENABLED = False
    NOTIFICATIONS_ENABLED = False
    RATELIMIT_ENABLED = False
    MAIL_SUPPRESS_SEND = True
    STRIPE_SECRET_KEY = 'sk_test_dummy'
    STRIPE_WEBHOOK_SECRET = 'whsec_test'


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False
    LOG_LEVEL = config('LOG_LEVEL', default='WARNING')


config_by_name = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig
}
