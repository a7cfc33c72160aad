# connectsphere/core/config.py

import os
from datetime import timedelta


def _int_env(name: str, default=None):
    value = os.getenv(name)
    if value in (None, ''):
        return default
    return int(value)


class Config:
    """Settings shared by every environment."""
    # Signs the access/refresh tokens the API issues after a Firebase sign-in.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=14)

    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')
    # Web API key of the Firebase project, used for the Identity Toolkit REST calls.
    FIREBASE_WEB_API_KEY = os.getenv('FIREBASE_WEB_API_KEY')
    IDENTITY_TIMEOUT_SECONDS = _int_env('IDENTITY_TIMEOUT_SECONDS', 10)

    # Google OAuth client secrets for the server-side authorization-code exchange.
    GOOGLE_CLIENT_SECRETS_PATH = os.getenv('GOOGLE_CLIENT_SECRETS_PATH')
    GOOGLE_REDIRECT_URI = os.getenv('GOOGLE_REDIRECT_URI', 'postmessage')

    # None means one worker per author in the feed fan-out.
    FEED_MAX_WORKERS = _int_env('FEED_MAX_WORKERS')


class DevelopmentConfig(Config):
    """Local development."""
    DEBUG = True


class TestingConfig(Config):
    """Test runs. Firestore and Storage are injected by the test fixtures."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'connectsphere-test-secret')
    FIREBASE_WEB_API_KEY = os.getenv('FIREBASE_WEB_API_KEY', 'test-api-key')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET', 'connectsphere-test.appspot.com')


class ProductionConfig(Config):
    DEBUG = False


# Maps FLASK_ENV values to config classes; used by create_app.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
