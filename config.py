"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    TESTING = False

    # Session Configuration (Production-safe defaults)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'stockledger')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'stockledger')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'stockledger')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'
    SQLALCHEMY_POOL_SIZE = int(os.getenv('SQLALCHEMY_POOL_SIZE', '10'))
    SQLALCHEMY_MAX_OVERFLOW = int(os.getenv('SQLALCHEMY_MAX_OVERFLOW', '20'))

    # Cost basis: 'direct' (per-batch pack cost) or 'pooled' (lot weighted average).
    # One method per deployment; never mix them over the same records.
    COST_BASIS_METHOD = os.getenv('COST_BASIS_METHOD', 'direct').lower()

    # Sale commit retry policy (optimistic concurrency on inventory batches)
    SALE_COMMIT_MAX_ATTEMPTS = int(os.getenv('SALE_COMMIT_MAX_ATTEMPTS', '5'))
    SALE_COMMIT_BACKOFF_BASE = float(os.getenv('SALE_COMMIT_BACKOFF_BASE', '0.05'))  # seconds
    SALE_COMMIT_BACKOFF_MAX = float(os.getenv('SALE_COMMIT_BACKOFF_MAX', '1.0'))

    # Stock alerts
    EXPIRING_STOCK_DAYS = int(os.getenv('EXPIRING_STOCK_DAYS', '30'))


class TestConfig(Config):
    """Configuration used by the test-suite."""

    TESTING = True
    DEBUG = False
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite:///stockledger_test.db')
    SQLALCHEMY_ECHO = False
    COST_BASIS_METHOD = 'direct'
    SALE_COMMIT_BACKOFF_BASE = 0.0
    SALE_COMMIT_BACKOFF_MAX = 0.0
