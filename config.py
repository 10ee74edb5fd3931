import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Base configuration shared across all environments."""
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Business time zone used for promotion dates and days of week.
    # IANA name (e.g. 'America/Santiago'); empty = the server's local time.
    PROMO_TIMEZONE = os.environ.get('PROMO_TIMEZONE', '')

    # Logging
    LOG_DIR   = os.environ.get('LOG_DIR', os.path.join(os.getcwd(), 'logs'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

class DevelopmentConfig(Config):
    """Development environment configuration."""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG').upper()

class ProductionConfig(Config):
    """Production environment configuration."""
    DEBUG = False

    # Ensure SECRET_KEY is set
    SECRET_KEY = os.environ.get('SECRET_KEY')


class TestingConfig(Config):
    """Testing environment configuration."""
    TESTING = True
    PROMO_TIMEZONE = 'America/Santiago'
    LOG_DIR = None   # stdout only

config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
