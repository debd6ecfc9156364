import os
from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(__file__), '.env'))

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-prod'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///roomkeeper.db'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Every "now"/"today" is read in this zone, never the server's local time
    TIMEZONE = os.environ.get('TIMEZONE', 'America/New_York')

    # Shared secret for the scheduler hitting /api/cron/*
    CRON_SECRET = os.environ.get('CRON_SECRET')

    NOTIFICATION_WEBHOOK_URL = os.environ.get('NOTIFICATION_WEBHOOK_URL')
    NOTIFICATION_TIMEOUT_SECONDS = float(os.environ.get('NOTIFICATION_TIMEOUT_SECONDS', 5))

    # Booking Rules Defaults
    DEFAULT_GRACE_PERIOD_MINUTES = 15
    CHECK_IN_OPENS_MINUTES_BEFORE = 15
    WALK_IN_ROUNDING_MINUTES = 15
    MIN_AVAILABLE_MINUTES = 15
    MIN_WALK_IN_MINUTES = 15
    MAX_WALK_IN_MINUTES = 120
    DEFAULT_PREFERRED_START = '09:00'
    FORWARD_SCAN_DAYS = 3
    MAX_TIME_SUGGESTIONS = 10
    MAX_VALIDATION_ALTERNATIVES = 5
    MAX_SLOTS_PER_ROOM = 3

class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = 'DEBUG'

class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    TIMEZONE = 'UTC'
    CRON_SECRET = 'test-cron-secret'
    NOTIFICATION_WEBHOOK_URL = 'http://notifications.test/hooks/reservations'

class ProductionConfig(Config):
    DEBUG = False
    # In prod, rely on env vars strictly
