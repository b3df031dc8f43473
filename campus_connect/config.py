import os

from dotenv import load_dotenv

# Automatically ingest local environment settings so developers can keep
# per-machine values (database path, secret key) in a .env file ignored by git.
BASE_DIR = os.path.abspath(os.path.dirname(__file__))
ENV_PATH = os.path.join(BASE_DIR, '..', '.env')
load_dotenv(ENV_PATH)


class Config:
    """Application configuration"""

    # Secret key for Flask internals (signed cookies, flashes)
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database configuration
    BASE_DIR = BASE_DIR
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or os.path.join(BASE_DIR, '..', 'campus_connect.db')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Identity is asserted by the upstream authentication provider
    USER_ID_HEADER = os.environ.get('USER_ID_HEADER', 'X-User-Id')

    # CSRF protection; the header-authenticated API blueprints are exempted
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = None

    # Room booking grid used by the time-slot view (24h clock)
    BOOKING_DAY_START_HOUR = 8
    BOOKING_DAY_END_HOUR = 17
    BOOKING_SLOT_MINUTES = 60

    # Approving a booking re-checks it against bookings approved meanwhile
    REVALIDATE_ON_APPROVAL = True

    # Application settings
    BOOKINGS_PER_PAGE = 10
    COLLEGE_UNIQUE_ID_LENGTH = 8
    CLASS_UNIQUE_CODE_LENGTH = 6


class TestingConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    DEBUG = False
    # In prod, rely on env vars strictly
    SECRET_KEY = os.environ.get('SECRET_KEY')
