import os

from contestbot.scrapers.common import Platform


def _env_flag(name, default):
    return os.environ.get(name, default).lower() in ('true', '1', 'yes')


def _env_platforms(name, default='codeforces,atcoder,codechef'):
    platforms = []
    for part in os.environ.get(name, default).split(','):
        if part.strip():
            platforms.append(Platform.parse(part))
    return tuple(dict.fromkeys(platforms))


def _env_platform_days(defaults=None):
    """Per-platform look-ahead from ``<PLATFORM>_DAYS_AHEAD`` variables."""
    days = dict(defaults or {})
    for platform in Platform:
        value = os.environ.get(f'{platform.name}_DAYS_AHEAD', '').strip()
        if value:
            days[platform] = float(value)
    return days


class BaseConfig:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.environ.get('SECRET_KEY', 'fallback-secret-key-change-me')

    # Aggregation window
    CONTEST_DAYS_AHEAD = float(os.environ.get('CONTEST_DAYS_AHEAD', '7'))
    # AtCoder publishes its schedule early but sparsely; look further ahead.
    PLATFORM_DAYS_AHEAD = _env_platform_days({Platform.ATCODER: 14.0})
    ENABLED_PLATFORMS = _env_platforms('ENABLED_PLATFORMS')

    # Provider credentials (absent -> provider skipped)
    CLIST_USERNAME = os.environ.get('CLIST_USERNAME', '')
    CLIST_API_KEY = os.environ.get('CLIST_API_KEY', '')

    # Source etiquette
    SOURCE_TIMEOUT = float(os.environ.get('SOURCE_TIMEOUT', '10'))
    SOURCE_MAX_ATTEMPTS = int(os.environ.get('SOURCE_MAX_ATTEMPTS', '3'))
    SOURCE_RETRY_BACKOFF = float(os.environ.get('SOURCE_RETRY_BACKOFF', '1.0'))

    # Reminders
    REMINDER_OFFSETS = os.environ.get('REMINDER_OFFSETS', '1440,360,30')
    REMINDER_MISFIRE_GRACE = int(os.environ.get('REMINDER_MISFIRE_GRACE', '60'))
    DAILY_DIGEST_ENABLED = _env_flag('DAILY_DIGEST_ENABLED', 'true')

    # Delivery
    DISCORD_TOKEN = os.environ.get('DISCORD_TOKEN', '')
    DISCORD_CHANNEL_ID = os.environ.get('DISCORD_CHANNEL_ID', '')
    CONTEST_ROLE_ID = os.environ.get('CONTEST_ROLE_ID', '')
    TIMEZONE = os.environ.get('TIMEZONE', 'UTC')

    # Scheduler
    CONTEST_CHECK_SCHEDULE = os.environ.get('CONTEST_CHECK_SCHEDULE', '0 12 * * *')
    SCHEDULER_ENABLED = _env_flag('SCHEDULER_ENABLED', 'false')

    # Logging
    LOG_FILE_MAX_BYTES = int(os.environ.get('LOG_FILE_MAX_BYTES', '0'))
    LOG_FILE_BACKUP_COUNT = int(os.environ.get('LOG_FILE_BACKUP_COUNT', '3'))


class DevelopmentConfig(BaseConfig):
    """Development environment configuration."""

    DEBUG = True
    SCHEDULER_ENABLED = False


class ProductionConfig(BaseConfig):
    """Production environment configuration."""

    DEBUG = False
    SCHEDULER_ENABLED = _env_flag('SCHEDULER_ENABLED', 'true')
    LOG_FILE_MAX_BYTES = int(os.environ.get('LOG_FILE_MAX_BYTES', str(5 * 1024 * 1024)))


class TestingConfig(BaseConfig):
    """Testing environment configuration."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = 'test-secret-key'
    SCHEDULER_ENABLED = False
    SERVER_NAME = 'localhost'
    CLIST_USERNAME = ''
    CLIST_API_KEY = ''
    DISCORD_TOKEN = ''
    DISCORD_CHANNEL_ID = ''
    ENABLED_PLATFORMS = tuple(Platform)
    SOURCE_RETRY_BACKOFF = 0.0
    LOG_FILE_MAX_BYTES = 0


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}
