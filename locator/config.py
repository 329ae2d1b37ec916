import os


def _default_data_dir() -> str:
    return os.path.join(os.path.expanduser('~'), '.locator')


class Config:
    """Base configuration"""

    ENV = 'default'
    DEBUG = False
    TESTING = False

    DATA_DIR = os.environ.get('LOCATOR_DATA_DIR') or _default_data_dir()
    # Empty string keeps jobs in memory only
    JOBSTORE_URL = os.environ.get('LOCATOR_JOBSTORE_URL')
    # "lat,lon" for desktops without a GPS facade
    FIXED_LOCATION = os.environ.get('LOCATOR_FIXED_LOCATION')
    LOG_LEVEL = os.environ.get('LOCATOR_LOG_LEVEL', 'INFO')
    STORAGE_BACKEND = 'file'

    # Background reporting
    TASK_ID = 'share-location'
    MINIMUM_INTERVAL_SECONDS = 60 * 10
    BACKGROUND_FETCH_ENABLED = True

    # Timeouts
    HTTP_TIMEOUT_SECONDS = 15
    FIX_TIMEOUT_SECONDS = 30
    PERMISSION_TIMEOUT_SECONDS = None
    REPORT_DEADLINE_SECONDS = 25

    @classmethod
    def jobstore_url(cls):
        if cls.JOBSTORE_URL is not None:
            return cls.JOBSTORE_URL or None
        return 'sqlite:///' + os.path.join(cls.DATA_DIR, 'jobs.sqlite')

    @classmethod
    def log_dir(cls) -> str:
        return os.path.join(cls.DATA_DIR, 'logs')


class DevelopmentConfig(Config):
    ENV = 'development'
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOCATOR_LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    ENV = 'production'
    DEBUG = False


class TestingConfig(Config):
    ENV = 'testing'
    TESTING = True
    STORAGE_BACKEND = 'memory'
    JOBSTORE_URL = ''
    FIXED_LOCATION = None
    HTTP_TIMEOUT_SECONDS = 1
    FIX_TIMEOUT_SECONDS = 1
    REPORT_DEADLINE_SECONDS = 5


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config(name=None):
    """Return the config class for ``name`` (falls back to ``LOCATOR_ENV``)."""
    name = name or os.environ.get('LOCATOR_ENV', 'default')
    return config.get(name, config['default'])
