import logging
import os

from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv
from flask import Flask

__version__ = '1.0.0'

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _load_env_files(env):
    """Load ``.env.<env>`` and then ``.env`` (which wins) from the project root."""
    env_file = os.path.join(_PROJECT_ROOT, f'.env.{env}')
    if os.path.exists(env_file):
        load_dotenv(env_file)

    dotenv_path = os.path.join(_PROJECT_ROOT, '.env')
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path, override=True)


def create_app(config_name=None, sink=None, fetcher=None):
    """Application factory for the contest notifier service.

    Args:
        config_name: 'development', 'production' or 'testing'. Defaults to
                     the FLASK_ENV environment variable or 'development'.
        sink: Delivery sink override; built from config when omitted.
        fetcher: CascadingFetcher override, mainly for tests.

    Returns:
        Configured Flask application instance.
    """
    env = config_name or os.environ.get('FLASK_ENV', 'development')
    if env != 'testing':
        _load_env_files(env)

    # Imported after the env files so class-level settings see their values.
    from contestbot.config import config_map
    from contestbot.extensions import reminders
    from contestbot.services.contest_service import ContestService

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    config_class = config_map.get(config_name, config_map['development'])
    app.config.from_object(config_class)
    # Keep payload keys in the order the views build them.
    app.json.sort_keys = False

    _configure_logging(app)

    reminders.init_app(app, sink=sink)
    service = ContestService.from_config(app.config, reminders, fetcher=fetcher)
    app.extensions['contest_service'] = service

    _register_blueprints(app)

    if app.config.get('SCHEDULER_ENABLED'):
        _init_scheduler(app)

    app.logger.info(
        f"Contest notifier {__version__} ready: platforms="
        f"{','.join(p.value for p in service.platforms)}, days_ahead={service.days_ahead:g}"
    )
    return app


def _configure_logging(app):
    """Set up RotatingFileHandler on the root logger."""
    max_bytes = app.config.get('LOG_FILE_MAX_BYTES', 0)
    if not max_bytes:
        return

    log_dir = os.path.join(app.instance_path, 'logs')
    os.makedirs(log_dir, exist_ok=True)

    log_file = os.path.join(log_dir, 'app.log')
    handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=app.config.get('LOG_FILE_BACKUP_COUNT', 3),
    )
    handler.setFormatter(logging.Formatter(
        app.config.get('LOG_FORMAT', '%(asctime)s [%(levelname)s] %(name)s: %(message)s')
    ))
    handler.setLevel(logging.DEBUG)

    root = logging.getLogger()
    root.addHandler(handler)
    if root.level == logging.WARNING:
        root.setLevel(logging.INFO)


def _register_blueprints(app):
    """Register all application blueprints."""
    from contestbot.views.health import health_bp
    from contestbot.views.api import api_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(api_bp)


def _init_scheduler(app):
    """Initialize and start APScheduler for refresh and reminder jobs."""
    from contestbot.tasks.scheduler import init_scheduler
    init_scheduler(app)
