"""
Logging configuration for the application
"""
import os
import logging
from logging.handlers import RotatingFileHandler
import re

LOG_FORMAT = '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'


def setup_logging(app):
    """Configure logging for the application"""
    if app.testing:
        # pytest captures app.logger through propagation
        app.logger.setLevel(logging.DEBUG)
        return

    if not os.path.exists('logs'):
        os.mkdir('logs')

    # File handler (both development and production)
    file_handler = RotatingFileHandler(
        'logs/foodshare.log',
        maxBytes=10240000,  # 10MB
        backupCount=10
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler.setLevel(logging.INFO)
    app.logger.addHandler(file_handler)

    silent = os.environ.get('FLASK_SILENT_STARTUP')
    if not app.debug:
        app.logger.setLevel(logging.INFO)
        if not silent:
            app.logger.info('FoodShare startup')
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler.setLevel(logging.DEBUG)
        app.logger.addHandler(console_handler)
        app.logger.setLevel(logging.DEBUG)
        if not silent:
            app.logger.info('FoodShare startup (DEBUG mode)')

    if not silent:
        _log_startup_configuration(app)


def mask_database_uri(db_uri):
    if '@' in db_uri:
        return re.sub(r':([^:@/]+)@', r':****@', db_uri)
    return db_uri


def _log_startup_configuration(app):
    """Log application configuration on startup"""
    app.logger.info(f"Environment: {app.config.get('ENV')}")
    app.logger.info(f"Debug mode: {app.config.get('DEBUG')}")
    app.logger.info(f"Database: {mask_database_uri(app.config['SQLALCHEMY_DATABASE_URI'])}")
    app.logger.info(f"Storage provider: {app.config.get('STORAGE_PROVIDER')}")
    app.logger.info(f"Change feed provider: {app.config.get('CHANGE_FEED_PROVIDER')}")

    env_vars_to_check = ['SECRET_KEY', 'SECURITY_PASSWORD_SALT', 'MAPS_API_KEY', 'MAIL_PASSWORD']
    app.logger.info("Environment variables status:")
    for var in env_vars_to_check:
        value = os.environ.get(var)
        if value:
            masked = value[:4] + '****' + value[-4:] if len(value) > 8 else '****'
            app.logger.info(f"  {var}: {masked} (set)")
        else:
            app.logger.warning(f"  {var}: not set (using default)")
