import logging
import os
from logging.handlers import RotatingFileHandler

import config

LOGGER_NAME = 'social_feed.api'


def setup_api_logger(log_path: str | None = None) -> logging.Logger:
    """Setup and return the application-wide API logger.

    Creates a rotating file handler at `log_path` (defaults to
    LOG_DIR/api.log) plus a console handler.
    """
    if log_path is None:
        os.makedirs(config.LOG_DIR, exist_ok=True)
        log_path = os.path.join(config.LOG_DIR, 'api.log')

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.LOG_LEVEL.upper())

    # avoid adding multiple handlers if called multiple times
    if not logger.handlers:
        formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s')

        handler = RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding='utf-8')
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    return logger


def get_logger(area: str) -> logging.Logger:
    """Child logger for one area of the API, e.g. get_logger('posts')."""
    return logging.getLogger(f'{LOGGER_NAME}.{area}')
