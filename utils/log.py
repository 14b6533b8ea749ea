# utils/log.py
import logging
import os

LOG_FORMAT = '[%(asctime)s] %(levelname)s: %(message)s'

_service_loggers = set()


def get_logger(name, level=None):
    """Named logger with a console handler, configured once per name."""
    logger = logging.getLogger(name)
    logger.setLevel(level or os.getenv('LOG_LEVEL', 'INFO').upper())

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console_handler)

    _service_loggers.add(name)
    return logger


def set_level(level):
    """Apply the app's LOG_LEVEL to every logger made by get_logger()."""
    for name in _service_loggers:
        logging.getLogger(name).setLevel(level)
