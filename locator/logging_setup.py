import logging
import os
from logging.handlers import RotatingFileHandler


FORMAT = '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'


def configure_logging(cfg, logger_name: str = 'locator') -> logging.Logger:
    """Attach rotating file and console handlers to the package logger.

    Safe to call more than once; handlers are only added the first time.
    """
    logger = logging.getLogger(logger_name)
    level = logging.getLevelName(str(cfg.LOG_LEVEL).upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    if getattr(logger, '_locator_configured', False):
        return logger

    formatter = logging.Formatter(FORMAT)

    if not cfg.TESTING:
        log_dir = cfg.log_dir()
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, 'locator.log'), maxBytes=10 * 1024 * 1024, backupCount=5
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if cfg.DEBUG:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger._locator_configured = True
    return logger
