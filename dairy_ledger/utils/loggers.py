# utils/loggers.py
import logging
import os

LOG_LEVEL_ENV = "DAIRY_LEDGER_LOG_LEVEL"


def get_logger(name="dairy_ledger"):
    """
    Package logger with one stream handler. Level comes from
    DAIRY_LEDGER_LOG_LEVEL (e.g. DEBUG), INFO when unset.
    Child loggers (dairy_ledger.database...) propagate into it.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        level = os.getenv(LOG_LEVEL_ENV, "INFO").upper()
        logger.setLevel(getattr(logging, level, logging.INFO))
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(ch)
    return logger
