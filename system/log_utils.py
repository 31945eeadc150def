# system/log_utils.py
import logging
import os

VERBOSE = 5
logging.addLevelName(VERBOSE, "VERBOSE")

LOGGER_NAME = "dispenser"


def resolve_level(name):
    """Numeric level for a level name; unknown names fall back to INFO."""
    level = logging.getLevelName((name or "").upper())
    return level if isinstance(level, int) else logging.INFO


_logger = logging.getLogger(LOGGER_NAME)

if not _logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    _logger.addHandler(_handler)
    _logger.setLevel(resolve_level(os.environ.get("LOG_LEVEL", "INFO")))


def _format(msg, fields):
    if not fields:
        return str(msg)
    extra = " ".join(f"{k}={v}" for k, v in fields.items())
    return f"{msg} {extra}"


def verbose(msg, **fields):
    _logger.log(VERBOSE, _format(msg, fields))


def debug(msg, **fields):
    _logger.debug(_format(msg, fields))


def info(msg, **fields):
    _logger.info(_format(msg, fields))


def warn(msg, **fields):
    _logger.warning(_format(msg, fields))


def error(msg, **fields):
    _logger.error(_format(msg, fields))
