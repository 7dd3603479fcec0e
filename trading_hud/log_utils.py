import logging
from logging.handlers import RotatingFileHandler
import os

# The dashboard owns the terminal while it runs, so records go to a rotating
# file by default and only reach the console when explicitly requested.
LOG_FILE = os.getenv("HUD_LOG_FILE", os.path.join("logs", "trading_hud.log"))

_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _truthy(value: str | None) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def _resolve_level() -> int:
    raw = os.getenv("HUD_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else logging.INFO


def setup_logger(name: str) -> logging.Logger:
    """Configure and return a module-level logger.

    Logs are written to a rotating file and, when ``HUD_LOG_CONSOLE`` is
    set, to the console as well. Subsequent calls with the same name
    return the already configured logger.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(_resolve_level())
    logger.propagate = False
    formatter = logging.Formatter(_FORMAT)
    directory = os.path.dirname(LOG_FILE)
    if directory:
        os.makedirs(directory, exist_ok=True)
    # Rotating file handler keeps last 5 logs of ~1MB each
    file_handler = RotatingFileHandler(LOG_FILE, maxBytes=1_000_000, backupCount=5)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
    if _truthy(os.getenv("HUD_LOG_CONSOLE")):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
    return logger


def enable_console_logging() -> None:
    """Attach a console handler to every logger already configured here."""

    os.environ["HUD_LOG_CONSOLE"] = "1"
    formatter = logging.Formatter(_FORMAT)
    for logger in list(logging.Logger.manager.loggerDict.values()):
        if not isinstance(logger, logging.Logger) or not logger.handlers:
            continue
        if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
            continue
        if any(type(h) is logging.StreamHandler for h in logger.handlers):
            continue
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
