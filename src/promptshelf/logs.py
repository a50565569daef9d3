import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = '[%(asctime)s] %(levelname)-8s [%(name)s:%(funcName)s:%(lineno)d] %(message)s'


def _console_level() -> int:
    """PROMPTSHELF_DEBUG wins over PROMPTSHELF_LOG_LEVEL; WARNING otherwise."""
    if os.getenv('PROMPTSHELF_DEBUG', '').lower() in ('1', 'true', 'yes'):
        return logging.DEBUG
    name = os.getenv('PROMPTSHELF_LOG_LEVEL', '').upper()
    return getattr(logging, name, logging.WARNING) if name else logging.WARNING


def log_dir() -> Path:
    env_dir = os.getenv('PROMPTSHELF_LOG_DIR')
    return Path(env_dir) if env_dir else Path.home() / ".local" / "share" / "promptshelf" / "logs"


def setup_logging() -> logging.Logger:
    """Send every promptshelf record to the log file and warnings (by default) to stderr."""
    directory = log_dir()
    directory.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(directory / "promptshelf.log")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, '%Y-%m-%d %H:%M:%S'))
    file_handler.setLevel(logging.DEBUG)

    # stdout is reserved for command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    console_handler.setLevel(_console_level())

    logger = logging.getLogger('promptshelf')
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers:
        handler.close()
    logger.handlers = [file_handler, console_handler]
    logger.propagate = False
    return logger


setup_logging()


def get_logger(name: str = None) -> logging.Logger:
    return logging.getLogger(f'promptshelf.{name}' if name else 'promptshelf')
