import logging
import sys

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_ROOT = "crm"


def set_log_level(level: str) -> None:
    """Apply a level name (e.g. `INFO`) to every crm logger."""
    logging.getLogger(_ROOT).setLevel(level.upper())


class Logger:
    """Simple logger wrapper with console output."""

    def __init__(self, name: str = __name__):
        if not name.startswith(_ROOT):
            name = f"{_ROOT}.{name}"
        self._logger = logging.getLogger(name)

        root = logging.getLogger(_ROOT)
        if not root.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
            )
            root.addHandler(handler)
            root.setLevel(logging.INFO)

    def info(self, msg: str, *args, **kwargs):
        self._logger.info(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._logger.error(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._logger.warning(msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._logger.debug(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        self._logger.exception(msg, *args, **kwargs)
