import logging
import os

from rich.logging import RichHandler

LOG_FILE_ENV = "COMMERCEHUB_LOG_FILE"


class PaddedNameFormatter(logging.Formatter):
    """Pads logger names to the widest name seen so far, so messages line up."""

    width = 14

    def format(self, record):
        PaddedNameFormatter.width = max(PaddedNameFormatter.width, len(record.name))
        record.padded_name = record.name.ljust(PaddedNameFormatter.width)
        return super().format(record)


def _log_level() -> int:
    return logging.DEBUG if os.getenv("DEBUG") else logging.INFO


def get_logger(name=None) -> logging.Logger:
    """
    Return a logger writing through RichHandler.

    Handlers are attached once per name. Set COMMERCEHUB_LOG_FILE to also
    write plain lines to a file, which keeps logs readable while the
    Textual UI owns the terminal.
    """
    logger = logging.getLogger(name or "commercehub")
    level = _log_level()
    logger.setLevel(level)

    if logger.handlers:
        return logger

    console_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        log_time_format="[%X]",
    )
    console_handler.setFormatter(PaddedNameFormatter("[%(padded_name)s]  %(message)s"))
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    log_file = os.getenv(LOG_FILE_ENV)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
        )
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    logger.propagate = False
    logger.debug("Logger %r initialized.", logger.name)
    return logger
