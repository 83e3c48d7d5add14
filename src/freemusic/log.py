import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "freemusic"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Attach a stderr handler to the ``freemusic`` logger.

    Only warnings are shown unless *verbose* is set.

    Safe to call repeatedly; earlier handlers are closed and replaced.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    handler = RichHandler(console=Console(stderr=True), show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger
