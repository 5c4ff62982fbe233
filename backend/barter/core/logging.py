import logging

from barter.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """Install the root handler once, using the configured level and format."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=settings.log_format)
    logging.getLogger("barter").setLevel(level)
