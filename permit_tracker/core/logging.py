"""
Logging setup
"""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at application startup"""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("permit_tracker").setLevel(level.upper())
