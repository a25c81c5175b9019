"""Application configuration."""
import logging
import os


def _flag(name, default="false"):
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    DATABASE_URL = os.environ.get("SEAT_ALLOCATOR_DATABASE_URL", "sqlite:///./seat_allocator.db")
    LOG_LEVEL = os.environ.get("SEAT_ALLOCATOR_LOG_LEVEL", "INFO").upper()
    ECHO_SQL = _flag("SEAT_ALLOCATOR_ECHO_SQL")


def configure_logging(level=None):
    logging.basicConfig(
        level = level or Config.LOG_LEVEL,
        format = "%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
