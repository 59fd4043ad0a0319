import logging.config

from app.core.config import settings


def setup_logging() -> None:
    """Configure root logging once at application startup"""
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "{levelname} {asctime} {name} {process:d} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "verbose",
            },
        },
        "root": {
            "handlers": ["console"],
            "level": settings.LOG_LEVEL,
        },
        "loggers": {
            "sqlalchemy.engine": {
                "level": "INFO" if settings.DEBUG else "WARNING",
            },
        },
    })
