"""
Logging for the registry API, driven by ``settings``.

``LOG_LEVEL`` sets the root level, ``LOG_FILE`` adds a file handler and
``SQL_ECHO`` turns on SQLAlchemy statement logging.  The service and
store modules only call ``logging.getLogger(__name__)``.
"""

import logging
import logging.config
from pathlib import Path
from typing import Optional

from family_registry.config import settings


def build_logging_config(
    level: str,
    logfile: Optional[str] = None,
    sql_echo: bool = False,
) -> dict:
    level = level.upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "registry",
        },
    }
    if logfile:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "registry",
            "filename": str(Path(logfile).resolve()),
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "registry": {
                "format": f"%(asctime)s [%(levelname)s] {settings.PROJECT_NAME} %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {
            "family_registry": {"level": level},
            "sqlalchemy.engine": {"level": "INFO" if sql_echo else "WARNING"},
        },
        "root": {"level": level, "handlers": list(handlers)},
    }


def setup_logging(
    level: Optional[str] = None,
    logfile: Optional[str] = None,
    sql_echo: Optional[bool] = None,
) -> None:
    """Configure logging from ``settings`` unless overridden.

    Does nothing when the root logger already has handlers, so calling
    ``create_app`` repeatedly (as the tests do) never stacks handlers.
    """
    if logging.getLogger().handlers:
        return

    logging.config.dictConfig(
        build_logging_config(
            level or settings.LOG_LEVEL,
            logfile if logfile is not None else (settings.LOG_FILE or None),
            settings.SQL_ECHO if sql_echo is None else sql_echo,
        )
    )
