"""Logging setup for Gather.

Application logs go through the ``gather`` logger tree. Metrics and
membership lifecycle events are single JSON lines written by
``gather.core.observability.metrics``; that logger always gets a bare
``%(message)s`` handler so the lines stay machine-parseable, whether or not
a YAML config was found.
"""

import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import Optional

import yaml

APP_LOGGER = "gather"
METRICS_LOGGER = "gather.core.observability.metrics"
CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


def resolve_config_path(
    config_path: Optional[str] = None, env_key: str = "LOG_CFG"
) -> Path:
    """Pick the logging config file.

    ``$LOG_CFG`` wins over ``config_path``; without either, use
    ``config/logging.{ENVIRONMENT}.yaml`` when present, else
    ``config/logging.yaml``.
    """
    explicit = os.getenv(env_key, config_path)
    if explicit is not None:
        return Path(explicit)

    environment = os.getenv("ENVIRONMENT", "development").lower()
    env_config = CONFIG_DIR / f"logging.{environment}.yaml"
    return env_config if env_config.exists() else CONFIG_DIR / "logging.yaml"


def configure_metrics_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach the bare JSON handler to the metrics logger if it has none."""
    metrics_logger = logging.getLogger(METRICS_LOGGER)
    if not metrics_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
        metrics_logger.addHandler(handler)
        metrics_logger.setLevel(level)
    # Metric lines must not be re-emitted through the app formatter
    metrics_logger.propagate = False
    return metrics_logger


def setup_logging(
    config_path: Optional[str] = None,
    default_level: int = logging.INFO,
    env_key: str = "LOG_CFG",
) -> None:
    """Configure logging from YAML, falling back to basicConfig.

    Args:
        config_path: Path to logging config file
        default_level: Level used when no usable config file exists
        env_key: Environment variable name for config path override
    """
    path = resolve_config_path(config_path, env_key)
    app_logger = logging.getLogger(APP_LOGGER)

    if not path.exists():
        logging.basicConfig(level=default_level)
        app_logger.warning(f"Logging config file not found at {path}, using basic config")
    else:
        try:
            with open(path, "r") as f:
                logging.config.dictConfig(yaml.safe_load(f))
            app_logger.info(f"Logging configured from {path}")
        except Exception as e:
            logging.basicConfig(level=default_level)
            app_logger.warning(f"Failed to load logging config {path}, using basic config: {e}")

    configure_metrics_logging(default_level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (typically ``get_logger(__name__)``)."""
    return logging.getLogger(name)


def configure_sqlalchemy_logging(echo: bool = False, echo_pool: bool = False) -> None:
    """Set SQLAlchemy engine and pool log levels."""
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if echo else logging.WARNING
    )
    logging.getLogger("sqlalchemy.pool").setLevel(
        logging.INFO if echo_pool else logging.WARNING
    )
