"""
Configuration Management for the suite context fixture

Loads the integration configuration (API endpoint, admin credentials, TLS
flag, timeout scale) from a JSON file named by the CONFIG environment
variable, with CF_* environment overrides, and sets up logging.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import colorlog
from dotenv import find_dotenv, load_dotenv

from .exceptions import InvalidConfigurationError, MissingConfigurationError

logger = logging.getLogger(__name__)

# JSON key -> environment override
_ENV_OVERRIDES = {
    "api": "CF_API",
    "admin_user": "CF_ADMIN_USER",
    "admin_password": "CF_ADMIN_PASSWORD",
    "skip_ssl_validation": "CF_SKIP_SSL_VALIDATION",
    "timeout_scale": "CF_TIMEOUT_SCALE",
    "cf_binary": "CF_BINARY",
}

_TRUE_VALUES = {"true", "1", "yes", "on"}

# Attribute set on handlers installed by setup_logging()
_OWNED_MARK = "_suite_context_handler"


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in {"false", "0", "no", "off", ""}:
            return False
    raise InvalidConfigurationError(
        f"Expected a boolean for {key}, got {value!r}", config_key=key
    )


def _parse_scale(value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidConfigurationError(
            f"Expected a number for timeout_scale, got {value!r}",
            config_key="timeout_scale",
        )
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(
            f"Expected a number for timeout_scale, got {value!r}",
            config_key="timeout_scale",
            cause=e,
        ) from e


@dataclass
class IntegrationConfig:
    """Connection settings for the platform under test."""

    api_endpoint: str
    admin_user: str
    admin_password: str
    skip_ssl_validation: bool = False
    timeout_scale: float = 1.0
    cf_binary: str = "cf"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        missing = [
            key
            for key, value in (
                ("api", self.api_endpoint),
                ("admin_user", self.admin_user),
                ("admin_password", self.admin_password),
            )
            if not value
        ]
        if missing:
            raise MissingConfigurationError(
                "Integration configuration is incomplete", missing_keys=missing
            )
        if not self.cf_binary:
            raise InvalidConfigurationError(
                "cf_binary must not be empty", config_key="cf_binary"
            )
        if self.timeout_scale <= 0:
            logger.warning(
                f"Non-positive timeout_scale {self.timeout_scale}, using 1.0"
            )
            self.timeout_scale = 1.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging (without the admin password)."""
        return {
            "api": self.api_endpoint,
            "admin_user": self.admin_user,
            "skip_ssl_validation": self.skip_ssl_validation,
            "timeout_scale": self.timeout_scale,
            "cf_binary": self.cf_binary,
        }


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise InvalidConfigurationError(
            f"Cannot read configuration file {path}", cause=e
        ) from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidConfigurationError(
            f"Configuration file {path} is not valid JSON", cause=e
        ) from e
    if not isinstance(data, dict):
        raise InvalidConfigurationError(
            f"Configuration file {path} must contain a JSON object"
        )
    return data


def load_integration_config(
    path: Optional[Union[str, Path]] = None,
) -> IntegrationConfig:
    """
    Load the integration configuration.

    Values come from the JSON file at ``path`` (or the file named by the
    CONFIG environment variable), then CF_* environment variables override
    individual keys. A ``.env`` file in the working directory is loaded first.

    Raises:
        MissingConfigurationError: endpoint or admin credentials not set
        InvalidConfigurationError: unreadable file or malformed values
    """
    load_dotenv(find_dotenv(usecwd=True))

    config_path = path or os.environ.get("CONFIG")
    data: Dict[str, Any] = {}
    if config_path:
        data = _read_config_file(Path(config_path))
        logger.debug(f"Loaded integration config from {config_path}")

    for key, env_var in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[key] = value

    config = IntegrationConfig(
        api_endpoint=str(data.get("api", "") or ""),
        admin_user=str(data.get("admin_user", "") or ""),
        admin_password=str(data.get("admin_password", "") or ""),
        skip_ssl_validation=_parse_bool(
            data.get("skip_ssl_validation", False), "skip_ssl_validation"
        ),
        timeout_scale=_parse_scale(data.get("timeout_scale", 1.0)),
        cf_binary=str(data.get("cf_binary", "cf") or ""),
    )
    logger.info(f"Integration config: {config.to_dict()}")
    return config


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(log_color)s%(levelname)s:%(name)s:%(message)s"
        )
    )
    file_output: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))
    json_output: bool = field(
        default_factory=lambda: os.getenv("LOG_JSON", "false").lower() == "true"
    )

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        self.level = self.level.upper()

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        return int(getattr(logging, self.level))


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup logging configuration based on config.

    Handlers installed by an earlier call are replaced. Handlers owned by
    someone else (pytest's capture handlers, an application's own setup)
    are left alone, and the console handler is only added when the root
    logger has none of those.
    """
    root_logger = logging.getLogger()
    for handler in [h for h in root_logger.handlers if getattr(h, _OWNED_MARK, False)]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(config.get_log_level())

    handlers: List[logging.Handler] = []
    if not root_logger.handlers:
        console_handler = colorlog.StreamHandler()
        console_handler.setFormatter(colorlog.ColoredFormatter(config.format))
        handlers.append(console_handler)

    if config.file_output:
        file_handler = logging.FileHandler(config.file_output)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s:%(name)s:%(message)s")
        )
        handlers.append(file_handler)

    for handler in handlers:
        setattr(handler, _OWNED_MARK, True)
        root_logger.addHandler(handler)

    # HTTP request lines only at DEBUG
    http_level = logging.DEBUG if config.level == "DEBUG" else logging.WARNING
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(http_level)

    logger.info(
        f"Logging configured: level={config.level}, file={config.file_output or 'console'}"
    )
