import logging
from typing import Any, Dict, Optional

import structlog

from .config_manager import LoggingConfig, setup_logging

# Event keys whose values never reach a log line
_SECRET_MARKERS = ("password", "token", "secret")


def redact_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    for key in event_dict:
        if any(marker in key.lower() for marker in _SECRET_MARKERS):
            event_dict[key] = "***"
    return event_dict


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Install stdlib handlers from ``config`` and route structlog through them."""
    config = config or LoggingConfig()
    setup_logging(config)

    renderer = (
        structlog.processors.JSONRenderer()
        if config.json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.getLogger(__name__).debug(
        f"structlog configured: renderer={type(renderer).__name__}"
    )
