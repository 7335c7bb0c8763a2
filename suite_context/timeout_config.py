"""
Base timeout configuration for CLI and API operations.

These are the unscaled durations. ConfiguredContext.scaled_timeout multiplies
them by the configured timeout_scale before they reach the command runner.

Environment Variables:
    - SUITE_TIMEOUT_SHORT: Quick commands such as create-user (default: 10s)
    - SUITE_TIMEOUT_LONG: Org creation, quota assignment, deletions (default: 60s)
    - SUITE_TIMEOUT_HTTP: Control-plane API requests (default: 30s)
"""

import logging
import os
from typing import Final

logger = logging.getLogger(__name__)


def _get_timeout(env_var: str, default: float) -> float:
    """Get timeout value from environment variable or use default.

    Args:
        env_var: Environment variable name
        default: Default timeout in seconds

    Returns:
        Timeout value in seconds
    """
    value = os.environ.get(env_var)
    if value is None:
        return default
    try:
        timeout = float(value)
    except ValueError:
        logger.warning(
            f"Invalid timeout value for {env_var}: {value}. "
            f"Must be a number. Using default: {default:g}s"
        )
        return default
    if timeout <= 0:
        logger.warning(
            f"Invalid timeout value for {env_var}: {value}. "
            f"Must be positive. Using default: {default:g}s"
        )
        return default
    return timeout


class Timeouts:
    """Unscaled timeout constants, in seconds."""

    SHORT: Final[float] = _get_timeout("SUITE_TIMEOUT_SHORT", 10)
    LONG: Final[float] = _get_timeout("SUITE_TIMEOUT_LONG", 60)
    HTTP: Final[float] = _get_timeout("SUITE_TIMEOUT_HTTP", 30)
