"""
pytest integration.

Registered through the ``pytest11`` entry point. The ``suite_context``
fixture provisions one tenant per session (per xdist worker) and tears it
down when the session ends.
"""

import logging
import os
from typing import Callable, ContextManager, Iterator, Optional

import pytest

from .config_manager import IntegrationConfig, LoggingConfig, load_integration_config
from .context_setup import ConfiguredContext, new_context
from .logging_config import configure_logging
from .user_context import UserContext

logger = logging.getLogger(__name__)


def shard_index_from_env(worker: Optional[str] = None) -> int:
    """Map an xdist worker id (``gw0``, ``gw1``...) to a 1-based shard index."""
    worker = worker if worker is not None else os.environ.get("PYTEST_XDIST_WORKER", "")
    if worker.startswith("gw") and worker[2:].isdigit():
        return int(worker[2:]) + 1
    return 1


def pytest_addoption(parser):
    group = parser.getgroup("suite-context", "tenant scaffolding for integration suites")
    group.addoption(
        "--suite-prefix",
        action="store",
        default="CATS",
        help="Prefix for generated org, space, quota and user names",
    )
    group.addoption(
        "--suite-persistent",
        action="store_true",
        default=False,
        help="Keep the generated org and quota after the session",
    )
    group.addoption(
        "--suite-config",
        action="store",
        default=None,
        help="Path to the integration config JSON (defaults to $CONFIG)",
    )


@pytest.fixture(scope="session")
def integration_config(request) -> IntegrationConfig:
    """Integration configuration loaded from --suite-config, $CONFIG and CF_* variables."""
    configure_logging(LoggingConfig())
    return load_integration_config(request.config.getoption("--suite-config"))


def build_context(config: IntegrationConfig, pytest_config) -> ConfiguredContext:
    """Create the session context from command-line options and the xdist worker id."""
    return new_context(
        config,
        prefix=pytest_config.getoption("--suite-prefix"),
        shard_index=shard_index_from_env(),
        persistent=pytest_config.getoption("--suite-persistent"),
    )


@pytest.fixture(scope="session")
def suite_context(request, integration_config) -> Iterator[ConfiguredContext]:
    """Set up tenant scaffolding for the session and tear it down afterwards."""
    context = build_context(integration_config, request.config)
    context.setup()
    yield context
    logger.info(f"Tearing down tenant scaffolding {context.organization_name}")
    context.teardown()


@pytest.fixture
def user_scope(
    suite_context,
) -> Callable[[UserContext], ContextManager[UserContext]]:
    """Return a callable that opens an identity scope on the session context."""
    return suite_context.as_user
