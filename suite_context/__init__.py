"""Ephemeral tenant scaffolding (org, quota, user) for integration test suites."""

from .api_client import ApiClient, GenericResource
from .command_runner import CfCommandRunner, CommandResult, CommandRunner
from .config_manager import IntegrationConfig, load_integration_config
from .context_setup import (
    ConfiguredContext,
    ContextState,
    QuotaDefinition,
    SuiteContext,
    new_context,
)
from .exceptions import (
    ApiRequestError,
    CommandExecutionError,
    CommandTimeoutError,
    ConfigurationError,
    InvalidConfigurationError,
    InvalidContextStateError,
    MissingConfigurationError,
    PayloadSerializationError,
    SuiteContextError,
)
from .user_context import UserContext, with_identity

__version__ = "0.1.0"

__all__ = [
    "ApiClient",
    "ApiRequestError",
    "CfCommandRunner",
    "CommandExecutionError",
    "CommandResult",
    "CommandRunner",
    "CommandTimeoutError",
    "ConfigurationError",
    "ConfiguredContext",
    "ContextState",
    "GenericResource",
    "IntegrationConfig",
    "InvalidConfigurationError",
    "InvalidContextStateError",
    "MissingConfigurationError",
    "PayloadSerializationError",
    "QuotaDefinition",
    "SuiteContext",
    "SuiteContextError",
    "UserContext",
    "load_integration_config",
    "new_context",
    "with_identity",
]
