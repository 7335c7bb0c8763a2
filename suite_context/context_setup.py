"""
Per-run tenant scaffolding for integration suites.

A ConfiguredContext generates unique names for one test run (scoped to the
parallel shard and a millisecond timestamp), creates the regular user, quota
definition and organization as admin in ``setup()``, and removes them again
in ``teardown()``.
"""

import secrets
from datetime import datetime
from enum import Enum
from typing import Callable, ContextManager, Optional, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .api_client import ApiClient
from .command_runner import CfCommandRunner, CommandRunner
from .config_manager import IntegrationConfig
from .exceptions import InvalidContextStateError, PayloadSerializationError
from .timeout_config import Timeouts
from .user_context import UserContext, with_identity

logger = structlog.get_logger(__name__)

QUOTA_DEFINITIONS_PATH = "/v2/quota_definitions"


class QuotaDefinition(BaseModel):
    """
    Resource-limit policy attached to the test organization.

    Fields:
        name: Quota definition name.
        non_basic_services_allowed: Whether paid service plans may be used.
        total_services: Maximum service instances.
        total_routes: Maximum routes.
        memory_limit: Memory limit in MB.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    non_basic_services_allowed: bool = True
    total_services: int = Field(100, ge=0)
    total_routes: int = Field(1000, ge=0)
    memory_limit: int = Field(10240, ge=0)

    @classmethod
    def build(cls, name: str, **limits: object) -> "QuotaDefinition":
        try:
            return cls(name=name, **limits)
        except ValidationError as e:
            raise PayloadSerializationError(
                f"Invalid quota definition '{name}'",
                payload_type=cls.__name__,
                cause=e,
            ) from e

    def to_json(self) -> str:
        try:
            return self.model_dump_json()
        except ValueError as e:
            raise PayloadSerializationError(
                f"Cannot encode quota definition '{self.name}'",
                payload_type=type(self).__name__,
                cause=e,
            ) from e


class ContextState(Enum):
    UNINITIALIZED = "uninitialized"
    SET_UP = "set_up"
    TORN_DOWN = "torn_down"


class SuiteContext(Protocol):
    """What a suite needs from its tenant fixture."""

    def setup(self) -> None: ...

    def teardown(self) -> None: ...

    def admin_user_context(self) -> UserContext: ...

    def regular_user_context(self) -> UserContext: ...

    def scaled_timeout(self, timeout: float) -> float: ...


def time_tag(moment: datetime) -> str:
    """Format ``moment`` as ``2026_10_19-14h02m07.123s``."""
    return f"{moment:%Y_%m_%d-%Hh%Mm%S}.{moment.microsecond // 1000:03d}s"


class ConfiguredContext:
    """
    Tenant scaffolding for one test run on one shard.

    Attributes:
        organization_name, space_name, quota_definition_name: Generated names
        quota_definition_guid: Set by ``setup()`` from the create response
        regular_user_username, regular_user_password: Generated credentials
        persistent: Keep the org and quota on teardown
        state: Lifecycle position
    """

    def __init__(
        self,
        config: IntegrationConfig,
        prefix: str,
        shard_index: int,
        *,
        runner: Optional[CommandRunner] = None,
        api_client: Optional[ApiClient] = None,
        persistent: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            config: Endpoint, admin credentials and timeout scale
            prefix: Leading part of every generated name
            shard_index: Parallel worker index of this run
            runner: Command runner; a CfCommandRunner for ``config.cf_binary`` if None
            api_client: API client; one with a scaled HTTP timeout if None
            persistent: Keep the org and quota on teardown
            clock: Source of the timestamp embedded in names
        """
        self.config = config
        self.runner: CommandRunner = runner or CfCommandRunner(config.cf_binary)
        self.api_client = api_client or ApiClient(
            timeout=self.scaled_timeout(Timeouts.HTTP)
        )
        self.persistent = persistent

        tag = f"{shard_index}-{time_tag(clock())}"
        self.quota_definition_name = f"{prefix}-QUOTA-{tag}"
        self.organization_name = f"{prefix}-ORG-{tag}"
        self.space_name = f"{prefix}-SPACE-{tag}"
        self.regular_user_username = f"{prefix}-USER-{tag}"
        self.regular_user_password = secrets.token_urlsafe(16)

        self.quota_definition_guid: Optional[str] = None
        self.state = ContextState.UNINITIALIZED

    def scaled_timeout(self, timeout: float) -> float:
        return timeout * self.config.timeout_scale

    def admin_user_context(self) -> UserContext:
        return UserContext(
            api_endpoint=self.config.api_endpoint,
            username=self.config.admin_user,
            password=self.config.admin_password,
            skip_ssl_validation=self.config.skip_ssl_validation,
        )

    def regular_user_context(self) -> UserContext:
        return UserContext(
            api_endpoint=self.config.api_endpoint,
            username=self.regular_user_username,
            password=self.regular_user_password,
            org=self.organization_name,
            space=self.space_name,
            skip_ssl_validation=self.config.skip_ssl_validation,
        )

    def as_user(self, user: UserContext) -> ContextManager[UserContext]:
        """Scope this context's runner and API client to ``user``."""
        return with_identity(
            user,
            self.runner,
            self.api_client,
            timeout=self.scaled_timeout(Timeouts.SHORT),
        )

    def setup(self) -> None:
        """Create user, quota definition and organization as admin.

        Fails fast: the first failing step raises and nothing after it runs.
        """
        if self.state is not ContextState.UNINITIALIZED:
            raise InvalidContextStateError(
                "setup() can only run once", self.state.value, "setup"
            )

        log = logger.bind(org=self.organization_name, quota=self.quota_definition_name)
        with self.as_user(self.admin_user_context()):
            short_timeout = self.scaled_timeout(Timeouts.SHORT)
            self.runner.run(
                "create-user",
                self.regular_user_username,
                self.regular_user_password,
                timeout=short_timeout,
                sensitive=[self.regular_user_password],
            )
            log.info("user_created", user=self.regular_user_username)

            definition = QuotaDefinition.build(
                self.quota_definition_name,
                total_services=100,
                total_routes=1000,
                memory_limit=10240,
                non_basic_services_allowed=True,
            )
            resource = self.api_client.create_resource(
                QUOTA_DEFINITIONS_PATH, definition.to_json()
            )
            self.quota_definition_guid = resource.metadata.guid
            log.info("quota_created", guid=self.quota_definition_guid)

            long_timeout = self.scaled_timeout(Timeouts.LONG)
            self.runner.run("create-org", self.organization_name, timeout=long_timeout)
            self.runner.run(
                "set-quota",
                self.organization_name,
                self.quota_definition_name,
                timeout=long_timeout,
            )
            log.info("org_created")

        self.state = ContextState.SET_UP

    def teardown(self) -> None:
        """Delete the regular user and, unless persistent, the org and quota."""
        if self.state is ContextState.TORN_DOWN:
            raise InvalidContextStateError(
                "teardown() already ran", self.state.value, "teardown"
            )

        log = logger.bind(org=self.organization_name, persistent=self.persistent)
        with self.as_user(self.admin_user_context()):
            long_timeout = self.scaled_timeout(Timeouts.LONG)
            self.runner.run(
                "delete-user", "-f", self.regular_user_username, timeout=long_timeout
            )
            log.info("user_deleted", user=self.regular_user_username)

            if not self.persistent:
                self.runner.run(
                    "delete-org", "-f", self.organization_name, timeout=long_timeout
                )
                log.info("org_deleted")

                if self.quota_definition_guid:
                    self.api_client.delete(
                        f"{QUOTA_DEFINITIONS_PATH}/{self.quota_definition_guid}?recursive=true"
                    )
                    log.info("quota_deleted", guid=self.quota_definition_guid)
                else:
                    log.warning("quota_delete_skipped", reason="no guid recorded")

        self.state = ContextState.TORN_DOWN


def new_context(
    config: IntegrationConfig,
    prefix: str,
    shard_index: int,
    persistent: bool = False,
) -> ConfiguredContext:
    """Build a ConfiguredContext with the default runner and API client."""
    context = ConfiguredContext(config, prefix, shard_index, persistent=persistent)
    logger.info(
        "context_created",
        prefix=prefix,
        shard=shard_index,
        org=context.organization_name,
    )
    return context
