from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

import pytest

from suite_context.api_client import GenericResource
from suite_context.command_runner import CommandResult
from suite_context.config_manager import IntegrationConfig
from suite_context.context_setup import ConfiguredContext
from suite_context.exceptions import CommandExecutionError

pytest_plugins = ["pytester"]

# ============================================================================
# Collaborator fakes
# ============================================================================


class FakeRunner:
    """Records every cf invocation together with the CF_HOME it ran under."""

    def __init__(
        self,
        failures: Optional[Dict[str, Exception]] = None,
        journal: Optional[list] = None,
    ):
        self.calls: List[Dict[str, Any]] = []
        self.journal = journal if journal is not None else []
        self.cf_home: Optional[str] = None
        self.failures = failures or {}
        self.identity: Optional[str] = None

    @contextmanager
    def scoped_home(self, path: str) -> Iterator[None]:
        previous = self.cf_home
        self.cf_home = path
        try:
            yield
        finally:
            self.cf_home = previous

    def run(
        self, *args: str, timeout: float, sensitive: Iterable[str] = ()
    ) -> CommandResult:
        if args[0] == "auth":
            self.identity = args[1]
        self.calls.append(
            {
                "args": args,
                "timeout": timeout,
                "cf_home": self.cf_home,
                "identity": self.identity,
                "sensitive": tuple(sensitive),
            }
        )
        self.journal.append(("cf", args[0], self.identity))
        if args[0] == "logout":
            self.identity = None
        if args[0] in self.failures:
            raise self.failures[args[0]]
        stdout = "bearer fake-token\n" if args[0] == "oauth-token" else "OK\n"
        return CommandResult(args=args, exit_code=0, stdout=stdout, stderr="")

    def commands(self, *names: str) -> List[tuple]:
        """Args of recorded calls, optionally limited to the given subcommands."""
        return [c["args"] for c in self.calls if not names or c["args"][0] in names]


class FakeApiClient:
    """Stands in for ApiClient; tracks whether an identity is bound."""

    def __init__(self, guid: str = "quota-guid-123", failures=None, journal=None):
        self.journal = journal if journal is not None else []
        self.requests: List[Dict[str, Any]] = []
        self.bound: Optional[Dict[str, Any]] = None
        self.guid = guid
        self.failures = failures or {}

    @contextmanager
    def authenticated(self, endpoint: str, token: str, verify: bool = True):
        previous = self.bound
        self.bound = {"endpoint": endpoint, "token": token, "verify": verify}
        try:
            yield self
        finally:
            self.bound = previous

    def _record(self, method, path, payload):
        self.requests.append(
            {"method": method, "path": path, "payload": payload, "bound": self.bound}
        )
        self.journal.append(("api", method, path))
        if method in self.failures:
            raise self.failures[method]

    def create_resource(self, path, payload):
        self._record("POST", path, payload)
        return GenericResource.model_validate({"metadata": {"guid": self.guid}})

    def delete(self, path):
        self._record("DELETE", path, None)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def make_runner():
    """Factory for FakeRunner instances with their own journal and failures."""
    return FakeRunner


@pytest.fixture
def make_api():
    """Factory for FakeApiClient instances."""
    return FakeApiClient


@pytest.fixture
def cf_config() -> IntegrationConfig:
    return IntegrationConfig(
        api_endpoint="https://api.example.com",
        admin_user="admin",
        admin_password="admin-secret",
        skip_ssl_validation=True,
        timeout_scale=1.0,
    )


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2026, 10, 19, 14, 2, 7, 123456)


@pytest.fixture
def journal() -> list:
    return []


@pytest.fixture
def fake_runner(journal) -> FakeRunner:
    return FakeRunner(journal=journal)


@pytest.fixture
def fake_api(journal) -> FakeApiClient:
    return FakeApiClient(journal=journal)


@pytest.fixture
def context(cf_config, fake_runner, fake_api, fixed_clock) -> ConfiguredContext:
    return ConfiguredContext(
        cf_config,
        "SMOKE",
        1,
        runner=fake_runner,
        api_client=fake_api,
        clock=fixed_clock,
    )


@pytest.fixture
def command_failure():
    def _make(name: str, exit_code: int = 1) -> CommandExecutionError:
        return CommandExecutionError(
            f"'cf {name}' exited with code {exit_code}",
            command=["cf", name],
            exit_code=exit_code,
        )

    return _make
