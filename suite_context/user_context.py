"""
Identity scoping for CLI commands and API requests.

``with_identity`` logs a user in against a private CF_HOME, binds the API
client to that user's token, and undoes all of it when the block exits.
"""

import logging
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from .api_client import ApiClient
from .command_runner import CommandRunner
from .exceptions import CommandExecutionError, SuiteContextError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserContext:
    """
    Read-only view of one identity.

    Attributes:
        api_endpoint: Control-plane API URL
        username: Login name
        password: Login password
        org: Organization to target, if any
        space: Space to target within ``org``, if any
        skip_ssl_validation: Skip TLS verification for CLI and API calls
    """

    api_endpoint: str
    username: str
    password: str = field(repr=False)
    org: Optional[str] = None
    space: Optional[str] = None
    skip_ssl_validation: bool = False

    def api_args(self) -> list[str]:
        args = ["api", self.api_endpoint]
        if self.skip_ssl_validation:
            args.append("--skip-ssl-validation")
        return args

    def target_args(self) -> Optional[list[str]]:
        """``cf target`` arguments, or None when no org is set."""
        if not self.org:
            return None
        args = ["target", "-o", self.org]
        if self.space:
            args += ["-s", self.space]
        return args


def _fetch_token(runner: CommandRunner, timeout: float) -> str:
    result = runner.run("oauth-token", timeout=timeout)
    # Older CLIs print progress lines before the token
    lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    if not lines:
        raise CommandExecutionError(
            "'cf oauth-token' printed no token", command=["cf", "oauth-token"]
        )
    return lines[-1]


@contextmanager
def with_identity(
    user: UserContext,
    runner: CommandRunner,
    api_client: ApiClient,
    timeout: float,
) -> Iterator[UserContext]:
    """
    Act as ``user`` for the duration of the block.

    Commands issued through ``runner`` and requests through ``api_client``
    inside the block run as ``user``. On exit the user is logged out, the
    previous CF_HOME and API binding are restored and the temporary CF_HOME
    is removed, whether or not the block raised.

    Args:
        user: Identity to assume
        runner: Command runner to scope
        api_client: API client to authenticate
        timeout: Timeout for each login/logout command
    """
    cf_home = tempfile.mkdtemp(prefix="cf_home_")
    try:
        with runner.scoped_home(cf_home):
            logger.info(f"Switching identity to {user.username} at {user.api_endpoint}")
            runner.run(*user.api_args(), timeout=timeout)
            try:
                runner.run(
                    "auth",
                    user.username,
                    user.password,
                    timeout=timeout,
                    sensitive=[user.password],
                )
                target = user.target_args()
                if target:
                    runner.run(*target, timeout=timeout)
                token = _fetch_token(runner, timeout)
                with api_client.authenticated(
                    user.api_endpoint, token, verify=not user.skip_ssl_validation
                ):
                    yield user
            finally:
                try:
                    runner.run("logout", timeout=timeout)
                except SuiteContextError as e:
                    logger.warning(f"Logout of {user.username} failed: {e}")
    finally:
        shutil.rmtree(cf_home, ignore_errors=True)
        logger.debug(f"Removed temporary CF_HOME {cf_home}")
