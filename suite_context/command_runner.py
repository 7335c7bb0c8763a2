"""Synchronous runner for the administrative ``cf`` CLI.

Each command runs to completion or is killed at its timeout. Failures are
raised, never returned, so a broken step aborts the calling fixture.
"""

import logging
import os
import subprocess
from contextlib import contextmanager
from dataclasses import dataclass
from typing import (
    ContextManager,
    Dict,
    Iterable,
    Iterator,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

from .exceptions import CommandExecutionError, CommandTimeoutError

logger = logging.getLogger(__name__)

MASK = "***"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished command."""

    args: Tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str


class CommandRunner(Protocol):
    """Runs a named CLI command with arguments, subject to a timeout."""

    def run(
        self, *args: str, timeout: float, sensitive: Iterable[str] = ()
    ) -> CommandResult: ...

    def scoped_home(self, path: str) -> ContextManager[None]: ...


def mask_args(args: Sequence[str], sensitive: Iterable[str]) -> list[str]:
    """Replace every argument listed in ``sensitive`` with a mask."""
    hidden = {value for value in sensitive if value}
    return [MASK if arg in hidden else arg for arg in args]


class CfCommandRunner:
    """Runs ``cf`` subcommands with an isolated CF_HOME."""

    def __init__(self, binary: str = "cf", cf_home: Optional[str] = None):
        """
        Args:
            binary: Path or name of the cf executable
            cf_home: CF_HOME for spawned commands; inherits the environment if None
        """
        self.binary = binary
        self.cf_home = cf_home

    def _get_environment(self) -> Dict[str, str]:
        env = os.environ.copy()
        if self.cf_home:
            env["CF_HOME"] = self.cf_home
        return env

    @contextmanager
    def scoped_home(self, path: str) -> Iterator[None]:
        """Point commands at ``path`` as CF_HOME, restoring the previous home on exit."""
        previous = self.cf_home
        self.cf_home = path
        try:
            yield
        finally:
            self.cf_home = previous

    def run(
        self, *args: str, timeout: float, sensitive: Iterable[str] = ()
    ) -> CommandResult:
        """Run ``cf <args>`` and return its result.

        Raises:
            CommandTimeoutError: the command did not finish within ``timeout``
            CommandExecutionError: non-zero exit, or the binary is missing or
                cannot be started
        """
        sensitive = tuple(sensitive)
        cmd = [self.binary, *args]
        shown = mask_args(cmd, sensitive)

        logger.debug(f"Running command: {' '.join(shown)} (timeout={timeout:g}s)")

        try:
            result = subprocess.run(  # nosec B603
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=self._get_environment(),
            )
        except subprocess.TimeoutExpired as e:
            logger.error(f"Command timed out after {timeout:g}s: {' '.join(shown)}")
            raise CommandTimeoutError(
                f"'{' '.join(shown[:2])}' timed out",
                command=shown,
                timeout=timeout,
            ) from e
        except FileNotFoundError as e:
            raise CommandExecutionError(
                f"CLI binary '{self.binary}' not found",
                command=shown,
                recovery_suggestion="Install the cf CLI or set cf_binary/CF_BINARY",
            ) from e
        except OSError as e:
            raise CommandExecutionError(
                f"CLI binary '{self.binary}' could not be started: {e}",
                command=shown,
                cause=e,
                recovery_suggestion="Check that cf_binary/CF_BINARY points to an executable",
            ) from e

        stderr = _redact(result.stderr or "", sensitive)
        if result.returncode != 0:
            logger.error(
                f"Command failed with exit code {result.returncode}: {' '.join(shown)}"
            )
            raise CommandExecutionError(
                f"'{' '.join(shown[:2])}' exited with code {result.returncode}",
                command=shown,
                exit_code=result.returncode,
                stderr=stderr or _redact(result.stdout or "", sensitive),
            )

        return CommandResult(
            args=tuple(args),
            exit_code=result.returncode,
            stdout=result.stdout or "",
            stderr=stderr,
        )


def _redact(text: str, sensitive: Iterable[str]) -> str:
    for value in sensitive:
        if value:
            text = text.replace(value, MASK)
    return text
