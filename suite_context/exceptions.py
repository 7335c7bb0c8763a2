"""
Custom Exception Hierarchy for the suite context fixture

Every failure while provisioning or tearing down tenant scaffolding is
surfaced as one of these exceptions so the enclosing test run fails with
useful context instead of a bare subprocess or HTTP error.
"""

from typing import Any, Dict, Optional, Sequence


class SuiteContextError(Exception):
    """
    Base exception class for all suite context errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


# Command-related exceptions
class CommandExecutionError(SuiteContextError):
    """Raised when a CLI command exits non-zero or cannot be started."""

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if command:
            context["command"] = " ".join(command)
        if exit_code is not None:
            context["exit_code"] = exit_code
        if stderr:
            # Keep the tail, that is where the CLI prints the reason
            context["stderr"] = stderr[-300:].strip()
        kwargs["context"] = context
        kwargs.setdefault("error_code", "COMMAND_FAILED")
        super().__init__(message, **kwargs)
        self.exit_code = exit_code


class CommandTimeoutError(CommandExecutionError):
    """Raised when a CLI command does not finish within its timeout."""

    def __init__(
        self, message: str, timeout: Optional[float] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if timeout is not None:
            context["timeout"] = f"{timeout:g}s"
        kwargs["context"] = context
        kwargs.setdefault("error_code", "COMMAND_TIMEOUT")
        kwargs.setdefault(
            "recovery_suggestion",
            "Increase timeout_scale for slow environments",
        )
        super().__init__(message, **kwargs)
        self.timeout = timeout


# API-related exceptions
class ApiRequestError(SuiteContextError):
    """Raised when a control-plane API request fails."""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        path: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if method:
            context["method"] = method
        if path:
            context["path"] = path
        if status_code is not None:
            context["status_code"] = status_code
        kwargs["context"] = context
        kwargs.setdefault("error_code", "API_REQUEST_FAILED")
        super().__init__(message, **kwargs)
        self.status_code = status_code


class PayloadSerializationError(SuiteContextError):
    """Raised when a request payload cannot be built or encoded."""

    def __init__(
        self, message: str, payload_type: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if payload_type:
            context["payload_type"] = payload_type
        kwargs["context"] = context
        kwargs.setdefault("error_code", "PAYLOAD_SERIALIZATION_FAILED")
        super().__init__(message, **kwargs)


# Configuration-related exceptions
class ConfigurationError(SuiteContextError):
    """Base class for configuration-related errors."""

    pass


class InvalidConfigurationError(ConfigurationError):
    """Raised when configuration validation fails."""

    def __init__(
        self, message: str, config_key: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_CONFIG")
        kwargs.setdefault(
            "recovery_suggestion", "Check the CONFIG file and CF_* environment variables"
        )
        super().__init__(message, **kwargs)


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration is missing."""

    def __init__(
        self, message: str, missing_keys: Optional[list[str]] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if missing_keys:
            context["missing_keys"] = missing_keys
        kwargs["context"] = context
        kwargs.setdefault("error_code", "MISSING_CONFIG")
        kwargs.setdefault(
            "recovery_suggestion",
            f"Set required configuration: {', '.join(missing_keys)}"
            if missing_keys
            else "Set required configuration",
        )
        super().__init__(message, **kwargs)


# Lifecycle exceptions
class InvalidContextStateError(SuiteContextError):
    """Raised when setup/teardown is called out of order."""

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if current_state:
            context["state"] = current_state
        if operation:
            context["operation"] = operation
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_CONTEXT_STATE")
        super().__init__(message, **kwargs)
