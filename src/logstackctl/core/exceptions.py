"""Custom exceptions for logstackctl."""

from typing import Any


class LogstackError(Exception):
    """Base exception for all logstackctl errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ConfigError(LogstackError):
    """Configuration file and settings errors."""

    pass


class ValidationError(LogstackError):
    """Input validation errors."""

    pass


class AuthenticationError(LogstackError):
    """Authentication/authorization errors."""

    pass


class AWSError(LogstackError):
    """AWS API errors."""

    def __init__(
        self,
        message: str,
        service: str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.service = service
        self.operation = operation


class ArgoCDError(LogstackError):
    """ArgoCD API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class K8sError(LogstackError):
    """Kubernetes API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class ConfigurationError(LogstackError):
    """Invalid rollout plan: unknown dependency, ordering violation or cycle.

    Raised during planning, before any external call is made.
    """

    def __init__(
        self,
        message: str,
        unit: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.unit = unit


class DependencyCycleError(ConfigurationError):
    """Raised when a circular dependency is detected."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(f"circular dependency detected: {cycle_str}", unit=cycle[0])


class TriggerError(LogstackError):
    """A sync trigger mechanism failed for a unit."""

    def __init__(
        self,
        message: str,
        unit: str | None = None,
        method: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.unit = unit
        self.method = method


class RegistrationError(LogstackError):
    """Application manifests could not be found, parsed or applied."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.path = path
