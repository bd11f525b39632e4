"""NMW Guard exception hierarchy."""

from __future__ import annotations


class NMWGuardError(Exception):
    """Base exception for all NMW Guard errors."""


class ValidationError(NMWGuardError):
    """Input failed boundary validation for a calculation."""

    def __init__(
        self,
        errors: list[str] | str,
        worker_id: str | None = None,
        pay_period_id: str | None = None,
    ) -> None:
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        self.worker_id = worker_id
        self.pay_period_id = pay_period_id
        super().__init__("; ".join(self.errors))


class RateNotFoundError(NMWGuardError):
    """No rate record or age band matches; the rate table is incomplete."""


class InfrastructureError(NMWGuardError):
    """A collaborator needed by the engine is unavailable or unusable."""


class ConfigurationError(InfrastructureError):
    """A configuration resource could not be read, parsed or validated."""

    def __init__(self, resource: str, message: str) -> None:
        self.resource = resource
        super().__init__(f"Configuration resource {resource!r}: {message}")


class ConfigLoadTimeout(InfrastructureError):
    """Loading a configuration resource exceeded its deadline."""

    def __init__(self, resource: str, timeout_seconds: float) -> None:
        self.resource = resource
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Loading {resource!r} exceeded {timeout_seconds}s deadline")


class CacheError(InfrastructureError):
    """Redis cache operation failed."""
