"""Tagged result type returned by every calculator entry point in orchestration.

``Ok`` wraps a successful value. ``Err`` wraps a ``ValidationError`` or an
``InfrastructureError`` together with the worker and pay period it belongs to,
so a failed worker never aborts its siblings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from nmwguard.core.exceptions import NMWGuardError, ValidationError
from nmwguard.core.types import JsonDict

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def success(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: NMWGuardError
    worker_id: str | None = None
    pay_period_id: str | None = None

    @property
    def success(self) -> bool:
        return False

    @property
    def is_validation(self) -> bool:
        return isinstance(self.error, ValidationError)

    def unwrap(self) -> Any:
        raise self.error

    def to_dict(self) -> JsonDict:
        details = self.error.errors if isinstance(self.error, ValidationError) else [str(self.error)]
        return {
            "success": False,
            "error": type(self.error).__name__,
            "details": details,
            "worker_id": self.worker_id,
            "pay_period_id": self.pay_period_id,
        }

    @classmethod
    def from_error(
        cls, error: NMWGuardError, worker_id: str | None = None, pay_period_id: str | None = None
    ) -> "Err":
        if isinstance(error, ValidationError):
            worker_id = worker_id or error.worker_id
            pay_period_id = pay_period_id or error.pay_period_id
        return cls(error=error, worker_id=worker_id, pay_period_id=pay_period_id)


Result = Union[Ok[T], Err]
