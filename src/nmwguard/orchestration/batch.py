"""BatchRunner: many worker calculations on a bounded pool, results in input order."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from nmwguard.core.exceptions import InfrastructureError, NMWGuardError
from nmwguard.core.result import Err, Result
from nmwguard.models.inputs import WorkerCalculationRequest
from nmwguard.models.results import ComplianceResult
from nmwguard.orchestration.integrator import IntegrationBatchSummary, Integrator

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    results: list[Result[ComplianceResult]]
    summary: IntegrationBatchSummary
    duration_ms: float


class BatchRunner:
    """Workers share no mutable state, so each runs independently on the pool.

    ``results[i]`` always belongs to ``requests[i]``; a worker that fails for
    any exception becomes an ``Err`` in its slot; unexpected ones are wrapped
    as ``InfrastructureError``.
    """

    def __init__(self, integrator: Integrator, max_workers: int = 8) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._integrator = integrator
        self._max_workers = max_workers

    def run(self, requests: Sequence[WorkerCalculationRequest]) -> BatchResult:
        started = time.perf_counter()
        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="nmwguard-batch") as pool:
            results = list(pool.map(self._calculate_one, requests))
        summary = Integrator.summarize(results)
        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Batch complete",
            extra={
                "total_workers": summary.total_workers,
                "successful": summary.successful,
                "failed": summary.failed,
                "red": summary.red,
                "amber": summary.amber,
                "green": summary.green,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return BatchResult(results=results, summary=summary, duration_ms=duration_ms)

    def _calculate_one(self, request: WorkerCalculationRequest) -> Result[ComplianceResult]:
        try:
            return self._integrator.calculate(request)
        except NMWGuardError as exc:
            logger.exception(
                "Worker calculation failed",
                extra={"worker_id": request.worker.worker_id, "pay_period_id": request.pay_period.pay_period_id},
            )
            return Err.from_error(
                exc, worker_id=request.worker.worker_id, pay_period_id=request.pay_period.pay_period_id
            )
        except Exception as exc:
            logger.exception(
                "Unexpected worker calculation error",
                extra={"worker_id": request.worker.worker_id, "pay_period_id": request.pay_period.pay_period_id},
            )
            error = InfrastructureError(f"{type(exc).__name__}: {exc}")
            error.__cause__ = exc
            return Err.from_error(
                error, worker_id=request.worker.worker_id, pay_period_id=request.pay_period.pay_period_id
            )
