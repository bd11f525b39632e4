"""Tests for concurrent batch calculation."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from botocore.exceptions import EndpointConnectionError

from nmwguard.core.exceptions import ConfigurationError
from nmwguard.core.result import Err, Ok
from nmwguard.models.inputs import WorkerCalculationRequest
from nmwguard.models.outputs import RAGStatus
from nmwguard.models.worker import PayPeriod, Worker
from nmwguard.orchestration.batch import BatchRunner
from nmwguard.orchestration.integrator import Integrator


def _request(worker_id: str, pay: str, age=25) -> WorkerCalculationRequest:
    return WorkerCalculationRequest(
        worker=Worker(worker_id=worker_id, age=age),
        pay_period=PayPeriod(
            pay_period_id="PP-2024-05",
            start_date=date(2024, 5, 1),
            end_date=date(2024, 5, 31),
            hours_worked=Decimal("40"),
            total_pay=Decimal(pay),
        ),
    )


class UnavailableSource:
    def rate_table(self):
        raise ConfigurationError("s3://nmw-config/rates.json", "NoSuchKey")

    def rule_table(self):
        raise ConfigurationError("s3://nmw-config/nmw_components.json", "NoSuchKey")


@pytest.fixture
def integrator(snapshots):
    with Integrator(snapshots) as integrator:
        yield integrator


def test_results_follow_input_order(integrator):
    requests = [_request(f"W{i:03d}", str(400 + i * 10)) for i in range(20)]
    batch = BatchRunner(integrator, max_workers=4).run(requests)
    assert [r.value.worker_id for r in batch.results] == [f"W{i:03d}" for i in range(20)]


def test_failed_worker_does_not_abort_siblings(integrator):
    requests = [_request("W001", "500"), _request("W002", "500", age=14), _request("W003", "400")]
    batch = BatchRunner(integrator).run(requests)
    first, second, third = batch.results
    assert isinstance(first, Ok) and first.value.rag_status == RAGStatus.GREEN
    assert isinstance(second, Err) and second.worker_id == "W002"
    assert isinstance(third, Ok) and third.value.rag_status == RAGStatus.RED


def test_summary_counts(integrator):
    requests = [_request("W001", "500"), _request("W002", "400"), _request("W003", "500", age=None)]
    summary = BatchRunner(integrator).run(requests).summary
    assert summary.total_workers == 3
    assert summary.successful == 3
    assert (summary.green, summary.amber, summary.red) == (1, 1, 1)
    assert summary.total_arrears == Decimal("57.60")


def test_infrastructure_failure_becomes_err_per_worker():
    with Integrator(UnavailableSource()) as integrator:
        batch = BatchRunner(integrator, max_workers=2).run([_request("W001", "500"), _request("W002", "500")])
    assert all(isinstance(r, Err) for r in batch.results)
    assert batch.results[1].to_dict() == {
        "success": False,
        "error": "ConfigurationError",
        "details": ["Configuration resource 's3://nmw-config/rates.json': NoSuchKey"],
        "worker_id": "W002",
        "pay_period_id": "PP-2024-05",
    }
    assert batch.summary.failed == 2


def test_empty_batch(integrator):
    batch = BatchRunner(integrator).run([])
    assert batch.results == []
    assert batch.summary.total_workers == 0


def test_rejects_non_positive_pool(integrator):
    with pytest.raises(ValueError, match="at least 1"):
        BatchRunner(integrator, max_workers=0)


class UnreachableSource:
    def rate_table(self):
        raise EndpointConnectionError(endpoint_url="https://s3.eu-west-2.amazonaws.com")

    def rule_table(self):
        raise EndpointConnectionError(endpoint_url="https://s3.eu-west-2.amazonaws.com")


class FlakyIntegrator:
    def __init__(self, inner, failing_worker):
        self._inner = inner
        self._failing_worker = failing_worker

    def calculate(self, request):
        if request.worker.worker_id == self._failing_worker:
            raise RuntimeError("worker thread lost")
        return self._inner.calculate(request)


def test_connection_failure_becomes_configuration_err():
    with Integrator(UnreachableSource()) as integrator:
        batch = BatchRunner(integrator, max_workers=2).run([_request("W001", "500"), _request("W002", "500")])
    assert [r.to_dict()["error"] for r in batch.results] == ["ConfigurationError", "ConfigurationError"]
    assert batch.summary.failed == 2


def test_unexpected_error_is_wrapped_in_its_slot(integrator):
    requests = [_request("W001", "500"), _request("W002", "500"), _request("W003", "400")]
    batch = BatchRunner(FlakyIntegrator(integrator, "W002")).run(requests)
    first, second, third = batch.results
    assert isinstance(first, Ok) and isinstance(third, Ok)
    assert second.to_dict() == {
        "success": False,
        "error": "InfrastructureError",
        "details": ["RuntimeError: worker thread lost"],
        "worker_id": "W002",
        "pay_period_id": "PP-2024-05",
    }
    assert isinstance(second.error.__cause__, RuntimeError)


def test_oversized_component_is_contained(integrator):
    oversized = _request("W002", "500").model_copy(update={"pay_components": {"Tronc": "1e30"}})
    batch = BatchRunner(integrator).run([_request("W001", "500"), oversized])
    first, second = batch.results
    assert first.value.rag_status == RAGStatus.GREEN
    result = second.unwrap()
    assert set(result.breakdown.errors) == {"allowances_premiums", "tronc_exclusions"}
    assert "out of range" in result.breakdown.errors["tronc_exclusions"]["details"][0]
