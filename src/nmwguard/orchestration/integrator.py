"""Integrator: one comprehensive compliance calculation per worker and pay period.

The rate table and rule table are loaded once per call, under a deadline. The
PRP base rate runs first; the accommodation, deduction, allowance/premium and
tronc calculators then fan out concurrently and are merged into one net pay
figure. Status is decided by ``RAGStatusResolver``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from decimal import Decimal
from typing import Any, Optional, TypeVar

from pydantic import BaseModel

from nmwguard.calculators.accommodation import AccommodationOffsetCalculator
from nmwguard.calculators.allowances import AllowancePremiumProcessor
from nmwguard.calculators.classifier import ComponentClassifier
from nmwguard.calculators.deductions import DeductionEvaluator
from nmwguard.calculators.prp import PRPCalculator, effective_hourly_rate, validate_period_inputs
from nmwguard.calculators.rate_resolver import RateResolver
from nmwguard.calculators.tronc import TroncExclusionProcessor
from nmwguard.core.config import EngineConfig
from nmwguard.core.exceptions import (
    ConfigLoadTimeout,
    ConfigurationError,
    InfrastructureError,
    NMWGuardError,
    RateNotFoundError,
    ValidationError,
)
from nmwguard.core.logging import log_verdict
from nmwguard.core.money import ZERO, format_gbp, quantize
from nmwguard.core.protocols import ISnapshotSource
from nmwguard.core.result import Err, Ok, Result
from nmwguard.models.inputs import WorkerCalculationRequest
from nmwguard.models.outputs import (
    ComplianceWarning,
    FixSuggestionResult,
    Issue,
    IssueCode,
    RAGResult,
    RAGStatus,
    Severity,
    WarningSource,
)
from nmwguard.models.rates import RateTableSnapshot, ResolvedRate
from nmwguard.models.results import (
    AccommodationResult,
    AllowancePremiumResult,
    ComplianceResult,
    DeductionResult,
    IntegratedBreakdown,
    IntegrationSummary,
    OtherOffsets,
    TroncResult,
)
from nmwguard.models.rules import RuleTableSnapshot
from nmwguard.orchestration.fix_suggestions import FixSuggestionGenerator
from nmwguard.orchestration.rag_status import (
    AMBER_FLAG_REASONS,
    RAGStatusResolver,
    deduction_ratio,
    integration_score,
    integration_status,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACCOMMODATION_EXCESS_FLAG = "accommodation_excess"

class IntegrationBatchSummary(BaseModel):
    total_workers: int = 0
    successful: int = 0
    failed: int = 0
    green: int = 0
    amber: int = 0
    red: int = 0
    average_compliance_score: Decimal = ZERO
    average_effective_rate: Decimal = ZERO
    average_required_rate: Decimal = ZERO
    total_arrears: Decimal = ZERO


def _issue_warning(source: WarningSource, issue: Issue) -> ComplianceWarning:
    return ComplianceWarning(
        source=source,
        code=issue.code,
        type=issue.type,
        severity=issue.severity,
        message=issue.message,
        details=issue.details,
    )


class Integrator:
    """Runs every calculator for one worker and merges them into a ComplianceResult.

    Owns two thread pools, one for config loads and one for sub-calculations.
    Use it as a context manager or call ``close()`` when done; the pools'
    threads are not released otherwise.
    """

    SUB_CALCULATIONS = ("accommodation_offsets", "nmw_deductions", "allowances_premiums", "tronc_exclusions")

    def __init__(
        self,
        source: ISnapshotSource,
        *,
        engine: Optional[EngineConfig] = None,
        deduction_max_allowed: Optional[dict[str, Decimal]] = None,
    ) -> None:
        self._source = source
        self._engine = engine or EngineConfig()
        self._deduction_max_allowed = deduction_max_allowed
        self._rag = RAGStatusResolver()
        self._fixes = FixSuggestionGenerator()
        self._loader = ThreadPoolExecutor(max_workers=4, thread_name_prefix="nmwguard-config")
        self._pool = ThreadPoolExecutor(
            max_workers=len(self.SUB_CALCULATIONS), thread_name_prefix="nmwguard-calc"
        )

    def close(self) -> None:
        self._loader.shutdown(wait=False, cancel_futures=True)
        self._pool.shutdown(wait=True)

    def __enter__(self) -> "Integrator":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ---- configuration ----

    def _load_snapshots(self) -> tuple[RateTableSnapshot, RuleTableSnapshot]:
        timeout = self._engine.config_load_timeout_seconds
        rates = self._loader.submit(self._source.rate_table)
        rules = self._loader.submit(self._source.rule_table)
        deadline = time.monotonic() + timeout
        return (
            self._await(rates, "rate table", deadline, timeout),
            self._await(rules, "rule table", deadline, timeout),
        )

    @staticmethod
    def _await(future: Future, resource: str, deadline: float, timeout: float) -> Any:
        try:
            return future.result(timeout=max(0.0, deadline - time.monotonic()))
        except FutureTimeoutError as exc:
            future.cancel()
            raise ConfigLoadTimeout(resource, timeout) from exc
        except NMWGuardError:
            raise
        except Exception as exc:
            raise ConfigurationError(resource, f"{type(exc).__name__}: {exc}") from exc

    # ---- calculation ----

    def calculate(self, request: WorkerCalculationRequest) -> Result[ComplianceResult]:
        """Comprehensive calculation for one worker.

        Validation failures come back as ``Err``. A config load that misses
        its deadline degrades to an AMBER result. Any other infrastructure
        failure propagates.
        """
        started = time.perf_counter()
        worker, period = request.worker, request.pay_period
        try:
            validate_period_inputs(worker, period)
        except ValidationError as exc:
            logger.warning("Calculation input rejected", extra={"worker_id": worker.worker_id, "error": str(exc)})
            return Err.from_error(exc, worker_id=worker.worker_id, pay_period_id=period.pay_period_id)

        try:
            rate_table, rule_table = self._load_snapshots()
        except ConfigLoadTimeout as exc:
            logger.warning("Configuration load timed out", extra={"worker_id": worker.worker_id, "error": str(exc)})
            result = self._timed_out(request, exc)
            self._log(result, started)
            return Ok(result)

        resolver = RateResolver(rate_table)
        required_rate: Optional[ResolvedRate] = None
        unresolved_reason = "Required hourly rate could not be determined"
        if worker.has_age_data:
            try:
                required_rate = resolver.resolve_for(worker, period.start_date)
            except ValidationError as exc:
                return Err.from_error(exc, worker_id=worker.worker_id, pay_period_id=period.pay_period_id)
            except RateNotFoundError as exc:
                logger.warning("Required rate unresolved", extra={"worker_id": worker.worker_id, "error": str(exc)})
                unresolved_reason = f"Required hourly rate could not be determined: {exc}"

        breakdown = IntegratedBreakdown()
        warnings: list[ComplianceWarning] = []

        if required_rate is not None:
            prp = self._prp_calculator(resolver)
            prp_result = self._guarded(
                "core_prp", lambda: prp.calculate(worker, period, required_rate=required_rate), breakdown, warnings
            )
            if prp_result is not None:
                breakdown.core_prp = prp_result
                warnings.extend(_issue_warning(WarningSource.CORE_PRP, i) for i in prp_result.issues)

        daily_limit = self._engine.default_accommodation_daily_limit
        if required_rate is not None and required_rate.accommodation_daily_limit is not None:
            daily_limit = required_rate.accommodation_daily_limit
        else:
            record = rate_table.record_for(period.start_date)
            if record is not None and record.accommodation_daily_limit is not None:
                daily_limit = record.accommodation_daily_limit

        classifier = ComponentClassifier(rule_table)
        tasks: dict[str, Callable[[], Any]] = {
            "accommodation_offsets": lambda: AccommodationOffsetCalculator(daily_limit).calculate(
                worker, period, request.offsets.accommodation.total_charge
            ),
            "nmw_deductions": lambda: DeductionEvaluator(self._deduction_max_allowed).evaluate(
                worker, period, request.deductions
            ),
        }
        if request.pay_components:
            tasks["allowances_premiums"] = lambda: AllowancePremiumProcessor(classifier).process(
                worker.worker_id, period.pay_period_id, request.pay_components
            )
            tasks["tronc_exclusions"] = lambda: TroncExclusionProcessor(classifier).process(
                worker.worker_id, period.pay_period_id, request.pay_components
            )

        futures = {name: self._pool.submit(self._run, fn) for name, fn in tasks.items()}
        for name, future in futures.items():
            outcome = future.result()
            if isinstance(outcome, Err):
                self._record_failure(name, outcome, breakdown, warnings)
            else:
                setattr(breakdown, name, outcome.value)

        return Ok(
            self._merge(request, required_rate, unresolved_reason, breakdown, warnings, started, rule_table.version)
        )

    def _prp_calculator(self, resolver: RateResolver) -> PRPCalculator:
        return PRPCalculator(
            resolver,
            accommodation_daily_limit=self._engine.default_accommodation_daily_limit,
            amber_tolerance_pct=self._engine.amber_tolerance_pct,
            high_allowance_threshold=self._engine.high_allowance_threshold,
        )

    @staticmethod
    def _run(fn: Callable[[], T]) -> Result[T]:
        try:
            return Ok(fn())
        except NMWGuardError as exc:
            return Err.from_error(exc)
        except Exception as exc:
            logger.exception("Unexpected sub-calculation error")
            error = InfrastructureError(f"{type(exc).__name__}: {exc}")
            error.__cause__ = exc
            return Err.from_error(error)

    def _guarded(
        self,
        name: str,
        fn: Callable[[], T],
        breakdown: IntegratedBreakdown,
        warnings: list[ComplianceWarning],
    ) -> Optional[T]:
        outcome = self._run(fn)
        if isinstance(outcome, Err):
            self._record_failure(name, outcome, breakdown, warnings)
            return None
        return outcome.value

    @staticmethod
    def _record_failure(
        name: str, outcome: Err, breakdown: IntegratedBreakdown, warnings: list[ComplianceWarning]
    ) -> None:
        logger.warning("Sub-calculation failed", extra={"calculation": name, "error": str(outcome.error)})
        breakdown.errors[name] = outcome.to_dict()
        warnings.append(
            ComplianceWarning(
                source=WarningSource.INTEGRATION,
                code=IssueCode.SUB_CALCULATION_FAILED,
                type=f"{name}_failed",
                severity=Severity.HIGH,
                message=f"{name.replace('_', ' ')} calculation failed: {outcome.error}",
                details=outcome.to_dict(),
            )
        )

    # ---- merge ----

    def _merge(
        self,
        request: WorkerCalculationRequest,
        required_rate: Optional[ResolvedRate],
        unresolved_reason: str,
        breakdown: IntegratedBreakdown,
        warnings: list[ComplianceWarning],
        started: float,
        rules_version: str,
    ) -> ComplianceResult:
        worker, period = request.worker, request.pay_period
        accommodation: Optional[AccommodationResult] = breakdown.accommodation_offsets
        deductions: Optional[DeductionResult] = breakdown.nmw_deductions
        allowances: Optional[AllowancePremiumResult] = breakdown.allowances_premiums
        tronc: Optional[TroncResult] = breakdown.tronc_exclusions

        breakdown.other_offsets = OtherOffsets(
            meals_charge=request.offsets.meals.total_charge,
            transport_charge=request.offsets.transport.total_charge,
        )
        breakdown.enhancements = request.enhancements.model_dump()
        breakdown.enhancements["total"] = request.enhancements.total

        base_pay = period.total_pay
        hours = period.hours_worked
        total_allowances = allowances.totals.total_allowances_included if allowances else ZERO
        total_premiums = allowances.totals.total_premiums_basic_rate if allowances else ZERO
        total_enhancements = request.enhancements.total
        total_deductions = deductions.total_deductions if deductions else ZERO
        total_tronc = tronc.total_excluded if tronc else ZERO
        total_offsets = (accommodation.total_offset if accommodation else ZERO) + breakdown.other_offsets.total

        net_pay = base_pay + total_allowances + total_premiums + total_enhancements - total_deductions - total_tronc
        effective = quantize((net_pay - total_offsets) / hours) if hours > 0 else ZERO
        required = required_rate.hourly_rate if required_rate is not None else None

        accommodation_flags = [ACCOMMODATION_EXCESS_FLAG] if accommodation and accommodation.has_excess else []
        rag = self._rag.resolve(
            effective_rate=effective,
            required_rate=required,
            hours_worked=hours,
            total_pay=base_pay,
            has_age_data=worker.has_age_data,
            deduction_ratio=deduction_ratio(total_deductions, base_pay),
            accommodation_flags=accommodation_flags,
            unresolved_reason=unresolved_reason,
        )
        fixes = self._fixes.generate(rag, hours, base_pay)

        score = integration_score(
            effective,
            required,
            accommodation_excess=accommodation.total_excess if accommodation else ZERO,
            accommodation_charge=accommodation.total_charge if accommodation else ZERO,
            deduction_excess=deductions.total_excess if deductions else ZERO,
            total_deductions=total_deductions,
        )
        breakdown.integration = IntegrationSummary(
            final_status=integration_status(
                effective,
                required,
                accommodation_excess=bool(accommodation and accommodation.has_excess),
                deduction_excess=bool(deductions and deductions.has_excess),
            ),
            final_score=score,
            effective_hourly_rate=effective,
            required_hourly_rate=required,
            base_pay=base_pay,
            base_hours=hours,
            net_pay_for_nmw=net_pay,
            total_offsets=total_offsets,
            total_deductions=total_deductions,
            total_allowances=total_allowances,
            total_premiums=total_premiums,
            total_tronc_excluded=total_tronc,
            total_enhancements=total_enhancements,
        )

        warnings.extend(self._sub_result_warnings(accommodation, deductions, allowances, tronc))
        warnings.extend(self._rag_warnings(rag))

        result = ComplianceResult(
            worker_id=worker.worker_id,
            worker_name=worker.worker_name,
            pay_period_id=period.pay_period_id,
            period_start=period.start_date,
            period_end=period.end_date,
            rag_status=rag.rag_status,
            severity=rag.severity,
            reason=rag.reason,
            reason_code=rag.reason_code,
            amber_flags=rag.amber_flags,
            effective_hourly_rate=effective,
            required_hourly_rate=required,
            compliance_score=score,
            net_pay_for_nmw=net_pay,
            total_offsets=total_offsets,
            total_deductions=total_deductions,
            total_allowances=total_allowances,
            total_premiums=total_premiums,
            total_tronc_excluded=total_tronc,
            total_enhancements=total_enhancements,
            breakdown=breakdown,
            warnings=warnings,
            fix_suggestions=fixes.suggestions,
            fix_calculations=fixes.calculations,
            rates_version=required_rate.table_version if required_rate is not None else "",
            rules_version=rules_version,
        )
        self._log(result, started)
        return result

    @staticmethod
    def _sub_result_warnings(
        accommodation: Optional[AccommodationResult],
        deductions: Optional[DeductionResult],
        allowances: Optional[AllowancePremiumResult],
        tronc: Optional[TroncResult],
    ) -> list[ComplianceWarning]:
        warnings = []
        if accommodation is not None and accommodation.has_excess:
            warnings.append(
                ComplianceWarning(
                    source=WarningSource.ACCOMMODATION_OFFSETS,
                    code=IssueCode.ACCOMMODATION_OFFSET_EXCEEDED,
                    type="accommodation_excess",
                    severity=Severity.MEDIUM if accommodation.compliance_status == RAGStatus.AMBER else Severity.HIGH,
                    message=(
                        f"Accommodation charge of {format_gbp(accommodation.daily_charge)}/day exceeds the "
                        f"{format_gbp(accommodation.daily_limit)}/day offset limit; "
                        f"excess {format_gbp(accommodation.total_excess)}"
                    ),
                    details={
                        "total_excess": accommodation.total_excess,
                        "non_compliant_days": accommodation.non_compliant_days,
                    },
                )
            )
        if deductions is not None:
            warnings.extend(_issue_warning(WarningSource.NMW_DEDUCTIONS, i) for i in deductions.issues)
        if allowances is not None:
            warnings.extend(allowances.warnings)
        if tronc is not None:
            warnings.extend(tronc.warnings)
        return warnings

    @staticmethod
    def _rag_warnings(rag: RAGResult) -> list[ComplianceWarning]:
        return [
            ComplianceWarning(
                source=WarningSource.RAG_STATUS,
                code=AMBER_FLAG_REASONS[flag][0],
                type="rag_status_flag",
                severity=Severity.MEDIUM,
                message=f"RAG status amber flag: {str(flag).replace('_', ' ')}",
                details={"flag": str(flag)},
            )
            for flag in rag.amber_flags
        ]

    def _timed_out(self, request: WorkerCalculationRequest, error: ConfigLoadTimeout) -> ComplianceResult:
        worker, period = request.worker, request.pay_period
        effective = effective_hourly_rate(period.total_pay, period.hours_worked, ZERO, ZERO)
        rag = self._rag.resolve(
            effective_rate=effective,
            required_rate=None,
            hours_worked=period.hours_worked,
            total_pay=period.total_pay,
            has_age_data=worker.has_age_data,
            unresolved_code=IssueCode.CONFIG_LOAD_TIMEOUT,
            unresolved_reason=f"Configuration could not be loaded in time: {error}",
        )
        fixes: FixSuggestionResult = self._fixes.generate(rag, period.hours_worked, period.total_pay)
        warning = ComplianceWarning(
            source=WarningSource.INTEGRATION,
            code=IssueCode.CONFIG_LOAD_TIMEOUT,
            type="config_load_timeout",
            severity=Severity.HIGH,
            message=str(error),
            details={"resource": error.resource, "timeout_seconds": error.timeout_seconds},
        )
        return ComplianceResult(
            worker_id=worker.worker_id,
            worker_name=worker.worker_name,
            pay_period_id=period.pay_period_id,
            period_start=period.start_date,
            period_end=period.end_date,
            rag_status=rag.rag_status,
            severity=rag.severity,
            reason=rag.reason,
            reason_code=rag.reason_code,
            amber_flags=rag.amber_flags,
            effective_hourly_rate=effective,
            compliance_score=0,
            net_pay_for_nmw=period.total_pay,
            warnings=[warning, *self._rag_warnings(rag)],
            fix_suggestions=fixes.suggestions,
        )

    @staticmethod
    def _log(result: ComplianceResult, started: float) -> None:
        log_verdict(
            result.worker_id,
            result.pay_period_id,
            str(result.rag_status),
            result.effective_hourly_rate,
            result.required_hourly_rate,
            (time.perf_counter() - started) * 1000,
        )

    # ---- reporting ----

    @staticmethod
    def summarize(results: Sequence[Result[ComplianceResult]]) -> IntegrationBatchSummary:
        summary = IntegrationBatchSummary(total_workers=len(results))
        successes = [r.value for r in results if isinstance(r, Ok)]
        summary.successful = len(successes)
        summary.failed = len(results) - len(successes)
        for result in successes:
            if result.rag_status == RAGStatus.GREEN:
                summary.green += 1
            elif result.rag_status == RAGStatus.AMBER:
                summary.amber += 1
            else:
                summary.red += 1
            if result.fix_calculations is not None:
                summary.total_arrears += result.fix_calculations.total_shortfall
        if successes:
            summary.average_compliance_score = quantize(
                Decimal(sum(r.compliance_score for r in successes)) / len(successes)
            )
            summary.average_effective_rate = quantize(
                sum((r.effective_hourly_rate for r in successes), ZERO) / len(successes)
            )
        required = [r.required_hourly_rate for r in successes if r.required_hourly_rate is not None]
        if required:
            summary.average_required_rate = quantize(sum(required, ZERO) / len(required))
        return summary
