"""One monitoring cycle: limit ∥ sample → evaluate → dispatch."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from speedguard._constants import FAIL_SAFE_LIMIT_KMH
from speedguard.dispatch import AlertDispatcher
from speedguard.evaluator import evaluate
from speedguard.exceptions import PermissionDeniedError, SampleTimeoutError, SampleUnavailableError
from speedguard.limits import LimitStore
from speedguard.models._base import validate_subject
from speedguard.models.alert import DispatchReport
from speedguard.models.limit import SpeedLimit
from speedguard.models.outcome import Condition, ConditionKind, CycleOutcome, MonitorState
from speedguard.models.sample import Sample
from speedguard.models.verdict import NoViolation, Violation
from speedguard.position import PositionSource

_logger = logging.getLogger(__name__)


class _Cycle:
    """Mutable bookkeeping for a single run; frozen into a CycleOutcome at the end."""

    def __init__(self, subject: str) -> None:
        self.subject = subject
        self.states: list[MonitorState] = [MonitorState.IDLE]
        self.conditions: list[Condition] = []
        self.limit: SpeedLimit | None = None
        self.sample: Sample | None = None
        self.verdict: NoViolation | Violation | None = None
        self.dispatch: DispatchReport | None = None

    def enter(self, state: MonitorState) -> None:
        self.states.append(state)

    def record(self, kind: ConditionKind, message: str = "", **kwargs: object) -> None:
        self.conditions.append(Condition(kind=kind, message=message, **kwargs))

    def finish(self, state: MonitorState) -> CycleOutcome:
        self.enter(state)
        return CycleOutcome(
            subject=self.subject,
            state=state,
            states=tuple(self.states),
            conditions=tuple(self.conditions),
            limit=self.limit,
            sample=self.sample,
            verdict=self.verdict,
            dispatch=self.dispatch,
        )


class MonitorController:
    """Runs monitoring cycles for the external trigger.

    ``run(subject)`` never raises for degraded conditions; they are returned
    as :class:`CycleOutcome` conditions. A missing location permission ends
    the cycle in ``FAILED`` with a fatal outcome. Overlapping runs for the
    same subject are refused with a ``CYCLE_IN_PROGRESS`` condition.
    """

    def __init__(
        self,
        limits: LimitStore,
        positions: PositionSource,
        dispatcher: AlertDispatcher,
        *,
        sample_timeout: float | None = None,
        on_complete: Callable[[CycleOutcome], None] | None = None,
    ) -> None:
        self._limits = limits
        self._positions = positions
        self._dispatcher = dispatcher
        self._sample_timeout = sample_timeout
        self._on_complete = on_complete
        self._in_flight: set[str] = set()

    def is_running(self, subject: str) -> bool:
        return subject in self._in_flight

    async def run(self, subject: str) -> CycleOutcome:
        """Run one cycle for *subject* and report its outcome."""
        subject = validate_subject(subject)
        if subject in self._in_flight:
            _logger.warning("Cycle for %s already in progress; skipping", subject)
            cycle = _Cycle(subject)
            cycle.record(ConditionKind.CYCLE_IN_PROGRESS, "previous cycle has not settled")
            return cycle.finish(MonitorState.DONE)

        self._in_flight.add(subject)
        try:
            outcome = await self._run_cycle(subject)
        finally:
            self._in_flight.discard(subject)

        _logger.debug("Cycle for %s finished state=%s status=%s", subject, outcome.state, outcome.status)
        if self._on_complete is not None:
            try:
                self._on_complete(outcome)
            except Exception:
                _logger.debug("on_complete callback failed", exc_info=True)
        return outcome

    async def _run_cycle(self, subject: str) -> CycleOutcome:
        cycle = _Cycle(subject)
        self._limits.invalidate(subject)

        cycle.enter(MonitorState.FETCHING_LIMIT)
        limit_task = asyncio.create_task(self._limits.fetch_limit(subject))
        cycle.enter(MonitorState.SAMPLING_POSITION)
        sample_task = asyncio.create_task(self._positions.request_sample(subject, self._sample_timeout))

        # Both results are required before evaluation; cancelling run()
        # cancels whichever is still pending.
        limit_result, sample_result = await asyncio.gather(limit_task, sample_task, return_exceptions=True)

        for result in (limit_result, sample_result):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        if isinstance(limit_result, Exception):
            _logger.warning("Speed limit fetch for %s raised unexpectedly", subject, exc_info=limit_result)
            limit_result = SpeedLimit(
                subject=subject,
                kmh=FAIL_SAFE_LIMIT_KMH,
                is_fallback=True,
                reason=str(limit_result) or type(limit_result).__name__,
            )
        cycle.limit = limit_result
        if limit_result.is_fallback:
            cycle.record(ConditionKind.CONFIG_UNAVAILABLE, limit_result.reason or "")

        if isinstance(sample_result, PermissionDeniedError):
            _logger.error("Location permission denied; cycle for %s failed", subject)
            cycle.record(ConditionKind.PERMISSION_DENIED, str(sample_result))
            return cycle.finish(MonitorState.FAILED)
        if isinstance(sample_result, SampleTimeoutError):
            _logger.info("No position fix for %s; cycle skipped: %s", subject, sample_result)
            cycle.record(ConditionKind.SAMPLE_TIMEOUT, str(sample_result))
            return cycle.finish(MonitorState.DONE)
        if isinstance(sample_result, Exception):
            if not isinstance(sample_result, SampleUnavailableError):
                _logger.warning("Position sampling for %s raised unexpectedly", subject, exc_info=sample_result)
            cycle.record(ConditionKind.SAMPLE_UNAVAILABLE, str(sample_result) or type(sample_result).__name__)
            return cycle.finish(MonitorState.DONE)
        cycle.sample = sample_result

        cycle.enter(MonitorState.EVALUATING)
        cycle.verdict = evaluate(sample_result, limit_result, subject=subject)

        cycle.enter(MonitorState.DISPATCHING)
        # Once started, dispatch runs to completion on both channels even if
        # the caller is cancelled.
        report = await asyncio.shield(self._dispatcher.dispatch(cycle.verdict))
        cycle.dispatch = report
        for failure in report.failures:
            cycle.record(ConditionKind.DISPATCH_FAILURE, failure.reason, channel=failure.channel)

        return cycle.finish(MonitorState.DONE)
