"""Health gate: bounded polling until a unit converges."""

import threading
import time
from collections.abc import Callable

from logstackctl.core.exceptions import LogstackError
from logstackctl.core.logging import StructuredLogger
from logstackctl.rollout.models import GateReport, GateResult, HealthState, UnitStatus
from logstackctl.rollout.probe import StatusProbe

logger = StructuredLogger(__name__)


class CancellationToken:
    """Run-level cancellation signal, optionally with a deadline.

    ``wait`` doubles as the gate's sleep so a cancel interrupts a poll
    interval instead of waiting it out.
    """

    def __init__(
        self,
        deadline: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._event = threading.Event()
        self._deadline = deadline
        self._clock = clock
        self.reason: str | None = None

    @classmethod
    def with_timeout(cls, seconds: float | None) -> "CancellationToken":
        if seconds is None:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self, reason: str = "cancelled") -> None:
        if self.reason is None:
            self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self.cancel("run deadline exceeded")
            return True
        return False

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        if self._deadline is not None:
            seconds = min(seconds, max(0.0, self._deadline - self._clock()))
        self._event.wait(seconds)
        return self.cancelled


Sleeper = Callable[[float, CancellationToken | None], bool]


def default_sleep(seconds: float, token: CancellationToken | None) -> bool:
    if token is not None:
        return token.wait(seconds)
    time.sleep(seconds)
    return False


class HealthGate:
    """Combine a StatusProbe with a polling/timeout policy."""

    def __init__(
        self,
        probe: StatusProbe,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleeper = default_sleep,
    ):
        self._probe = probe
        self._clock = clock
        self._sleep = sleep

    def await_convergence(
        self,
        unit_name: str,
        timeout: float,
        poll_interval: float,
        token: CancellationToken | None = None,
    ) -> GateReport:
        """Block until the unit is {Synced, Healthy}, the timeout elapses or the run is cancelled.

        Args:
            unit_name: unit to watch
            timeout: seconds to wait for convergence
            poll_interval: seconds between probes
            token: run-level cancellation, checked at every tick

        Returns:
            GateReport with the result and the number of probes made
        """
        log = logger.bind(unit=unit_name)
        start = self._clock()
        polls = 0
        degraded = 0
        last: UnitStatus | None = None

        def report(result: GateResult) -> GateReport:
            return GateReport(
                result=result,
                polls=polls,
                last_status=last,
                degraded_observations=degraded,
                elapsed=self._clock() - start,
            )

        log.info("Waiting for convergence", timeout=timeout, interval=poll_interval)

        while True:
            if token is not None and token.cancelled:
                log.warning("Wait cancelled", reason=token.reason)
                return report(GateResult.ABORTED)

            if self._clock() - start >= timeout:
                break

            polls += 1
            try:
                status: UnitStatus | None = self._probe.probe(unit_name)
            except LogstackError as e:
                # Transient read failures only count against the deadline
                log.warning("Status probe failed", error=str(e))
                status = None

            if status is not None:
                last = status
                log.debug("Observed status", sync=status.sync.value, health=status.health.value)

                if status.converged:
                    log.info("Unit converged", polls=polls)
                    return report(GateResult.CONVERGED)

                if status.health == HealthState.DEGRADED:
                    degraded += 1
                    log.warning("Unit is degraded; may be transient during rollout", sync=status.sync.value)

            remaining = timeout - (self._clock() - start)
            if remaining <= 0:
                break

            if self._sleep(min(poll_interval, remaining), token):
                log.warning("Wait cancelled", reason=token.reason if token else None)
                return report(GateResult.ABORTED)

        log.error("Unit did not converge before timeout", polls=polls, last=str(last))
        return report(GateResult.TIMED_OUT)
