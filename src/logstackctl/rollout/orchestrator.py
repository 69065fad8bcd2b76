"""Wave-ordered sync orchestration."""

from logstackctl.core.async_utils import gather_with_concurrency, run_blocking, run_sync
from logstackctl.core.exceptions import ConfigurationError
from logstackctl.core.logging import StructuredLogger
from logstackctl.rollout.gate import CancellationToken, HealthGate
from logstackctl.rollout.models import DeploymentUnit, GateResult, RunConfig, TriggerMethod
from logstackctl.rollout.planner import DependencyPlanner, Wave
from logstackctl.rollout.run import DeploymentRun, UnitOutcome
from logstackctl.rollout.triggers import TriggerPolicy

logger = StructuredLogger(__name__)

REASON_TIMEOUT = "timeout"
REASON_CANCELLED = "cancelled"


class SyncOrchestrator:
    """Drive a plan wave by wave: trigger, then gate, then advance.

    A unit that does not converge stops the run; no later wave is ever
    triggered.
    """

    def __init__(
        self,
        triggers: TriggerPolicy,
        gate: HealthGate,
        config: RunConfig,
        token: CancellationToken | None = None,
    ):
        self._triggers = triggers
        self._gate = gate
        self._config = config
        self._token = token or CancellationToken()

    @property
    def token(self) -> CancellationToken:
        return self._token

    def run(self, units: list[DeploymentUnit]) -> DeploymentRun:
        """Plan and execute a rollout.

        Args:
            units: deployment units to roll out

        Returns:
            Sealed DeploymentRun
        """
        run = DeploymentRun(environment=self._config.environment, dry_run=self._config.dry_run)
        log = logger.bind(run=run.id, environment=run.environment)

        try:
            plan = DependencyPlanner(units).plan()
        except ConfigurationError as e:
            log.error("Invalid rollout plan", error=e.message)
            run.seal_aborted(e.unit, f"configuration error: {e.message}")
            return run

        log.info("Starting rollout", waves=len(plan), units=len(plan.units), dry_run=self._config.dry_run)

        for wave in plan.waves:
            log.info("Starting wave", wave=wave.number, units=",".join(wave.names))
            failure = self._run_wave(run, wave)
            if failure is not None:
                unit, reason = failure
                log.error("Rollout aborted", wave=wave.number, unit=unit, reason=reason)
                run.seal_aborted(unit, reason)
                return run
            run.complete_wave(wave.number)
            log.info("Wave converged", wave=wave.number)

        run.seal_success()
        log.info("Rollout succeeded", duration=f"{run.duration_seconds:.1f}s")
        return run

    def _run_wave(self, run: DeploymentRun, wave: Wave) -> tuple[str, str] | None:
        """Process every unit of a wave; return (unit, reason) on failure."""
        if self._config.max_concurrent > 1 and len(wave.units) > 1:
            outcomes = run_sync(self._run_wave_concurrently(run, wave))
            for outcome in outcomes:
                failure = self._failure_of(outcome)
                if failure is not None:
                    return failure
            return None

        for unit in wave.units:
            failure = self._failure_of(self._process_unit(run, unit))
            if failure is not None:
                return failure
        return None

    async def _run_wave_concurrently(self, run: DeploymentRun, wave: Wave) -> list[UnitOutcome]:
        """Run each unit's trigger+gate in its own task and wait for all of them."""
        return await gather_with_concurrency(
            self._config.max_concurrent,
            *[run_blocking(lambda u=unit: self._process_unit(run, u)) for unit in wave.units],
        )

    def _failure_of(self, outcome: UnitOutcome) -> tuple[str, str] | None:
        if outcome.gate_result == GateResult.CONVERGED:
            return None
        return outcome.name, outcome.error or REASON_TIMEOUT

    def _process_unit(self, run: DeploymentRun, unit: DeploymentUnit) -> UnitOutcome:
        """Trigger one unit (with fallback) and wait for it to converge."""
        log = logger.bind(unit=unit.name, wave=unit.wave)
        outcome = run.start_unit(unit.name, unit.wave)

        if self._token.cancelled:
            outcome.gate_result = GateResult.ABORTED
            outcome.error = REASON_CANCELLED
            run.finish_unit(outcome)
            return outcome

        if self._config.dry_run:
            log.info("[dry-run] Would trigger sync")
            outcome.trigger_method_used = TriggerMethod.NONE
        else:
            triggered = self._triggers.trigger(unit.name)
            outcome.trigger_method_used = triggered.method
            if triggered.succeeded:
                log.info("Sync triggered", method=triggered.method.value)
                for warning in triggered.ack.warnings:
                    log.warning("Trigger partially failed", error=warning)
            else:
                outcome.trigger_error = triggered.error
                log.warning("Sync trigger failed", error=triggered.error)

        timeout = self._config.timeout_for(unit)
        report = self._gate.await_convergence(
            unit.name,
            timeout=timeout,
            poll_interval=self._config.poll_interval_for(timeout),
            token=self._token,
        )

        outcome.attempts = report.polls
        outcome.degraded_observations = report.degraded_observations
        outcome.gate_result = report.result
        if report.last_status is not None:
            outcome.final_sync_state = report.last_status.sync
            outcome.final_health_state = report.last_status.health

        if report.result == GateResult.TIMED_OUT:
            outcome.error = REASON_TIMEOUT
        elif report.result == GateResult.ABORTED:
            outcome.error = REASON_CANCELLED

        run.finish_unit(outcome)
        return outcome
