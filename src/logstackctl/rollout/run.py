"""Deployment run record."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any

from logstackctl.rollout.models import GateResult, HealthState, SyncState, TriggerMethod


class RunStatus(str, Enum):
    """Overall run status."""

    RUNNING = "running"
    SUCCESS = "Success"
    ABORTED = "Aborted"


@dataclass(frozen=True)
class RunOutcome:
    """Sealed outcome: Success, or Aborted(unit, reason)."""

    status: RunStatus
    unit: str | None = None
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCESS

    def __str__(self) -> str:
        if self.succeeded:
            return self.status.value
        return f"{self.status.value}({self.unit}, {self.reason})"


class SealedRunError(RuntimeError):
    """Raised when a sealed run is modified."""


@dataclass
class UnitOutcome:
    """What happened to one unit during a run."""

    name: str
    wave: int
    final_sync_state: SyncState = SyncState.UNREGISTERED
    final_health_state: HealthState = HealthState.UNKNOWN
    attempts: int = 0
    trigger_method_used: TriggerMethod = TriggerMethod.NONE
    trigger_error: str | None = None
    gate_result: GateResult | None = None
    degraded_observations: int = 0
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    _locked: bool = field(default=False, init=False, repr=False, compare=False)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_locked", False):
            raise SealedRunError(f"outcome of {self.name} is sealed")
        super().__setattr__(name, value)

    def lock(self) -> None:
        object.__setattr__(self, "_locked", True)

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    @property
    def converged(self) -> bool:
        return self.gate_result == GateResult.CONVERGED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "wave": self.wave,
            "final_sync_state": self.final_sync_state.value,
            "final_health_state": self.final_health_state.value,
            "attempts": self.attempts,
            "trigger_method_used": self.trigger_method_used.value,
            "trigger_error": self.trigger_error,
            "gate_result": self.gate_result.value if self.gate_result else None,
            "degraded_observations": self.degraded_observations,
            "error": self.error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DeploymentRun:
    """One orchestrator invocation.

    Created at start, appended to as units complete, sealed at the end or
    at abort. Per-unit outcomes are keyed by unit name so concurrent
    co-wave tasks never write the same entry. Outcomes and completed waves
    are exposed read-only, and sealing locks every outcome record.
    """

    environment: str
    dry_run: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    started_at: datetime = field(default_factory=_now)
    finished_at: datetime | None = None
    outcome: RunOutcome = field(default_factory=lambda: RunOutcome(RunStatus.RUNNING))
    _outcomes: dict[str, UnitOutcome] = field(default_factory=dict, repr=False)
    _waves: list[int] = field(default_factory=list, repr=False)

    @property
    def unit_outcomes(self) -> MappingProxyType[str, UnitOutcome]:
        return MappingProxyType(self._outcomes)

    @property
    def waves_completed(self) -> tuple[int, ...]:
        return tuple(self._waves)

    @property
    def sealed(self) -> bool:
        return self.finished_at is not None

    def _check_open(self) -> None:
        if self.sealed:
            raise SealedRunError(f"run {self.id} is sealed")

    def start_unit(self, name: str, wave: int) -> UnitOutcome:
        """Register a unit as started and return its outcome record."""
        self._check_open()
        outcome = UnitOutcome(name=name, wave=wave, started_at=_now())
        self._outcomes[name] = outcome
        return outcome

    def finish_unit(self, outcome: UnitOutcome) -> None:
        self._check_open()
        outcome.finished_at = _now()
        self._outcomes[outcome.name] = outcome

    def complete_wave(self, wave: int) -> None:
        self._check_open()
        self._waves.append(wave)

    def seal_success(self) -> None:
        self._seal(RunOutcome(RunStatus.SUCCESS))

    def seal_aborted(self, unit: str | None, reason: str) -> None:
        self._seal(RunOutcome(RunStatus.ABORTED, unit=unit, reason=reason))

    def _seal(self, outcome: RunOutcome) -> None:
        self._check_open()
        self.outcome = outcome
        self.finished_at = _now()
        for unit_outcome in self._outcomes.values():
            unit_outcome.lock()

    @property
    def succeeded(self) -> bool:
        return self.outcome.succeeded

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at or _now()
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "environment": self.environment,
            "dry_run": self.dry_run,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "outcome": self.outcome.status.value,
            "aborted_unit": self.outcome.unit,
            "reason": self.outcome.reason,
            "waves_completed": list(self.waves_completed),
            "units": [o.to_dict() for o in self.unit_outcomes.values()],
        }
