"""Rollout data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

MIN_POLL_INTERVAL = 5.0
MAX_POLL_INTERVAL = 30.0


class SyncState(str, Enum):
    """Sync state of a deployment unit as reported by the GitOps controller."""

    UNREGISTERED = "Unregistered"
    REGISTERED = "Registered"
    SYNCING = "Syncing"
    OUT_OF_SYNC = "OutOfSync"
    SYNCED = "Synced"
    SYNC_FAILED = "SyncFailed"


class HealthState(str, Enum):
    """Aggregated health of a deployment unit."""

    UNKNOWN = "Unknown"
    PROGRESSING = "Progressing"
    DEGRADED = "Degraded"
    HEALTHY = "Healthy"


class TriggerMethod(str, Enum):
    """Mechanism used to request reconciliation."""

    PRIMARY = "primary"
    FALLBACK = "fallback"
    NONE = "none"


class GateResult(str, Enum):
    """Terminal result of waiting on a unit."""

    CONVERGED = "Converged"
    TIMED_OUT = "TimedOut"
    ABORTED = "Aborted"


@dataclass(frozen=True)
class DeploymentUnit:
    """A named, orderable rollout target."""

    name: str
    wave: int = 0
    depends_on: frozenset[str] = field(default_factory=frozenset)
    timeout: float | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("deployment unit name must not be empty")
        if self.wave < 0:
            raise ValueError(f"unit '{self.name}' has negative wave {self.wave}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"unit '{self.name}' has non-positive timeout")
        # Accept any iterable of names
        object.__setattr__(self, "depends_on", frozenset(self.depends_on))


@dataclass(frozen=True)
class UnitStatus:
    """Point-in-time {sync, health} pair for a unit."""

    sync: SyncState
    health: HealthState

    @property
    def converged(self) -> bool:
        return self.sync == SyncState.SYNCED and self.health == HealthState.HEALTHY

    def __str__(self) -> str:
        return f"sync={self.sync.value}, health={self.health.value}"


@dataclass(frozen=True)
class TriggerAck:
    """Acknowledgement that a reconciliation request was accepted."""

    unit: str
    method: TriggerMethod
    message: str = ""
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class TriggerOutcome:
    """What the trigger selection policy did for one unit."""

    method: TriggerMethod
    ack: TriggerAck | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.ack is not None


@dataclass(frozen=True)
class GateReport:
    """Result of a HealthGate wait with the observations made along the way."""

    result: GateResult
    polls: int
    last_status: UnitStatus | None
    degraded_observations: int = 0
    elapsed: float = 0.0


def derive_poll_interval(timeout: float) -> float:
    """Poll interval for a timeout: one twentieth, clamped to [5s, 30s]."""
    return min(MAX_POLL_INTERVAL, max(MIN_POLL_INTERVAL, timeout / 20.0))


@dataclass(frozen=True)
class RunConfig:
    """Immutable settings for one orchestration run."""

    environment: str
    namespace: str = "openshift-gitops"
    dry_run: bool = False
    timeout: float | None = None
    default_timeout: float = 600.0
    poll_interval: float | None = None
    trigger_mode: Literal["auto", "primary", "fallback"] = "auto"
    max_concurrent: int = 1
    run_timeout: float | None = None

    def timeout_for(self, unit: DeploymentUnit) -> float:
        """Per-unit timeout: CLI override, then unit setting, then default."""
        if self.timeout is not None:
            return self.timeout
        if unit.timeout is not None:
            return unit.timeout
        return self.default_timeout

    def poll_interval_for(self, timeout: float) -> float:
        """Poll interval: explicit override or derived from the timeout."""
        if self.poll_interval is not None:
            return self.poll_interval
        return derive_poll_interval(timeout)
