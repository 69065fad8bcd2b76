"""Status probes: read the {sync, health} pair of a unit."""

from typing import Any, Protocol

from logstackctl.clients.k8s import K8sClient
from logstackctl.core.logging import StructuredLogger
from logstackctl.rollout.models import HealthState, SyncState, UnitStatus

logger = StructuredLogger(__name__)

_HEALTH = {
    "Healthy": HealthState.HEALTHY,
    "Progressing": HealthState.PROGRESSING,
    "Degraded": HealthState.DEGRADED,
}

_RUNNING_PHASES = {"Running", "Terminating"}
_FAILED_PHASES = {"Failed", "Error"}


class StatusProbe(Protocol):
    """Reads the current status of a unit. Pure read, never cached."""

    def probe(self, unit_name: str) -> UnitStatus: ...


def status_from_application(app: dict[str, Any] | None) -> UnitStatus:
    """Translate an ArgoCD Application resource into a UnitStatus.

    A missing resource is the legitimate early state {Unregistered, Unknown}.
    """
    if app is None:
        return UnitStatus(SyncState.UNREGISTERED, HealthState.UNKNOWN)

    status = app.get("status") or {}
    sync_status = (status.get("sync") or {}).get("status")
    health_status = (status.get("health") or {}).get("status")
    phase = (status.get("operationState") or {}).get("phase")

    health = _HEALTH.get(health_status or "", HealthState.UNKNOWN)

    if phase in _RUNNING_PHASES:
        sync = SyncState.SYNCING
    elif phase in _FAILED_PHASES and sync_status != "Synced":
        sync = SyncState.SYNC_FAILED
    elif sync_status == "Synced":
        sync = SyncState.SYNCED
    elif sync_status == "OutOfSync":
        sync = SyncState.OUT_OF_SYNC
    else:
        sync = SyncState.REGISTERED

    return UnitStatus(sync, health)


class ApplicationStatusProbe:
    """Probe that reads Application custom resources from the cluster."""

    def __init__(self, k8s: K8sClient, namespace: str):
        self._k8s = k8s
        self._namespace = namespace

    def probe(self, unit_name: str) -> UnitStatus:
        app = self._k8s.get_application(unit_name, self._namespace)
        status = status_from_application(app)
        logger.debug("Probed unit", unit=unit_name, sync=status.sync.value, health=status.health.value)
        return status
