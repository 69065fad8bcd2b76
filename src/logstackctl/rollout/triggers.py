"""Sync triggers: ask the GitOps controller to reconcile a unit."""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from logstackctl.clients.argocd import ArgoCDClient
from logstackctl.clients.k8s import K8sClient
from logstackctl.core.exceptions import ArgoCDError, LogstackError, TriggerError
from logstackctl.core.logging import StructuredLogger
from logstackctl.rollout.models import TriggerAck, TriggerMethod, TriggerOutcome

logger = StructuredLogger(__name__)

HARD_REFRESH_PATCH: dict[str, Any] = {
    "metadata": {"annotations": {"argocd.argoproj.io/refresh": "hard"}},
}
SELF_HEAL_PATCH: dict[str, Any] = {
    "spec": {"syncPolicy": {"automated": {"prune": True, "selfHeal": True}}},
}

_IN_PROGRESS_MARKER = "another operation is already in progress"


class SyncTrigger(ABC):
    """A way of requesting reconciliation of one unit."""

    method: TriggerMethod

    @abstractmethod
    def trigger(self, unit_name: str) -> TriggerAck:
        """Request reconciliation.

        Success means the request was accepted, not that the unit converged.

        Raises:
            TriggerError: if the request could not be made or was refused
        """


class ArgoCDApiTrigger(SyncTrigger):
    """Primary trigger: direct sync request through the ArgoCD API."""

    method = TriggerMethod.PRIMARY

    def __init__(self, client: ArgoCDClient, prune: bool = False):
        self._client = client
        self._prune = prune
        self._session_checked = False

    def _ensure_session(self) -> None:
        if self._session_checked:
            return
        if not self._client.configured:
            raise TriggerError("ArgoCD API not configured", method=self.method.value)
        try:
            self._client.get_user_info()
        except LogstackError as e:
            raise TriggerError(f"ArgoCD session not usable: {e}", method=self.method.value)
        self._session_checked = True

    def trigger(self, unit_name: str) -> TriggerAck:
        self._ensure_session()
        try:
            result = self._client.sync_application(unit_name, prune=self._prune)
        except ArgoCDError as e:
            if _IN_PROGRESS_MARKER in e.message.lower():
                logger.info("Sync already running; treating as accepted", unit=unit_name)
                return TriggerAck(unit_name, self.method, message="operation already in progress")
            raise TriggerError(
                f"ArgoCD sync request failed: {e}",
                unit=unit_name,
                method=self.method.value,
            )

        phase = ((result or {}).get("status", {}).get("operationState") or {}).get("phase", "")
        return TriggerAck(unit_name, self.method, message=f"sync accepted{f' ({phase})' if phase else ''}")


class PatchTrigger(SyncTrigger):
    """Fallback trigger: hard-refresh patch, then enable automated self-heal.

    Both patches are attempted; one failing does not prevent the other.
    """

    method = TriggerMethod.FALLBACK

    def __init__(
        self,
        k8s: K8sClient,
        namespace: str,
        settle_seconds: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._k8s = k8s
        self._namespace = namespace
        self._settle_seconds = settle_seconds
        self._sleep = sleep

    def trigger(self, unit_name: str) -> TriggerAck:
        failures: list[str] = []

        try:
            self._k8s.patch_application(unit_name, self._namespace, HARD_REFRESH_PATCH)
            logger.info("Hard refresh requested", unit=unit_name)
        except LogstackError as e:
            logger.warning("Hard refresh patch failed", unit=unit_name, error=str(e))
            failures.append(f"refresh: {e}")

        if self._settle_seconds > 0:
            self._sleep(self._settle_seconds)

        try:
            self._k8s.patch_application(unit_name, self._namespace, SELF_HEAL_PATCH)
            logger.info("Automated sync enabled", unit=unit_name)
        except LogstackError as e:
            logger.warning("Self-heal patch failed", unit=unit_name, error=str(e))
            failures.append(f"self-heal: {e}")

        if len(failures) == 2:
            raise TriggerError(
                "; ".join(failures),
                unit=unit_name,
                method=self.method.value,
            )
        return TriggerAck(unit_name, self.method, message="patched", warnings=tuple(failures))


class TriggerPolicy:
    """Try triggers in preference order and report what happened.

    Never raises for trigger failures; the health gate decides whether the
    unit failed.
    """

    def __init__(self, triggers: list[SyncTrigger]):
        if not triggers:
            raise ValueError("at least one trigger is required")
        self._triggers = triggers

    @property
    def triggers(self) -> list[SyncTrigger]:
        return list(self._triggers)

    def trigger(self, unit_name: str) -> TriggerOutcome:
        errors: list[str] = []
        for index, trig in enumerate(self._triggers):
            try:
                ack = trig.trigger(unit_name)
                return TriggerOutcome(method=trig.method, ack=ack)
            except TriggerError as e:
                errors.append(f"{trig.method.value}: {e.message}")
                if index + 1 < len(self._triggers):
                    logger.warning(
                        "Trigger failed, falling back",
                        unit=unit_name,
                        method=trig.method.value,
                        error=e.message,
                    )

        logger.warning("All triggers failed; awaiting convergence anyway", unit=unit_name)
        return TriggerOutcome(
            method=self._triggers[-1].method,
            error="; ".join(errors),
        )


def build_trigger_policy(
    mode: str,
    argocd: ArgoCDClient,
    k8s: K8sClient,
    namespace: str,
    settle_seconds: float = 5.0,
) -> TriggerPolicy:
    """Assemble the trigger chain for a configured mode (auto, primary, fallback)."""
    primary = ArgoCDApiTrigger(argocd)
    fallback = PatchTrigger(k8s, namespace, settle_seconds=settle_seconds)

    if mode == "primary":
        return TriggerPolicy([primary])
    if mode == "fallback":
        return TriggerPolicy([fallback])
    if mode == "auto":
        return TriggerPolicy([primary, fallback])
    raise ValueError(f"unknown trigger mode: {mode}")
