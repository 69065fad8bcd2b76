"""Discovery, loading and registration of deployment-unit manifests."""

from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError as PydanticValidationError

from logstackctl.clients.k8s import K8sClient
from logstackctl.config import RolloutConfig
from logstackctl.core.exceptions import RegistrationError, ValidationError
from logstackctl.core.logging import StructuredLogger
from logstackctl.rollout.models import DeploymentUnit, HealthState, SyncState, UnitStatus
from logstackctl.rollout.probe import status_from_application
from logstackctl.rollout.schema import ApplicationManifest

logger = StructuredLogger(__name__)


def validate_environment(environment: str, rollout: RolloutConfig) -> str:
    """Reject environments that are not configured."""
    if environment not in rollout.environments:
        raise ValidationError(
            f"Invalid environment: {environment}. "
            f"Must be one of: {', '.join(rollout.environments)}"
        )
    return environment


def manifest_filename(app_name: str) -> str:
    return f"argocd-{app_name}.yaml"


def load_manifest(path: Path) -> ApplicationManifest:
    """Load and validate one Application manifest file."""
    if not path.is_file():
        raise RegistrationError(f"Application manifest not found: {path}", path=str(path))

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise RegistrationError(f"Invalid YAML in {path}: {e}", path=str(path))
    except OSError as e:
        raise RegistrationError(f"Cannot read {path}: {e}", path=str(path))

    if not isinstance(data, dict):
        raise RegistrationError(f"{path} does not contain a manifest mapping", path=str(path))

    try:
        manifest = ApplicationManifest.model_validate(data)
        # Surface bad annotations at load time rather than at plan time
        manifest.to_unit()
    except (PydanticValidationError, ValueError) as e:
        raise RegistrationError(f"Invalid application manifest {path}: {e}", path=str(path))
    return manifest


def load_manifests(names: list[str], rollout: RolloutConfig) -> list[ApplicationManifest]:
    return [load_manifest(rollout.manifest_path(manifest_filename(n))) for n in names]


def operator_manifests(rollout: RolloutConfig) -> list[ApplicationManifest]:
    """Manifests for the operator-installation units."""
    return load_manifests(rollout.operators, rollout)


def environment_manifests(environment: str, rollout: RolloutConfig) -> list[ApplicationManifest]:
    """Manifests for the logging applications of one environment."""
    validate_environment(environment, rollout)
    return load_manifests(rollout.application_names(environment), rollout)


def units_from(manifests: list[ApplicationManifest], wave: int | None = None) -> list[DeploymentUnit]:
    """Build deployment units, optionally pinning all of them to one wave."""
    units = []
    for manifest in manifests:
        unit = manifest.to_unit()
        if wave is not None and unit.wave != wave:
            unit = DeploymentUnit(
                name=unit.name,
                wave=wave,
                depends_on=unit.depends_on,
                timeout=unit.timeout,
                description=unit.description,
            )
        units.append(unit)
    return units


@dataclass(frozen=True)
class RegistrationResult:
    """Registration state of one application."""

    name: str
    applied: bool
    registered: bool
    sync_state: SyncState
    warning: str | None = None


class ApplicationRegistry:
    """Apply Application manifests and verify they exist in the cluster."""

    def __init__(self, k8s: K8sClient, namespace: str, dry_run: bool = False):
        self._k8s = k8s
        self._namespace = namespace
        self._dry_run = dry_run

    def register(self, manifests: list[ApplicationManifest]) -> list[RegistrationResult]:
        """Apply every manifest in order, then verify registration."""
        applied: list[str] = []
        for manifest in manifests:
            if self._dry_run:
                logger.info("[dry-run] Would apply application", name=manifest.name)
                continue
            self._k8s.apply_application(manifest.to_resource(), self._namespace)
            applied.append(manifest.name)
            logger.info("Application applied", name=manifest.name, namespace=self._namespace)

        if self._dry_run:
            return [
                RegistrationResult(m.name, applied=False, registered=False, sync_state=SyncState.UNREGISTERED)
                for m in manifests
            ]
        return [self.verify(m.name, applied=m.name in applied) for m in manifests]

    def check_operators(self, names: list[str]) -> dict[str, UnitStatus]:
        """Require every operator Application to exist before environment apps are registered.

        Operators that exist but are not Healthy only produce a warning.

        Raises:
            RegistrationError: if an operator Application is missing
        """
        statuses: dict[str, UnitStatus] = {}
        for name in names:
            status = status_from_application(self._k8s.get_application(name, self._namespace))
            if status.sync == SyncState.UNREGISTERED:
                raise RegistrationError(
                    f"Operator application {name} not found. Run 'logstackctl operators setup' first."
                )
            if status.health != HealthState.HEALTHY:
                logger.warning("Operator is not healthy yet", name=name, health=status.health.value)
            statuses[name] = status
        return statuses

    def verify(self, name: str, applied: bool = False) -> RegistrationResult:
        """Check that an application exists; warn if it is already synced."""
        status = status_from_application(self._k8s.get_application(name, self._namespace))

        if status.sync == SyncState.UNREGISTERED:
            raise RegistrationError(f"Application {name} was not registered successfully")

        warning = None
        if status.sync == SyncState.SYNCED:
            warning = f"Application {name} is already synced; auto-sync may be enabled"
            logger.warning(warning)

        return RegistrationResult(
            name=name,
            applied=applied,
            registered=True,
            sync_state=status.sync,
            warning=warning,
        )
