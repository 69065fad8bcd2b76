"""Pytest fixtures for logstackctl tests."""

import os
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner
from urllib3.exceptions import MaxRetryError

from logstackctl.clients.k8s import K8sClient
from logstackctl.config import (
    ArgoCDConfig,
    AWSConfig,
    K8sConfig,
    LogstackConfig,
    ProfileConfig,
    RolloutConfig,
)
from logstackctl.core.context import LogstackContext
from logstackctl.core.exceptions import TriggerError
from logstackctl.core.output import OutputFormat
from logstackctl.rollout.gate import CancellationToken
from logstackctl.rollout.models import (
    HealthState,
    SyncState,
    TriggerAck,
    TriggerMethod,
    UnitStatus,
)
from logstackctl.rollout.triggers import SyncTrigger

SYNCED_HEALTHY = UnitStatus(SyncState.SYNCED, HealthState.HEALTHY)
OUT_OF_SYNC = UnitStatus(SyncState.OUT_OF_SYNC, HealthState.PROGRESSING)
SYNCING_DEGRADED = UnitStatus(SyncState.SYNCING, HealthState.DEGRADED)


class FakeClock:
    """Manually advanced monotonic clock; ``sleep`` matches the gate's Sleeper."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float, token: CancellationToken | None = None) -> bool:
        self.sleeps.append(seconds)
        self.now += seconds
        return token is not None and token.cancelled


class ScriptedProbe:
    """Probe returning a scripted status sequence per unit; the last entry repeats."""

    def __init__(self, script: dict[str, list], events: list | None = None):
        self.script = {name: list(states) for name, states in script.items()}
        self.calls: list[str] = []
        self.events = events if events is not None else []

    def probe(self, unit_name: str) -> UnitStatus:
        self.calls.append(unit_name)
        self.events.append(("probe", unit_name))
        states = self.script.get(unit_name) or [UnitStatus(SyncState.UNREGISTERED, HealthState.UNKNOWN)]
        current = states[0] if len(states) == 1 else states.pop(0)
        if isinstance(current, Exception):
            raise current
        return current


class RecordingTrigger(SyncTrigger):
    """Trigger that records calls and optionally fails for some units."""

    def __init__(
        self,
        method: TriggerMethod = TriggerMethod.PRIMARY,
        fail_for: set[str] | None = None,
        events: list | None = None,
    ):
        self.method = method
        self.fail_for = fail_for or set()
        self.calls: list[str] = []
        self.events = events if events is not None else []

    def trigger(self, unit_name: str) -> TriggerAck:
        self.calls.append(unit_name)
        self.events.append((self.method.value, unit_name))
        if unit_name in self.fail_for or "*" in self.fail_for:
            raise TriggerError(f"{self.method.value} refused", unit=unit_name, method=self.method.value)
        return TriggerAck(unit_name, self.method, message="ok")


def application_manifest(
    name: str,
    wave: int | None = None,
    depends_on: list[str] | None = None,
    timeout: int | None = None,
) -> dict:
    """Build an argoproj.io Application manifest dict."""
    annotations: dict[str, str] = {}
    if wave is not None:
        annotations["argocd.argoproj.io/sync-wave"] = str(wave)
    if depends_on:
        annotations["logstackctl.io/depends-on"] = ",".join(depends_on)
    if timeout is not None:
        annotations["logstackctl.io/sync-timeout"] = str(timeout)
    return {
        "apiVersion": "argoproj.io/v1alpha1",
        "kind": "Application",
        "metadata": {
            "name": name,
            "namespace": "openshift-gitops",
            "annotations": annotations,
        },
        "spec": {
            "project": "default",
            "source": {"repoURL": "https://git.example.com/logging.git", "path": f"apps/{name}"},
            "destination": {"server": "https://kubernetes.default.svc"},
        },
    }


def write_manifest(directory: Path, manifest: dict) -> Path:
    path = directory / f"argocd-{manifest['metadata']['name']}.yaml"
    path.write_text(yaml.safe_dump(manifest))
    return path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner."""
    return CliRunner()


@pytest.fixture
def events() -> list:
    """Shared, ordered log of trigger and probe calls."""
    return []


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manifests_dir(tmp_path: Path) -> Path:
    """Directory with the operator and dev/production logging manifests."""
    directory = tmp_path / "apps" / "applications"
    directory.mkdir(parents=True)
    for operator in ("external-secrets-operator", "loki-operator", "observability-operator"):
        write_manifest(directory, application_manifest(operator))
    for env in ("dev", "production"):
        write_manifest(directory, application_manifest(f"logging-infrastructure-{env}", wave=2, timeout=600))
        write_manifest(
            directory,
            application_manifest(
                f"logging-forwarder-{env}",
                wave=3,
                depends_on=[f"logging-infrastructure-{env}"],
                timeout=300,
            ),
        )
    return directory


@pytest.fixture
def mock_config(manifests_dir: Path) -> LogstackConfig:
    """Create a mock configuration."""
    return LogstackConfig(
        profiles={
            "default": ProfileConfig(
                aws=AWSConfig(profile="test", region="us-east-2"),
                k8s=K8sConfig(context="test"),
                argocd=ArgoCDConfig(url="https://argocd.test.com", token="test-token"),
                rollout=RolloutConfig(manifests_dir=str(manifests_dir), refresh_settle_seconds=0),
            )
        }
    )


@pytest.fixture
def mock_context(mock_config: LogstackConfig) -> LogstackContext:
    """Create a mock logstackctl context."""
    return LogstackContext(
        config=mock_config,
        profile="default",
        output_format=OutputFormat.TABLE,
        verbose=0,
        quiet=False,
        dry_run=False,
        color=False,
    )


@pytest.fixture
def config_file(tmp_path: Path, mock_config: LogstackConfig) -> str:
    """Write the mock configuration to a file usable with ``--config``."""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(mock_config.model_dump(mode="json", by_alias=True)))
    return str(path)


@pytest.fixture
def unreachable_k8s() -> K8sClient:
    """Real K8sClient whose API server refuses every connection."""
    client = K8sClient(K8sConfig())
    client._loaded = True
    refused = MaxRetryError(None, "/apis/argoproj.io/v1alpha1", reason=ConnectionRefusedError("Connection refused"))
    client._custom_objects = MagicMock()
    client._custom_objects.get_namespaced_custom_object.side_effect = refused
    client._custom_objects.patch_namespaced_custom_object.side_effect = refused
    return client


@pytest.fixture
def mock_k8s() -> Generator[MagicMock, None, None]:
    """Patch the Kubernetes client used by commands."""
    with patch("logstackctl.clients.k8s.K8sClient") as mock_cls:
        yield mock_cls.return_value


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Clean environment variables before each test."""
    env_vars = [
        "LOGSTACKCTL_PROFILE",
        "LOGSTACKCTL_CONFIG",
        "LOGSTACKCTL_AWS_PROFILE",
        "LOGSTACKCTL_AWS_REGION",
        "LOGSTACKCTL_KUBECONFIG",
        "LOGSTACKCTL_K8S_CONTEXT",
        "LOGSTACKCTL_ARGOCD_URL",
        "LOGSTACKCTL_ARGOCD_TOKEN",
        "ARGOCD_SERVER",
        "ARGOCD_AUTH_TOKEN",
        "AWS_PROFILE",
        "AWS_REGION",
        "AWS_DEFAULT_REGION",
        "KUBECONFIG",
    ]

    original = {k: os.environ.get(k) for k in env_vars}

    for k in env_vars:
        os.environ.pop(k, None)

    yield

    for k, v in original.items():
        if v is not None:
            os.environ[k] = v
        else:
            os.environ.pop(k, None)
