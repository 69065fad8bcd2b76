"""Schema for ArgoCD Application manifests that define deployment units."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from logstackctl.rollout.models import DeploymentUnit

SYNC_WAVE_ANNOTATION = "argocd.argoproj.io/sync-wave"
DEPENDS_ON_ANNOTATION = "logstackctl.io/depends-on"
TIMEOUT_ANNOTATION = "logstackctl.io/sync-timeout"
DESCRIPTION_ANNOTATION = "logstackctl.io/description"


class ManifestMetadata(BaseModel):
    """Subset of object metadata the rollout reads."""

    model_config = {"extra": "allow"}

    name: str
    namespace: str | None = None
    annotations: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)

    @field_validator("annotations", "labels", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> dict[str, str]:
        if v is None:
            return {}
        return {str(k): str(val) for k, val in dict(v).items()}


class ApplicationManifest(BaseModel):
    """An argoproj.io Application manifest."""

    model_config = {"extra": "allow", "populate_by_name": True}

    api_version: str = Field(alias="apiVersion")
    kind: str
    metadata: ManifestMetadata
    spec: dict[str, Any] = Field(default_factory=dict)

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        if v != "Application":
            raise ValueError(f"expected kind 'Application', got '{v}'")
        return v

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def wave(self) -> int:
        raw = self.metadata.annotations.get(SYNC_WAVE_ANNOTATION, "0")
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"{self.name}: sync-wave annotation '{raw}' is not an integer")

    @property
    def depends_on(self) -> frozenset[str]:
        raw = self.metadata.annotations.get(DEPENDS_ON_ANNOTATION, "")
        return frozenset(d.strip() for d in raw.split(",") if d.strip())

    @property
    def timeout(self) -> float | None:
        raw = self.metadata.annotations.get(TIMEOUT_ANNOTATION)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"{self.name}: sync-timeout annotation '{raw}' is not a number")

    def to_unit(self) -> DeploymentUnit:
        """Build the DeploymentUnit described by this manifest."""
        return DeploymentUnit(
            name=self.name,
            wave=self.wave,
            depends_on=self.depends_on,
            timeout=self.timeout,
            description=self.metadata.annotations.get(DESCRIPTION_ANNOTATION, ""),
        )

    def to_resource(self) -> dict[str, Any]:
        """Dump back to the dict form the Kubernetes API expects."""
        return self.model_dump(by_alias=True, exclude_none=True)
