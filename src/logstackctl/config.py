"""Configuration management for logstackctl using Pydantic."""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from logstackctl.core.exceptions import ConfigError
from logstackctl.core.logging import LogLevel
from logstackctl.core.output import OutputFormat


class AWSConfig(BaseModel):
    """AWS configuration."""

    profile: str | None = None
    region: str | None = None
    endpoint_url: str | None = None

    def get_profile(self) -> str | None:
        """Get AWS profile from config or environment."""
        return (
            os.environ.get("LOGSTACKCTL_AWS_PROFILE")
            or os.environ.get("AWS_PROFILE")
            or self.profile
        )

    def get_region(self) -> str | None:
        """Get AWS region from config or environment."""
        return (
            os.environ.get("LOGSTACKCTL_AWS_REGION")
            or os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
            or self.region
        )


class K8sConfig(BaseModel):
    """Kubernetes configuration."""

    kubeconfig: str | None = None
    context: str | None = None

    def get_kubeconfig(self) -> str | None:
        """Get kubeconfig path from config or environment."""
        return (
            os.environ.get("LOGSTACKCTL_KUBECONFIG")
            or os.environ.get("KUBECONFIG")
            or self.kubeconfig
        )

    def get_context(self) -> str | None:
        """Get k8s context from config or environment."""
        return os.environ.get("LOGSTACKCTL_K8S_CONTEXT") or self.context


class ArgoCDConfig(BaseModel):
    """ArgoCD configuration."""

    url: str | None = None
    token: str | None = None
    insecure: bool = False
    timeout: int = 30
    namespace: str = "openshift-gitops"

    def get_url(self) -> str | None:
        """Get ArgoCD URL from config or environment."""
        return (
            os.environ.get("LOGSTACKCTL_ARGOCD_URL")
            or os.environ.get("ARGOCD_SERVER")
            or self.url
        )

    def get_token(self) -> str | None:
        """Get ArgoCD token from config or environment."""
        token = self.token
        if token == "from_env" or token is None:
            token = (
                os.environ.get("LOGSTACKCTL_ARGOCD_TOKEN")
                or os.environ.get("ARGOCD_AUTH_TOKEN")
            )
        return token


class RolloutConfig(BaseModel):
    """Phased rollout settings."""

    environments: list[str] = Field(default_factory=lambda: ["dev", "staging", "production"])
    manifests_dir: str = "apps/applications"
    operators: list[str] = Field(
        default_factory=lambda: [
            "external-secrets-operator",
            "loki-operator",
            "observability-operator",
        ]
    )
    application_templates: list[str] = Field(
        default_factory=lambda: [
            "logging-infrastructure-{env}",
            "logging-forwarder-{env}",
        ]
    )
    default_timeout: int = 600
    operator_timeout: int = 300
    poll_interval: float | None = None
    trigger_mode: Literal["auto", "primary", "fallback"] = "auto"
    max_concurrent: int = 1
    refresh_settle_seconds: float = 5.0
    run_timeout: int | None = None
    confirm_environments: list[str] = Field(default_factory=lambda: ["production"])
    retention_days: dict[str, int] = Field(
        default_factory=lambda: {"dev": 7, "staging": 30, "production": 90}
    )

    @field_validator("max_concurrent")
    @classmethod
    def validate_max_concurrent(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_concurrent must be at least 1")
        return v

    @field_validator("default_timeout", "operator_timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    def manifest_path(self, filename: str) -> Path:
        """Resolve a manifest filename against the manifests directory."""
        return Path(self.manifests_dir) / filename

    def application_names(self, environment: str) -> list[str]:
        """Expand the application name templates for an environment."""
        return [t.format(env=environment) for t in self.application_templates]


class ProfileConfig(BaseModel):
    """Profile configuration grouping all service settings."""

    aws: AWSConfig = Field(default_factory=AWSConfig)
    k8s: K8sConfig = Field(default_factory=K8sConfig)
    argocd: ArgoCDConfig = Field(default_factory=ArgoCDConfig)
    rollout: RolloutConfig = Field(default_factory=RolloutConfig)


class GlobalConfig(BaseModel):
    """Global settings."""

    output_format: OutputFormat = OutputFormat.TABLE
    verbosity: LogLevel = LogLevel.WARNING
    dry_run: bool = False


class LogstackConfig(BaseModel):
    """Main configuration model."""

    model_config = {"populate_by_name": True}

    version: str = "1"
    global_settings: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    profiles: dict[str, ProfileConfig] = Field(default_factory=lambda: {"default": ProfileConfig()})

    def get_profile(self, name: str | None = None) -> ProfileConfig:
        """Get a profile by name, defaulting to 'default'."""
        profile_name = name or "default"
        if profile_name not in self.profiles:
            raise ConfigError(f"Profile '{profile_name}' not found")
        return self.profiles[profile_name]


class ConfigLoader:
    """Loads and merges configuration from multiple sources."""

    CONFIG_FILENAMES = [
        "logstackctl.yaml",
        "logstackctl.yml",
        ".logstackctl.yaml",
        ".logstackctl.yml",
    ]

    def __init__(self, user_config_path: Path | None = None):
        self._user_config_path = user_config_path
        self._config: LogstackConfig | None = None

    def load(self, config_file: str | Path | None = None) -> LogstackConfig:
        """Load configuration from files.

        Priority (highest to lowest):
        1. Explicitly specified config file
        2. Project config (./logstackctl.yaml, searched upwards)
        3. User config (~/.logstackctl/config.yaml)

        Args:
            config_file: Optional explicit config file path

        Returns:
            Merged configuration
        """
        configs: list[dict[str, Any]] = []

        user_config_path = self._user_config_path or Path.home() / ".logstackctl" / "config.yaml"
        if user_config_path.exists():
            configs.append(self._load_yaml_file(user_config_path))

        project_config = self._find_project_config()
        if project_config:
            configs.append(self._load_yaml_file(project_config))

        if config_file:
            config_path = Path(config_file)
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_file}")
            configs.append(self._load_yaml_file(config_path))

        merged = self._merge_configs(configs)

        try:
            self._config = LogstackConfig(**merged)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration: {e}")
        return self._config

    def _find_project_config(self) -> Path | None:
        """Find project config file in current or parent directories."""
        current = Path.cwd()

        while current != current.parent:
            for filename in self.CONFIG_FILENAMES:
                config_path = current / filename
                if config_path.exists():
                    return config_path
            current = current.parent

        return None

    def _load_yaml_file(self, path: Path) -> dict[str, Any]:
        """Load a YAML config file."""
        try:
            with open(path) as f:
                content = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}")

        if not isinstance(content, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return content

    def _merge_configs(self, configs: list[dict[str, Any]]) -> dict[str, Any]:
        """Deep merge multiple configuration dictionaries."""
        result: dict[str, Any] = {}
        for config in configs:
            result = self._deep_merge(result, config)
        return result

    def _deep_merge(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result


# Global config loader instance
_config_loader = ConfigLoader()


def load_config(config_file: str | Path | None = None) -> LogstackConfig:
    """Load logstackctl configuration.

    Args:
        config_file: Optional explicit config file path

    Returns:
        Loaded configuration
    """
    return _config_loader.load(config_file)


def get_default_config() -> LogstackConfig:
    """Get default configuration without loading from files."""
    return LogstackConfig()
