"""Click context object for sharing state across commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from logstackctl.config import LogstackConfig, ProfileConfig, get_default_config
from logstackctl.core.logging import LogLevel, setup_logging
from logstackctl.core.output import OutputFormat, OutputFormatter

if TYPE_CHECKING:
    from logstackctl.clients.argocd import ArgoCDClient
    from logstackctl.clients.aws import AWSClientFactory
    from logstackctl.clients.k8s import K8sClient


class LogstackContext:
    """Shared context object for logstackctl commands.

    This object is passed through Click's context mechanism and provides
    access to configuration, clients, and utilities.
    """

    def __init__(
        self,
        config: LogstackConfig | None = None,
        profile: str | None = None,
        output_format: OutputFormat | None = None,
        verbose: int = 0,
        quiet: bool = False,
        dry_run: bool = False,
        color: bool = True,
    ):
        self._config = config or get_default_config()
        self._profile_name = profile or "default"

        # Output settings (CLI overrides config)
        self._output_format = output_format or self._config.global_settings.output_format
        self._verbose = verbose
        self._quiet = quiet
        self._dry_run = dry_run or self._config.global_settings.dry_run
        self._color = color

        if verbose >= 2:
            log_level = LogLevel.DEBUG
        elif verbose == 1:
            log_level = LogLevel.INFO
        elif quiet:
            log_level = LogLevel.ERROR
        else:
            log_level = self._config.global_settings.verbosity

        setup_logging(log_level, rich_output=color)

        self._output = OutputFormatter(
            format=self._output_format,
            color=color,
            quiet=quiet,
        )

        # Lazy-loaded clients
        self._argocd_client: ArgoCDClient | None = None
        self._k8s_client: K8sClient | None = None
        self._aws_factory: AWSClientFactory | None = None

    @property
    def config(self) -> LogstackConfig:
        """Get the loaded configuration."""
        return self._config

    @property
    def profile(self) -> ProfileConfig:
        """Get the current profile configuration."""
        return self._config.get_profile(self._profile_name)

    @property
    def profile_name(self) -> str:
        return self._profile_name

    @property
    def output(self) -> OutputFormatter:
        return self._output

    @property
    def output_format(self) -> OutputFormat:
        return self._output_format

    @property
    def dry_run(self) -> bool:
        """Check if dry-run mode is enabled."""
        return self._dry_run

    @property
    def verbose(self) -> int:
        return self._verbose

    @property
    def argocd(self) -> "ArgoCDClient":
        """Get or create ArgoCD client."""
        if self._argocd_client is None:
            from logstackctl.clients.argocd import ArgoCDClient

            self._argocd_client = ArgoCDClient(self.profile.argocd)
        return self._argocd_client

    @property
    def k8s(self) -> "K8sClient":
        """Get or create Kubernetes client."""
        if self._k8s_client is None:
            from logstackctl.clients.k8s import K8sClient

            self._k8s_client = K8sClient(self.profile.k8s)
        return self._k8s_client

    def aws(self, region: str | None = None) -> "AWSClientFactory":
        """Get or create AWS client factory."""
        if self._aws_factory is None or region:
            from logstackctl.clients.aws import AWSClientFactory

            self._aws_factory = AWSClientFactory(self.profile.aws, region=region)
        return self._aws_factory

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask for user confirmation.

        In dry-run mode, always returns True without prompting.
        """
        if self._dry_run:
            self._output.print(f"[dim][dry-run] Would prompt: {message}[/dim]")
            return True
        return self._output.confirm(message, default)

    def log_dry_run(self, action: str, details: dict[str, Any] | None = None) -> None:
        """Log a dry-run action."""
        if self._dry_run:
            msg = f"[dry-run] {action}"
            if details:
                detail_str = ", ".join(f"{k}={v}" for k, v in details.items())
                msg = f"{msg} ({detail_str})"
            self._output.print(f"[dim]{msg}[/dim]")

    def close(self) -> None:
        """Release client connections."""
        if self._argocd_client is not None:
            self._argocd_client.close()


# Click decorator for passing context
pass_context = click.make_pass_decorator(LogstackContext, ensure=True)
