"""Main CLI entry point for logstackctl."""

import sys
from typing import Any

import click
from rich.console import Console

from logstackctl import __version__
from logstackctl.config import load_config
from logstackctl.core.context import LogstackContext
from logstackctl.core.exceptions import ConfigError, LogstackError
from logstackctl.core.output import OutputFormat

CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
}


class OutputFormatType(click.ParamType):
    """Custom Click parameter type for output format."""

    name = "format"

    def convert(
        self,
        value: Any,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> OutputFormat:
        if isinstance(value, OutputFormat):
            return value
        try:
            return OutputFormat(value.lower())
        except ValueError:
            self.fail(
                f"Invalid format '{value}'. Choose from: table, json, yaml, raw",
                param,
                ctx,
            )


OUTPUT_FORMAT = OutputFormatType()


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    console = Console()
    console.print(f"logstackctl version {__version__}")
    ctx.exit()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-p",
    "--profile",
    metavar="NAME",
    envvar="LOGSTACKCTL_PROFILE",
    help="Configuration profile to use",
)
@click.option(
    "-o",
    "--output",
    "output_format",
    type=OUTPUT_FORMAT,
    metavar="FORMAT",
    help="Output format: table, json, yaml, raw",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for info, -vv for debug)",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Suppress non-essential output",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would happen without making changes",
)
@click.option(
    "--no-color",
    is_flag=True,
    help="Disable colored output",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True),
    metavar="FILE",
    envvar="LOGSTACKCTL_CONFIG",
    help="Path to config file",
)
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit",
)
@click.pass_context
def cli(
    ctx: click.Context,
    profile: str | None,
    output_format: OutputFormat | None,
    verbose: int,
    quiet: bool,
    dry_run: bool,
    no_color: bool,
    config_file: str | None,
) -> None:
    """logstackctl - phased GitOps rollout of the logging stack.

    Registers ArgoCD applications and syncs them wave by wave, waiting for
    each unit to become Synced/Healthy before moving on.

    \b
    Examples:
        logstackctl operators setup
        logstackctl bootstrap resources dev --region us-east-2
        logstackctl applications register dev
        logstackctl sync trigger dev

    \b
    Configuration:
        ~/.logstackctl/config.yaml    User configuration
        ./logstackctl.yaml            Project configuration
        LOGSTACKCTL_*                 Environment variables
    """
    try:
        config = load_config(config_file)
        ctx.obj = LogstackContext(
            config=config,
            profile=profile,
            output_format=output_format,
            verbose=verbose,
            quiet=quiet,
            dry_run=dry_run,
            color=not no_color,
        )
        # Fail on an unknown profile before any command runs
        ctx.obj.profile
    except ConfigError as e:
        console = Console(stderr=True)
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)

    ctx.call_on_close(ctx.obj.close)
    if ctx.obj.dry_run and not quiet:
        ctx.obj.output.print_warning("Dry-run mode enabled - no changes will be made")


def register_commands() -> None:
    """Register all command groups."""
    from logstackctl.commands.applications import applications
    from logstackctl.commands.bootstrap import bootstrap
    from logstackctl.commands.operators import operators
    from logstackctl.commands.sync import sync

    cli.add_command(operators)
    cli.add_command(bootstrap)
    cli.add_command(applications)
    cli.add_command(sync)


register_commands()


@cli.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Show current configuration."""
    lctx: LogstackContext = ctx.obj
    profile = lctx.profile
    config_data = {
        "profile": lctx.profile_name,
        "output_format": lctx.output_format.value,
        "dry_run": lctx.dry_run,
        "verbose": lctx.verbose,
        "aws": {
            "profile": profile.aws.get_profile(),
            "region": profile.aws.get_region(),
        },
        "k8s": {
            "kubeconfig": profile.k8s.get_kubeconfig(),
            "context": profile.k8s.get_context(),
        },
        "argocd": {
            "url": profile.argocd.get_url(),
            "namespace": profile.argocd.namespace,
            "has_token": bool(profile.argocd.get_token()),
        },
        "rollout": {
            "environments": profile.rollout.environments,
            "manifests_dir": profile.rollout.manifests_dir,
            "trigger_mode": profile.rollout.trigger_mode,
            "default_timeout": profile.rollout.default_timeout,
        },
    }
    lctx.output.print_data(config_data, title="Current Configuration")


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except LogstackError as e:
        console = Console(stderr=True)
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console = Console(stderr=True)
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
