"""Rendering of deployment runs."""

from rich.table import Table

from logstackctl.core.output import OutputFormat, OutputFormatter, format_duration
from logstackctl.rollout.models import GateResult, HealthState
from logstackctl.rollout.run import DeploymentRun

_RESULT_STYLE = {
    GateResult.CONVERGED: "[green]OK[/green]",
    GateResult.TIMED_OUT: "[red]TIMEOUT[/red]",
    GateResult.ABORTED: "[yellow]CANCELLED[/yellow]",
}

_HEALTH_STYLE = {
    HealthState.HEALTHY: "green",
    HealthState.PROGRESSING: "cyan",
    HealthState.DEGRADED: "yellow",
    HealthState.UNKNOWN: "dim",
}


def run_table(run: DeploymentRun) -> Table:
    """Build the per-unit outcome table."""
    title = f"Rollout {run.id} ({run.environment}{', dry-run' if run.dry_run else ''})"
    table = Table(title=title)
    table.add_column("Unit", style="cyan")
    table.add_column("Wave", justify="right")
    table.add_column("Trigger")
    table.add_column("Sync")
    table.add_column("Health")
    table.add_column("Polls", justify="right")
    table.add_column("Degraded", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Result", justify="center")

    for outcome in sorted(run.unit_outcomes.values(), key=lambda o: (o.wave, o.name)):
        trigger = outcome.trigger_method_used.value
        if outcome.trigger_error:
            trigger = f"[red]{trigger} (failed)[/red]"
        health_style = _HEALTH_STYLE[outcome.final_health_state]
        duration = outcome.duration_seconds
        table.add_row(
            outcome.name,
            str(outcome.wave),
            trigger,
            outcome.final_sync_state.value,
            f"[{health_style}]{outcome.final_health_state.value}[/{health_style}]",
            str(outcome.attempts),
            str(outcome.degraded_observations),
            format_duration(duration) if duration is not None else "-",
            _RESULT_STYLE.get(outcome.gate_result, "-") if outcome.gate_result else "-",
        )

    return table


def render_run(run: DeploymentRun, output: OutputFormatter) -> None:
    """Print a run in the configured output format.

    Abort details always go to stderr so scripts can rely on them.
    """
    if output.format in (OutputFormat.JSON, OutputFormat.YAML, OutputFormat.RAW):
        output.print_data(run.to_dict())
    else:
        if run.unit_outcomes:
            output.print_table(run_table(run))
        if run.succeeded:
            output.print_success(
                f"All waves converged for {run.environment} in {format_duration(run.duration_seconds)}"
            )

    if not run.succeeded:
        output.print_error(f"Aborted: unit={run.outcome.unit or '-'} reason={run.outcome.reason}")
        unreached = [o for o in run.unit_outcomes.values() if not o.converged]
        for outcome in unreached:
            if outcome.trigger_error:
                output.print_error(f"{outcome.name}: trigger failed: {outcome.trigger_error}")
