"""Sync command group: trigger and observe phased GitOps rollouts."""

import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import click

from logstackctl.core.context import LogstackContext, pass_context
from logstackctl.core.exceptions import LogstackError
from logstackctl.rollout import (
    CancellationToken,
    DeploymentRun,
    DeploymentUnit,
    HealthGate,
    RunConfig,
    SyncOrchestrator,
    build_trigger_policy,
)
from logstackctl.rollout.probe import ApplicationStatusProbe
from logstackctl.rollout.registry import environment_manifests, units_from
from logstackctl.rollout.report import render_run


@contextmanager
def cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    """Turn SIGINT into a run-level cancel while the rollout is running."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum: int, frame: Any) -> None:
        token.cancel("interrupted")

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def make_run_config(
    ctx: LogstackContext,
    environment: str,
    dry_run: bool = False,
    timeout: float | None = None,
    poll_interval: float | None = None,
    trigger_mode: str | None = None,
    max_concurrent: int | None = None,
    default_timeout: float | None = None,
) -> RunConfig:
    """Build the immutable run settings from profile config and CLI flags."""
    rollout = ctx.profile.rollout
    return RunConfig(
        environment=environment,
        namespace=ctx.profile.argocd.namespace,
        dry_run=dry_run or ctx.dry_run,
        timeout=timeout,
        default_timeout=default_timeout or rollout.default_timeout,
        poll_interval=poll_interval if poll_interval is not None else rollout.poll_interval,
        trigger_mode=trigger_mode or rollout.trigger_mode,  # type: ignore[arg-type]
        max_concurrent=max_concurrent or rollout.max_concurrent,
        run_timeout=rollout.run_timeout,
    )


def execute_rollout(
    ctx: LogstackContext,
    units: list[DeploymentUnit],
    run_config: RunConfig,
) -> DeploymentRun:
    """Wire probe, gate and triggers for the cluster and run the orchestrator."""
    probe = ApplicationStatusProbe(ctx.k8s, run_config.namespace)
    triggers = build_trigger_policy(
        run_config.trigger_mode,
        ctx.argocd,
        ctx.k8s,
        run_config.namespace,
        settle_seconds=ctx.profile.rollout.refresh_settle_seconds,
    )
    token = CancellationToken.with_timeout(run_config.run_timeout)
    orchestrator = SyncOrchestrator(triggers, HealthGate(probe), run_config, token=token)

    with cancel_on_interrupt(token):
        return orchestrator.run(units)


def finish(ctx: LogstackContext, run: DeploymentRun) -> None:
    """Report a run and exit 1 if it was aborted."""
    render_run(run, ctx.output)
    if not run.succeeded:
        sys.exit(1)


@click.group()
def sync() -> None:
    """Sync operations - trigger phased rollouts, show unit status.

    \b
    Examples:
        logstackctl sync trigger dev
        logstackctl sync trigger production --timeout 900 -y
        logstackctl sync status dev
    """
    pass


@sync.command("trigger")
@click.argument("environment")
@click.option("--dry-run", "local_dry_run", is_flag=True, help="Skip trigger side effects; still probe real state")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Per-unit timeout in seconds")
@click.option("--poll-interval", type=click.FloatRange(min=0, min_open=True), default=None, help="Seconds between status polls")
@click.option(
    "--trigger-mode",
    type=click.Choice(["auto", "primary", "fallback"]),
    default=None,
    help="Trigger mechanism: ArgoCD API with patch fallback, API only, or patch only",
)
@click.option("--max-concurrent", type=click.IntRange(min=1), default=None, help="Units of one wave processed at once")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation")
@pass_context
def trigger(
    ctx: LogstackContext,
    environment: str,
    local_dry_run: bool,
    timeout: float | None,
    poll_interval: float | None,
    trigger_mode: str | None,
    max_concurrent: int | None,
    yes: bool,
) -> None:
    """Roll out the registered applications of an environment wave by wave.

    Each unit is triggered and must reach Synced/Healthy before the next
    wave starts. Exits 1 if any unit times out.

    \b
    Examples:
        logstackctl sync trigger dev
        logstackctl sync trigger dev --dry-run
        logstackctl sync trigger staging --timeout 300 --poll-interval 10
    """
    rollout = ctx.profile.rollout
    units = units_from(environment_manifests(environment, rollout))
    run_config = make_run_config(
        ctx,
        environment,
        dry_run=local_dry_run,
        timeout=timeout,
        poll_interval=poll_interval,
        trigger_mode=trigger_mode,
        max_concurrent=max_concurrent,
    )

    if (
        environment in rollout.confirm_environments
        and not run_config.dry_run
        and not yes
        and not ctx.confirm(f"You are about to sync the {environment.upper()} environment. Proceed?")
    ):
        ctx.output.print_info("Cancelled")
        return

    if run_config.dry_run:
        ctx.output.print_warning("Dry-run: no sync will be triggered; status is still probed")

    ctx.output.print_header(f"Triggering rollout for {environment}")
    finish(ctx, execute_rollout(ctx, units, run_config))


@sync.command("status")
@click.argument("environment")
@pass_context
def status(ctx: LogstackContext, environment: str) -> None:
    """Show the current sync/health status of an environment's units.

    \b
    Examples:
        logstackctl sync status dev
        logstackctl -o json sync status production
    """
    rollout = ctx.profile.rollout
    units = units_from(environment_manifests(environment, rollout))
    probe = ApplicationStatusProbe(ctx.k8s, ctx.profile.argocd.namespace)

    rows = []
    for unit in sorted(units, key=lambda u: (u.wave, u.name)):
        try:
            state = probe.probe(unit.name)
            sync_state, health = state.sync.value, state.health.value
        except LogstackError as e:
            sync_state, health = "error", str(e)
        rows.append({
            "name": unit.name,
            "wave": unit.wave,
            "depends_on": ",".join(sorted(unit.depends_on)) or "-",
            "sync": sync_state,
            "health": health,
        })

    ctx.output.print_data(
        rows,
        headers=["name", "wave", "depends_on", "sync", "health"],
        title=f"Applications ({environment})",
    )
