"""Operators command group: install and converge the operator applications."""

import click

from logstackctl.commands.applications import print_registration, require_gitops_namespace
from logstackctl.commands.sync import execute_rollout, finish, make_run_config
from logstackctl.core.context import LogstackContext, pass_context
from logstackctl.rollout.registry import ApplicationRegistry, operator_manifests, units_from

OPERATORS_WAVE = 0


@click.group()
def operators() -> None:
    """Operator operations - register and converge operator applications.

    \b
    Examples:
        logstackctl operators setup
        logstackctl operators setup --timeout 600
    """
    pass


@operators.command("setup")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Per-operator timeout in seconds")
@click.option("--poll-interval", type=click.FloatRange(min=0, min_open=True), default=None, help="Seconds between status polls")
@pass_context
def setup(ctx: LogstackContext, timeout: float | None, poll_interval: float | None) -> None:
    """Register the operator applications and wait for them to converge.

    \b
    Examples:
        logstackctl operators setup
        logstackctl --dry-run operators setup
    """
    rollout = ctx.profile.rollout
    manifests = operator_manifests(rollout)
    require_gitops_namespace(ctx)

    registry = ApplicationRegistry(ctx.k8s, ctx.profile.argocd.namespace, dry_run=ctx.dry_run)
    print_registration(ctx, registry.register(manifests), title="Operator applications")

    run_config = make_run_config(
        ctx,
        environment="operators",
        timeout=timeout,
        poll_interval=poll_interval,
        default_timeout=rollout.operator_timeout,
    )
    ctx.output.print_header("Waiting for operators to be ready")
    finish(ctx, execute_rollout(ctx, units_from(manifests, wave=OPERATORS_WAVE), run_config))
