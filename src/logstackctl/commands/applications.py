"""Applications command group: register and inspect deployment units."""

import click

from logstackctl.core.context import LogstackContext, pass_context
from logstackctl.core.exceptions import ValidationError
from logstackctl.rollout.planner import plan_units
from logstackctl.rollout.registry import (
    ApplicationRegistry,
    RegistrationResult,
    environment_manifests,
    units_from,
)


def require_gitops_namespace(ctx: LogstackContext) -> None:
    """Fail early when the GitOps controller namespace is missing."""
    namespace = ctx.profile.argocd.namespace
    if ctx.dry_run:
        return
    if not ctx.k8s.namespace_exists(namespace):
        raise ValidationError(
            f"OpenShift GitOps (ArgoCD) namespace '{namespace}' not found. Please install it first."
        )


def print_registration(ctx: LogstackContext, results: list[RegistrationResult], title: str) -> None:
    rows = [
        {
            "name": r.name,
            "registered": "dry-run" if ctx.dry_run else ("yes" if r.registered else "no"),
            "sync": r.sync_state.value,
            "note": r.warning or "",
        }
        for r in results
    ]
    ctx.output.print_data(rows, headers=["name", "registered", "sync", "note"], title=title)


@click.group()
def applications() -> None:
    """Application operations - register, plan.

    \b
    Examples:
        logstackctl applications register dev
        logstackctl applications plan dev
    """
    pass


@applications.command("register")
@click.argument("environment")
@pass_context
def register(ctx: LogstackContext, environment: str) -> None:
    """Register the logging applications of an environment (no sync).

    \b
    Examples:
        logstackctl applications register dev
        logstackctl --dry-run applications register production
    """
    manifests = environment_manifests(environment, ctx.profile.rollout)
    # Validate the plan before touching the cluster
    plan_units(units_from(manifests))
    require_gitops_namespace(ctx)

    registry = ApplicationRegistry(ctx.k8s, ctx.profile.argocd.namespace, dry_run=ctx.dry_run)
    if not ctx.dry_run:
        registry.check_operators(ctx.profile.rollout.operators)
    results = registry.register(manifests)

    print_registration(ctx, results, title=f"Registered applications ({environment})")
    if not ctx.dry_run:
        ctx.output.print_success(f"Applications registered for {environment}")
        ctx.output.print_info(f"Next: logstackctl sync trigger {environment}")


@applications.command("plan")
@click.argument("environment")
@pass_context
def plan(ctx: LogstackContext, environment: str) -> None:
    """Show the wave plan for an environment without contacting the cluster.

    \b
    Examples:
        logstackctl applications plan dev
    """
    units = units_from(environment_manifests(environment, ctx.profile.rollout))
    execution_plan = plan_units(units)

    rows = [
        {
            "wave": wave.number,
            "name": unit.name,
            "depends_on": ",".join(sorted(unit.depends_on)) or "-",
            "timeout": f"{unit.timeout:g}s" if unit.timeout else "default",
        }
        for wave in execution_plan.waves
        for unit in wave.units
    ]
    ctx.output.print_data(rows, headers=["wave", "name", "depends_on", "timeout"], title=f"Rollout plan ({environment})")
