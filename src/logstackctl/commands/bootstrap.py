"""Bootstrap command group: verify externally provisioned resources."""

import click

from logstackctl.core.context import LogstackContext, pass_context
from logstackctl.core.exceptions import ValidationError
from logstackctl.rollout.registry import validate_environment

SECRET_NAME_TEMPLATE = "{env}-openshift-logging-s3-credentials"


@click.group()
def bootstrap() -> None:
    """Bootstrap operations - verify cloud resources for an environment.

    \b
    Examples:
        logstackctl bootstrap resources dev --region us-east-2
    """
    pass


@bootstrap.command("resources")
@click.argument("environment")
@click.option("--region", required=True, help="AWS region holding the environment's resources")
@pass_context
def resources(ctx: LogstackContext, environment: str, region: str) -> None:
    """Verify the AWS identity and secret-store entry for an environment.

    Bucket and secret creation are done by the provisioning scripts; this
    command only checks their result.

    \b
    Examples:
        logstackctl bootstrap resources dev --region us-east-2
    """
    rollout = ctx.profile.rollout
    validate_environment(environment, rollout)
    secret_name = SECRET_NAME_TEMPLATE.format(env=environment)

    if ctx.dry_run:
        ctx.log_dry_run("verify AWS resources", {"environment": environment, "region": region, "secret": secret_name})
        return

    aws = ctx.aws(region=region)
    identity = aws.caller_identity()
    ctx.output.print_success(f"AWS identity: {identity.get('Arn', 'unknown')}")

    if not aws.secret_exists(secret_name):
        raise ValidationError(
            f"Secret {secret_name} not found in {region}; run the storage provisioning first"
        )
    ctx.output.print_success(f"Secret present: {secret_name}")

    ctx.output.print_data(
        {
            "environment": environment,
            "region": region,
            "account": identity.get("Account", ""),
            "secret": secret_name,
            "retention_days": rollout.retention_days.get(environment, "-"),
        },
        title="Bootstrap resources",
    )
