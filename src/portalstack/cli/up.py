"""
portalstack.cli.up — portalstack up command.

  portalstack up -f stack.yaml                      — kubectl + docker (minikube)
  portalstack up -f stack.yaml --engine pulumi      — Pulumi (minikube or EKS)
  portalstack up -f stack.yaml --dry-run            — client-side dry run / preview
"""

import sys
import click

from portalstack.cli.options import compose_or_exit, config_options
from portalstack.engine.base import EngineError, get_engine
from portalstack.engine.docker import BuildError


def _echo_err(message: str) -> None:
    click.echo(message, err=True)


@click.command("up")
@config_options
@click.option("--engine", "engine_name", default="kubectl",
              type=click.Choice(["kubectl", "pulumi"]),
              help="Provisioning engine")
@click.option("--dry-run", is_flag=True, default=False,
              help="Validate against the cluster without changing it")
def up_cmd(value_files, set_args, engine_name, dry_run):
    """Build the portal image and deploy the stack."""
    stack = compose_or_exit(value_files, set_args)
    label = f"{stack.name} ({stack.target.kind})"

    try:
        engine = get_engine(engine_name, echo=_echo_err)
        click.echo(f"Deploying {label} with {engine.name}...", err=True)
        result = engine.submit(stack, dry_run=dry_run)
    except BuildError as e:
        click.echo(f"Error: image build failed, nothing deployed: {e}", err=True)
        sys.exit(1)
    except EngineError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if result.dry_run:
        click.echo(f"✓ {label} dry run complete.", err=True)
        return

    click.echo(f"✓ {label} deployed successfully.", err=True)
    for name, value in result.outputs.items():
        if name == "kubeconfig":
            value = "[secret]"
        click.echo(f"{name}: {value}")
