"""
portalstack.cli.template — portalstack template command.

  portalstack template -f stack.yaml
  portalstack template -f stack.yaml --set useLocalCluster=false -o graph.yaml
"""

import click

from portalstack.cli.options import compose_or_exit, config_options


@click.command("template")
@config_options
@click.option("-o", "--output", default=None,
              help="Output file (default: stdout)")
def template_cmd(value_files, set_args, output):
    """Render the resource graph as YAML (without applying)."""
    stack = compose_or_exit(value_files, set_args)

    yaml_str = stack.graph.to_yaml()
    if output:
        with open(output, "w") as f:
            f.write(yaml_str)
        click.echo(f"Written to {output}", err=True)
    else:
        click.echo(yaml_str)

    for name, desc in stack.describe_outputs().items():
        click.echo(f"# output {name}: {desc}", err=True)
