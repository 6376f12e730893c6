"""
portalstack.cli.config_cmd — portalstack config command.

Prints the merged configuration with secrets masked, then validates it.
"""

import sys
import click
import yaml

from portalstack.cli.options import config_options, load_values
from portalstack.config.settings import ConfigError, load_stack_config, masked


@click.command("config")
@config_options
def config_cmd(value_files, set_args):
    """Show the effective configuration."""
    values = load_values(value_files, set_args)
    click.echo(yaml.dump(masked(values), default_flow_style=False, sort_keys=True))

    try:
        cfg = load_stack_config(values)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ valid ({cfg.target.kind} cluster)", err=True)
