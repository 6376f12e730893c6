"""
portalstack.cli.options — Options and helpers shared by the commands.
"""

import sys
import click

from portalstack.composer import compose
from portalstack.config.settings import ConfigError, load_stack_config, resolve_values
from portalstack.core.graph import GraphError


def config_options(fn):
    """-f/--values and --set, in that order of precedence."""
    fn = click.option("--set", "set_args", multiple=True,
                      help="Config override (key=value)")(fn)
    fn = click.option("-f", "--values", "value_files", multiple=True,
                      type=click.Path(), help="Config file (multiple allowed)")(fn)
    return fn


def load_values(value_files, set_args):
    try:
        return resolve_values(list(value_files), list(set_args))
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def compose_or_exit(value_files, set_args):
    """Validate configuration and compose the stack, or exit 1."""
    values = load_values(value_files, set_args)
    try:
        return compose(load_stack_config(values))
    except (ConfigError, GraphError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
