"""
portalstack.cli — CLI entry point.

Commands:
  portalstack template [flags]   — Render the resource graph as YAML
  portalstack up [flags]         — Build, push and deploy
  portalstack config [flags]     — Show the effective configuration
"""

import click

from portalstack.cli.template import template_cmd
from portalstack.cli.up import up_cmd
from portalstack.cli.config_cmd import config_cmd


@click.group()
@click.version_option(package_name="portalstack")
def main():
    """portalstack — Backstage on minikube or EKS."""
    pass


main.add_command(template_cmd, "template")
main.add_command(up_cmd, "up")
main.add_command(config_cmd, "config")
