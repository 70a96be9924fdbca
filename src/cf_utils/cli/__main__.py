#!/usr/bin/env python3
"""Main CLI entry point for cf-utils."""

import logging
import sys
from typing import Optional

import click

from ..config import load_config
from ..errors import ConfigurationError
from .stack import main as stack_commands


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # botocore is very chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.INFO if verbose else logging.WARNING)


@click.group()
@click.version_option(package_name="cf-utils")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), help="YAML configuration file")
@click.option("--profile", help="AWS profile to use")
@click.option("--region", help="AWS region")
@click.option("--env", "environment_stage", help="Environment stage")
@click.option("--org", "organization", help="Organization tag")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: Optional[str],
    profile: Optional[str],
    region: Optional[str],
    environment_stage: Optional[str],
    organization: Optional[str],
    verbose: bool,
) -> None:
    """CloudFormation deployment pipeline utilities."""
    configure_logging(verbose)
    try:
        ctx.obj = load_config(
            config_file,
            overrides={
                "aws_profile": profile,
                "aws_region": region,
                "environment_stage": environment_stage,
                "organization": organization,
            },
        )
    except ConfigurationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)


cli.add_command(stack_commands, name="stack")


if __name__ == "__main__":
    cli()
