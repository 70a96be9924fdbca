#!/usr/bin/env python3
"""
CloudFormation stack CLI commands.
"""

import asyncio
import json
import sys
from typing import Dict, Tuple

import click
from botocore.exceptions import ClientError

from ..aws import AwsContext
from ..cloudformation import StackManager, UpsertOptions
from ..config import ProjectConfig
from ..errors import CfUtilsError, ReviewRejectedError


def parse_parameters(values: Tuple[str, ...]) -> Dict[str, str]:
    """Parse KEY=VALUE pairs, preserving order."""
    parameters: Dict[str, str] = {}
    for value in values:
        key, sep, rest = value.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{value}'", param_hint="--parameter")
        if key in parameters:
            raise click.BadParameter(f"Duplicate parameter '{key}'", param_hint="--parameter")
        parameters[key] = rest
    return parameters


def create_manager(config: ProjectConfig) -> StackManager:
    return StackManager(AwsContext.from_config(config))


@click.group()
def main() -> None:
    """CloudFormation stack management commands."""
    pass


@main.command()
@click.argument("stack_name")
@click.argument("template")
@click.option("--parameter", "-p", "parameters", multiple=True, help="Stack parameter as KEY=VALUE")
@click.option("--review", is_flag=True, help="Preview changes and ask before updating")
@click.option("--s3-bucket", help="Stage the template in this bucket and deploy by URL")
@click.option("--s3-prefix", default="", help="Key prefix for the staged template")
@click.option("--transforms/--no-transforms", default=None, help="Override transform detection")
@click.pass_obj
def upsert(config, stack_name, template, parameters, review, s3_bucket, s3_prefix, transforms) -> None:
    """Create or update a stack from a template."""
    params = parse_parameters(parameters)
    options = UpsertOptions(
        review=review, s3_bucket=s3_bucket, s3_prefix=s3_prefix, contains_transforms=transforms
    )
    try:
        manager = create_manager(config)
        stack = asyncio.run(manager.upsert_stack(stack_name, template, params, options))
    except ReviewRejectedError as e:
        click.echo(f"⚠️  {e}", err=True)
        sys.exit(2)
    except (CfUtilsError, ClientError) as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    click.echo(f"✅ {stack_name}: {stack.status if stack else 'no changes'}")


@main.command()
@click.argument("stack_name")
@click.pass_obj
def delete(config, stack_name) -> None:
    """Delete a stack, emptying its output buckets first."""
    try:
        manager = create_manager(config)
        asyncio.run(manager.delete_stack(stack_name))
    except (CfUtilsError, ClientError) as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    click.echo(f"✅ Stack {stack_name} deleted")


@main.command()
@click.argument("stack_name")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def describe(config, stack_name, output_json) -> None:
    """Show stack status and outputs."""
    try:
        manager = create_manager(config)
        stack = asyncio.run(manager.get_stack(stack_name))
    except (CfUtilsError, ClientError) as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    if stack is None:
        click.echo(f"Stack {stack_name} does not exist", err=True)
        sys.exit(1)

    if output_json:
        click.echo(json.dumps(stack.raw, indent=2, default=str))
        return

    click.echo(f"Stack: {stack.name}")
    click.echo(f"Status: {stack.status}")
    if stack.outputs:
        click.echo("\nOutputs:")
        for key, value in stack.outputs.items():
            click.echo(f"  {key}: {value}")


@main.command()
@click.argument("stack_name")
@click.argument("output_key", required=False)
@click.pass_obj
def outputs(config, stack_name, output_key) -> None:
    """Print all outputs of a stack, or the value of one."""
    try:
        manager = create_manager(config)
        values = asyncio.run(manager.describe_output(stack_name))
    except (CfUtilsError, ClientError) as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    if output_key is None:
        click.echo(json.dumps(values, indent=2))
    elif output_key in values:
        click.echo(values[output_key])
    else:
        click.echo(f"Output '{output_key}' not found in stack {stack_name}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
