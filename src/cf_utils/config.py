"""
Configuration management for cf-utils.

Handles project naming variables and AWS settings for deployment pipelines.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import jsonschema
import yaml

from .errors import ConfigurationError

# Description and command line flag for each setting, used in error messages
FIELD_INFO: Dict[str, Dict[str, Optional[str]]] = {
    "project": {"description": "ACS Project Name", "arg_name": None},
    "project_version": {"description": "ACS Project Version (e.g. poc, mvp1)", "arg_name": None},
    "project_prefix": {"description": "ACS Project Prefix", "arg_name": None},
    "api_package_prefix": {"description": "API Package Prefix", "arg_name": None},
    "api_package_version": {"description": "API Package Version", "arg_name": None},
    "aws_profile": {"description": "AWS Profile", "arg_name": "profile"},
    "aws_region": {"description": "AWS Region", "arg_name": "region"},
    "environment_stage": {"description": "Environment stage", "arg_name": "env"},
    "organization": {"description": "Organization Tag", "arg_name": "org"},
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "project": {"type": "string"},
        "project_version": {"type": "string"},
        "project_prefix": {"type": "string"},
        "api_package_prefix": {"type": "string"},
        "api_package_version": {"type": "string"},
        "aws_profile": {"type": "string"},
        "aws_region": {"type": "string", "pattern": "^[a-z]{2}(-gov)?-[a-z]+-[0-9]$"},
        "environment_stage": {"type": "string"},
        "organization": {"type": "string"},
        "poll_interval": {"type": "number", "exclusiveMinimum": 0},
        "poll_max_attempts": {"type": ["integer", "null"], "minimum": 1},
    },
}


@dataclass
class ProjectConfig:
    """Settings for a deployment session."""

    project: Optional[str] = None
    project_version: Optional[str] = None
    project_prefix: Optional[str] = None
    api_package_prefix: str = "api-"
    api_package_version: str = "0.0.1"
    aws_profile: Optional[str] = None
    aws_region: Optional[str] = None
    environment_stage: Optional[str] = None
    organization: Optional[str] = None

    # Seconds between status checks of stacks and change sets
    poll_interval: float = 5.0
    # None keeps polling until a terminal status is reached
    poll_max_attempts: Optional[int] = None

    custom_config: Dict[str, Any] = field(default_factory=dict)

    def require(self, name: str) -> Any:
        """Return a setting, raising ConfigurationError if it is unset."""
        value = getattr(self, name)
        if value is None or value == "":
            info = FIELD_INFO.get(name, {})
            description = info.get("description") or name
            if info.get("arg_name"):
                raise ConfigurationError(
                    f"{description} is unset. Did you forget to set "
                    f"'--{info['arg_name']}' on command line?"
                )
            raise ConfigurationError(
                f"{description} is unset. Did you forget to set 'config.{name}'?"
            )
        return value

    def get_resource_prefix(self) -> str:
        """Get the prefix for all core resources."""
        return f"{self.require('project_prefix')}{self.require('environment_stage')}-"

    def get_resource_name(self, suffix: str) -> str:
        """Get the name of a core resource with the given suffix."""
        return self.get_resource_prefix() + suffix

    def get_org_resource_prefix(self) -> str:
        """Get the prefix for all org resources."""
        return (
            f"{self.require('project_prefix')}{self.require('organization')}-"
            f"{self.require('environment_stage')}-"
        )

    def get_org_resource_name(self, suffix: str) -> str:
        return self.get_org_resource_prefix() + suffix

    def get_parameter_prefix(self) -> str:
        """Get the prefix for all core parameters."""
        return (
            f"{self.require('project_prefix')}{self.require('environment_stage')}-"
            f"{self.require('aws_region')}-"
        )

    def get_parameter_name(self, name: str) -> str:
        return self.get_parameter_prefix() + name

    def get_org_parameter_prefix(self) -> str:
        """Get the prefix for all org parameters."""
        return (
            f"{self.require('project_prefix')}{self.require('organization')}-"
            f"{self.require('environment_stage')}-{self.require('aws_region')}-"
        )

    def get_org_parameter_name(self, name: str) -> str:
        return self.get_org_parameter_prefix() + name

    def get_lambda_zip_name(self) -> str:
        """Get the name of the lambda zip file."""
        return f"{self.api_package_prefix}{self.api_package_version}.zip"

    def get_lambda_zip_s3_key(self) -> str:
        """Get the S3 object key for the lambda bundle."""
        return f"api/{self.get_lambda_zip_name()}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectConfig":
        """Create config from dictionary."""
        return cls(**data)


def validate_config(data: Dict[str, Any]) -> None:
    """Validate raw configuration data against the config schema."""
    try:
        jsonschema.validate(data, CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        path = " -> ".join(str(x) for x in e.absolute_path)
        raise ConfigurationError(
            f"Configuration validation failed: {e.message}" + (f" (at {path})" if path else "")
        ) from e


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ProjectConfig:
    """
    Load configuration from a YAML file and apply overrides.

    Overrides with a value of None are ignored, so unset command line
    options never mask values from the file.

    Args:
        path: Path to a YAML config file (optional)
        overrides: Values that take precedence over the file

    Returns:
        Validated ProjectConfig
    """
    data: Dict[str, Any] = {}

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

    # Fall back to the standard AWS environment variables
    env_defaults = {
        "aws_profile": os.environ.get("AWS_PROFILE"),
        "aws_region": os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION"),
    }
    for key, value in env_defaults.items():
        if value and key not in data:
            data[key] = value

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    custom = data.pop("custom_config", None)
    validate_config(data)

    known = {f.name for f in fields(ProjectConfig)}
    config = ProjectConfig.from_dict({k: v for k, v in data.items() if k in known})
    if custom:
        config.custom_config = dict(custom)
    return config
