"""
Data types for stack and change set operations.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..errors import TemplateNotFoundError

TRANSFORM_PATTERN = re.compile(r'Transform"?\s*:\s*"?AWS::Serverless')
TEMPLATE_URL_PREFIX = "https://s3"

ParameterInput = Union[
    Mapping[str, Any],
    Iterable[Tuple[str, Any]],
    Iterable[Dict[str, Any]],
    None,
]


class Capability(Enum):
    """Capabilities acknowledged on every stack mutation."""
    IAM = "CAPABILITY_IAM"
    NAMED_IAM = "CAPABILITY_NAMED_IAM"
    AUTO_EXPAND = "CAPABILITY_AUTO_EXPAND"


CAPABILITIES = [c.value for c in Capability]


class ChangeSetType(Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"


@dataclass
class UpsertOptions:
    """Options controlling how upsert_stack applies a template."""
    # Preview an update as a change set and ask before applying it
    review: bool = False
    # Stage the template in this bucket and deploy it by URL
    s3_bucket: Optional[str] = None
    s3_prefix: str = ""
    # None means detect from the template body
    contains_transforms: Optional[bool] = None

    @classmethod
    def coerce(cls, options: Union["UpsertOptions", Mapping[str, Any], bool, None]) -> "UpsertOptions":
        """Accept an UpsertOptions, a dict, or a bare review flag."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, bool):
            return cls(review=options)
        return cls(**dict(options))


@dataclass
class StackState:
    """A single observation of a stack."""
    name: str
    status: str
    outputs: Dict[str, str] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_description(cls, stack: Dict[str, Any]) -> "StackState":
        return cls(
            name=stack["StackName"],
            status=stack["StackStatus"],
            outputs=extract_output(stack),
            raw=stack,
        )


@dataclass
class StackRequest:
    """Everything needed to create or update one stack."""
    name: str
    template_body: Optional[str] = None
    template_url: Optional[str] = None
    parameters: List[Dict[str, str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if (self.template_body is None) == (self.template_url is None):
            raise ValueError("Exactly one of template_body or template_url must be set")

    @classmethod
    def from_source(cls, name: str, template: str, parameters: ParameterInput = None) -> "StackRequest":
        """
        Build a request from a local path or an S3 template URL.

        Raises:
            TemplateNotFoundError: If a local template path does not exist
        """
        params = normalize_parameters(parameters)
        if is_template_url(template):
            return cls(name=name, template_url=template, parameters=params)

        path = Path(template)
        if not path.exists():
            raise TemplateNotFoundError(template)
        return cls(name=name, template_body=path.read_text(), parameters=params)

    def to_params(self) -> Dict[str, Any]:
        """Render the request as CreateStack/UpdateStack/CreateChangeSet params."""
        params: Dict[str, Any] = {
            "StackName": self.name,
            "Capabilities": list(CAPABILITIES),
            "Parameters": [dict(p) for p in self.parameters],
        }
        if self.template_url is not None:
            params["TemplateURL"] = self.template_url
        else:
            params["TemplateBody"] = self.template_body
        return params


def is_template_url(template: str) -> bool:
    return template[:len(TEMPLATE_URL_PREFIX)] == TEMPLATE_URL_PREFIX


def contains_transforms(template_body: str) -> bool:
    """Check whether a template uses the serverless transform."""
    return bool(TRANSFORM_PATTERN.search(template_body))


def normalize_parameters(parameters: ParameterInput) -> List[Dict[str, str]]:
    """
    Convert stack parameters into CloudFormation's ParameterKey/ParameterValue shape.

    Accepts a mapping, (key, value) pairs, or already-shaped dicts. Order is
    preserved and keys must be unique.
    """
    if parameters is None:
        return []

    if isinstance(parameters, Mapping):
        items: Iterable[Any] = parameters.items()
    else:
        items = parameters

    result: List[Dict[str, str]] = []
    seen = set()
    for item in items:
        if isinstance(item, Mapping):
            key = item["ParameterKey"]
            entry = dict(item)
        else:
            key, value = item
            entry = {"ParameterKey": key, "ParameterValue": value}
        if key in seen:
            raise ValueError(f"Duplicate stack parameter: {key}")
        seen.add(key)
        result.append(entry)
    return result


def extract_output(stack: Dict[str, Any]) -> Dict[str, str]:
    """Extract the outputs of a stack description as a dict."""
    return {
        output["OutputKey"]: output["OutputValue"]
        for output in stack.get("Outputs") or []
    }
