"""Load and check the CloudFormation template that declares the backend.

The template is treated as an opaque artefact; this module only confirms it
still honours the contract the provisioning flow depends on: the two name
parameters, the four outputs, and retention of every primary resource.
"""

from __future__ import annotations

from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from tofu_backend._aws import OUTPUT_KEYS
from tofu_backend._backend_errors import ConfigurationError

DEFAULT_TEMPLATE_PATH = Path(__file__).resolve().parent / "templates" / "backend-stack.yaml"

REQUIRED_PARAMETERS = ("ProjectName", "EnvironmentName")
RETAINED_RESOURCE_TYPES = frozenset(
    {"AWS::S3::Bucket", "AWS::DynamoDB::Table", "AWS::KMS::Key"}
)


class _CloudFormationLoader(yaml.SafeLoader):
    """Safe loader that understands CloudFormation short-form intrinsics."""


def _construct_intrinsic(
    loader: _CloudFormationLoader, tag_suffix: str, node: yaml.Node
) -> dict[str, Any]:
    if isinstance(node, yaml.ScalarNode):
        value: Any = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)
    if tag_suffix == "Ref":
        return {"Ref": value}
    if tag_suffix == "GetAtt" and isinstance(value, str):
        value = value.split(".", 1)
    return {f"Fn::{tag_suffix}": value}


_CloudFormationLoader.add_multi_constructor("!", _construct_intrinsic)


@dataclass(frozen=True, slots=True)
class TemplateContract:
    """Parameters, outputs and retained resources declared by the template."""

    path: Path
    parameters: frozenset[str]
    outputs: frozenset[str]
    retained_resources: frozenset[str]


def load_template(path: Path) -> dict[str, Any]:
    """Parse a CloudFormation YAML template into plain Python data.

    Raises
    ------
    ConfigurationError
        If the file is missing, unreadable, not UTF-8, or not a YAML mapping.
    """
    if not path.is_file():
        msg = f"CloudFormation template not found: {path}"
        raise ConfigurationError(msg)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"unable to read CloudFormation template {path}: {exc}"
        raise ConfigurationError(msg) from exc
    try:
        document = yaml.load(text, Loader=_CloudFormationLoader)
    except yaml.YAMLError as exc:
        msg = f"CloudFormation template {path} is not valid YAML: {exc}"
        raise ConfigurationError(msg) from exc
    if not isinstance(document, dict):
        msg = f"CloudFormation template {path} must be a YAML mapping"
        raise ConfigurationError(msg)
    return document


def _section(document: cabc.Mapping[str, Any], name: str) -> cabc.Mapping[str, Any]:
    section = document.get(name) or {}
    if not isinstance(section, dict):
        msg = f"CloudFormation template section {name!r} must be a mapping"
        raise ConfigurationError(msg)
    return section


def load_template_contract(path: Path = DEFAULT_TEMPLATE_PATH) -> TemplateContract:
    """Load the template at ``path`` and verify the backend contract.

    Raises
    ------
    ConfigurationError
        If a required parameter or output is missing, or a bucket, table or
        key is not retained on stack deletion.

    Examples
    --------
    >>> contract = load_template_contract()
    >>> sorted(contract.parameters)
    ['EnvironmentName', 'ProjectName']
    """
    document = load_template(path)
    parameters = _section(document, "Parameters")
    outputs = _section(document, "Outputs")
    resources = _section(document, "Resources")

    missing_parameters = [name for name in REQUIRED_PARAMETERS if name not in parameters]
    if missing_parameters:
        msg = f"template {path} is missing parameters: {', '.join(missing_parameters)}"
        raise ConfigurationError(msg)

    missing_outputs = [name for name in OUTPUT_KEYS.values() if name not in outputs]
    if missing_outputs:
        msg = f"template {path} is missing outputs: {', '.join(missing_outputs)}"
        raise ConfigurationError(msg)

    retained: set[str] = set()
    for logical_id, resource in resources.items():
        if not isinstance(resource, dict):
            continue
        if resource.get("Type") not in RETAINED_RESOURCE_TYPES:
            continue
        if resource.get("DeletionPolicy") != "Retain":
            msg = f"template resource {logical_id!r} must set DeletionPolicy: Retain"
            raise ConfigurationError(msg)
        retained.add(logical_id)

    return TemplateContract(
        path=path,
        parameters=frozenset(parameters),
        outputs=frozenset(outputs),
        retained_resources=frozenset(retained),
    )
