"""Resolve and validate the naming scheme for the backend stack.

Everything here is pure: the resolver turns user-supplied project and
environment strings into an ``Identity`` and derives every resource name the
CloudFormation template will create from it. Validation happens before any
remote call so bad input never reaches AWS.

The combined ``project[-environment]`` length is capped at 30 characters.
The state bucket is named after the stack and the access-log bucket appends
``-access-logs``, so the cap keeps the longest derived bucket name
(17 + 30 + 12 = 59 characters) inside the 63-character S3 limit.

Examples
--------
>>> identity = resolve_identity("demo", "dev")
>>> stack_name(identity)
'opentofu-backend-demo-dev'
"""

from __future__ import annotations

import re

from tofu_backend._backend_errors import ValidationError
from tofu_backend._backend_models import Identity

STACK_PREFIX = "opentofu-backend-"
MAX_IDENTITY_LENGTH = 30
DEFAULT_REGION = "eu-west-1"
DEFAULT_PROFILE = "default"

_NAME_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
_REGION_PATTERN = re.compile(r"^[a-z]{2,4}(-[a-z]+)+-\d+$")


def validate_name_part(value: str | None, field: str, *, required: bool = True) -> str:
    """Validate and normalise one component of the identity.

    Parameters
    ----------
    value : str | None
        Raw user input.
    field : str
        Field name used in error messages.
    required : bool, optional
        Whether a blank value is an error.

    Returns
    -------
    str
        Normalised (stripped, lower-cased) name, or ``""`` when optional and
        blank.

    Raises
    ------
    ValidationError
        If the value is blank when required or contains characters that are
        not legal in an S3 bucket name.

    Examples
    --------
    >>> validate_name_part(" Demo ", "project_name")
    'demo'
    >>> validate_name_part("", "environment_name", required=False)
    ''
    """
    name = (value or "").strip().lower()
    if not name:
        if required:
            msg = f"{field} is required"
            raise ValidationError(msg)
        return ""
    if not _NAME_PATTERN.match(name):
        msg = (
            f"{field} must contain only lowercase letters, numbers, and hyphens, "
            f"and start and end with a letter or number (got {value!r})"
        )
        raise ValidationError(msg)
    return name


def resolve_identity(project_name: str | None, environment_name: str | None = None) -> Identity:
    """Build a validated ``Identity`` from raw input.

    Raises
    ------
    ValidationError
        If the project name is empty, either part has illegal characters, or
        the combined length exceeds ``MAX_IDENTITY_LENGTH``.

    Examples
    --------
    >>> resolve_identity("demo", "dev")
    Identity(project_name='demo', environment_name='dev')
    """
    identity = Identity(
        project_name=validate_name_part(project_name, "project_name"),
        environment_name=validate_name_part(
            environment_name, "environment_name", required=False
        ),
    )
    if identity.combined_length > MAX_IDENTITY_LENGTH:
        msg = (
            "project and environment names are too long: "
            f"{identity.combined_length} characters (maximum {MAX_IDENTITY_LENGTH})"
        )
        raise ValidationError(msg)
    return identity


def validate_region(value: str | None) -> str:
    """Validate an AWS region identifier, defaulting when blank.

    Examples
    --------
    >>> validate_region("")
    'eu-west-1'
    >>> validate_region("us-gov-west-1")
    'us-gov-west-1'
    """
    region = (value or "").strip().lower() or DEFAULT_REGION
    if not _REGION_PATTERN.match(region):
        msg = f"region is not a valid AWS region identifier: {value!r}"
        raise ValidationError(msg)
    return region


def validate_profile(value: str | None) -> str | None:
    """Validate an AWS credential profile name; blank means none was chosen.

    Examples
    --------
    >>> validate_profile("") is None
    True
    >>> validate_profile(" ops ")
    'ops'
    """
    profile = (value or "").strip()
    if not profile:
        return None
    if any(char.isspace() for char in profile):
        msg = f"profile must not contain whitespace: {value!r}"
        raise ValidationError(msg)
    return profile


def stack_name(identity: Identity) -> str:
    """Return the CloudFormation stack name for ``identity``.

    Examples
    --------
    >>> stack_name(Identity("demo"))
    'opentofu-backend-demo'
    >>> stack_name(Identity("demo", "dev"))
    'opentofu-backend-demo-dev'
    """
    name = f"{STACK_PREFIX}{identity.project_name}"
    if identity.environment_name:
        name = f"{name}-{identity.environment_name}"
    return name


def state_bucket_name(identity: Identity) -> str:
    """Return the state bucket name the template creates."""
    return stack_name(identity)


def access_logs_bucket_name(identity: Identity) -> str:
    """Return the access-log bucket name the template creates."""
    return f"{stack_name(identity)}-access-logs"


def lock_table_name(identity: Identity) -> str:
    """Return the DynamoDB lock table name the template creates.

    Examples
    --------
    >>> lock_table_name(Identity("demo", "dev"))
    'opentofu-backend-demo-dev-lock'
    """
    return f"{stack_name(identity)}-lock"


def key_alias_name(identity: Identity) -> str:
    """Return the KMS key alias the template creates."""
    return f"alias/{stack_name(identity)}"
