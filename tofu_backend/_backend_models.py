"""Data models for the OpenTofu backend bootstrap.

These models form the typed contract between the naming resolver, the
command helpers and the provisioning flow. All of them are frozen: each run
builds them once and never mutates them.

Examples
--------
>>> identity = Identity(project_name="demo", environment_name="dev")
>>> identity.combined_length
8
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class Identity:
    """Project and optional environment naming the backend.

    Attributes
    ----------
    project_name
        Required project name.
    environment_name
        Optional environment name (empty string when absent).

    Examples
    --------
    >>> Identity("demo").combined_length
    4
    """

    project_name: str
    environment_name: str = ""

    @property
    def combined_length(self) -> int:
        """Length of ``project[-environment]`` including the separator."""
        separator = 1 if self.environment_name else 0
        return len(self.project_name) + len(self.environment_name) + separator


@dataclass(frozen=True, slots=True)
class BackendSettings:
    """Immutable run configuration, resolved once at startup.

    Attributes
    ----------
    identity
        Validated project and environment identity.
    region
        AWS region hosting the stack and backend resources.
    profile
        AWS credential profile chosen by the operator, or ``None`` to leave
        credential resolution to the AWS CLI and OpenTofu.
    project_dir
        OpenTofu project directory to initialise.
    template_path
        CloudFormation template describing the backend resources.
    """

    identity: Identity
    region: str
    profile: str | None
    project_dir: Path
    template_path: Path


@dataclass(frozen=True, slots=True)
class DeploymentOutputs:
    """Outputs read back from the converged CloudFormation stack."""

    bucket_name: str
    lock_table_name: str
    key_id: str
    key_alias: str


@dataclass(frozen=True, slots=True)
class BackendDescriptor:
    """Backend parameters recorded for manual follow-up.

    Examples
    --------
    >>> descriptor = BackendDescriptor(
    ...     identity=Identity("demo", "dev"),
    ...     region="eu-west-1",
    ...     profile="default",
    ...     outputs=DeploymentOutputs("b", "t", "k", "alias/k"),
    ... )
    >>> descriptor.to_mapping()["backend"]["s3_bucket"]
    'b'
    """

    identity: Identity
    region: str
    profile: str
    outputs: DeploymentOutputs

    def to_mapping(self) -> dict[str, Any]:
        """Return the JSON-serialisable sidecar representation."""
        return {
            "project": self.identity.project_name,
            "environment": self.identity.environment_name,
            "region": self.region,
            "profile": self.profile,
            "backend": {
                "s3_bucket": self.outputs.bucket_name,
                "dynamodb_table": self.outputs.lock_table_name,
                "kms_key_id": self.outputs.key_id,
                "kms_key_alias": self.outputs.key_alias,
            },
        }


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of an external command execution.

    Attributes
    ----------
    success
        Whether the command exited with status code ``0``.
    stdout
        Captured standard output (empty when not captured).
    stderr
        Captured standard error (empty when not captured).
    return_code
        Process exit status code.

    Examples
    --------
    >>> CommandResult(success=True, stdout="ok", stderr="", return_code=0).success
    True
    """

    success: bool
    stdout: str
    stderr: str
    return_code: int


class FlowState(enum.StrEnum):
    """States of the provisioning flow."""

    PREFLIGHT_CHECK = "preflight-check"
    DEPLOY = "deploy"
    QUERY = "query"
    TARGET_CHECK = "target-check"
    INIT = "init"
    PLAN = "plan"
    APPLY_DECISION = "apply-decision"
    DONE = "done"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FlowResult:
    """Outcome of a provisioning run."""

    state: FlowState
    exit_code: int
    outputs: DeploymentOutputs | None = None
    applied: bool = False
    plan_succeeded: bool | None = None
