"""OpenTofu command helpers for the backend bootstrap."""

from __future__ import annotations

import os
import shutil
import subprocess
from collections import abc as cabc
from pathlib import Path

from tofu_backend._backend_models import CommandResult, DeploymentOutputs

TOFU_BINARY = "tofu"


def _validate_command_args(args: list[str]) -> None:
    """Validate OpenTofu CLI arguments for safe execution."""
    for arg in args:
        if not isinstance(arg, str):
            msg = f"OpenTofu argument must be a string, got {type(arg).__name__}"
            raise TypeError(msg)
        if any(char in arg for char in ("\x00", "\n", "\r")):
            msg = "OpenTofu argument contains an invalid control character"
            raise ValueError(msg)


def tofu_available() -> bool:
    """Return whether the ``tofu`` binary is on the PATH."""
    return shutil.which(TOFU_BINARY) is not None


def run_tofu(
    args: list[str],
    cwd: Path,
    env: cabc.Mapping[str, str] | None = None,
    *,
    capture_output: bool = False,
) -> CommandResult:
    """Execute an OpenTofu command and return the result.

    Output is passed straight through to the terminal unless
    ``capture_output`` is set, so plan diffs and apply prompts reach the
    operator unchanged.

    Parameters
    ----------
    args
        Command arguments (without the ``tofu`` prefix).
    cwd
        OpenTofu project directory.
    env
        Environment variables to set for the command.
    capture_output
        Whether to capture stdout and stderr.

    Returns
    -------
    CommandResult
        Result containing success status, output, and return code.

    Examples
    --------
    >>> from pathlib import Path
    >>> run_tofu(["version"], Path("."), capture_output=True).return_code
    0
    """
    cmd = [TOFU_BINARY, *args]
    merged_env = {**os.environ, **(env or {})}

    _validate_command_args(cmd)
    result = subprocess.run(
        cmd,
        cwd=cwd,
        env=merged_env,
        capture_output=capture_output,
        text=True,
        check=False,
    )

    return CommandResult(
        success=result.returncode == 0,
        stdout=result.stdout if capture_output else "",
        stderr=result.stderr if capture_output else "",
        return_code=result.returncode,
    )


def _profile_env(profile: str | None) -> dict[str, str]:
    if profile is None:
        return {}
    return {"AWS_PROFILE": profile}


def tofu_init(
    cwd: Path,
    outputs: DeploymentOutputs,
    region: str,
    profile: str | None,
) -> CommandResult:
    """Initialise OpenTofu against the provisioned S3 backend.

    Any earlier backend binding is replaced (``-reconfigure``) and providers
    and modules are upgraded (``-upgrade``).

    Examples
    --------
    >>> from pathlib import Path
    >>> outputs = DeploymentOutputs(
    ...     bucket_name="opentofu-backend-demo-dev",
    ...     lock_table_name="opentofu-backend-demo-dev-lock",
    ...     key_id="1234abcd-12ab-34cd-56ef-1234567890ab",
    ...     key_alias="alias/opentofu-backend-demo-dev",
    ... )
    >>> tofu_init(Path("infra"), outputs, "eu-west-1", "default").success
    True
    """
    args = [
        "init",
        "-reconfigure",
        f"-backend-config=bucket={outputs.bucket_name}",
        f"-backend-config=region={region}",
        f"-backend-config=dynamodb_table={outputs.lock_table_name}",
        "-backend-config=encrypt=true",
        "-upgrade",
    ]
    return run_tofu(args, cwd, env=_profile_env(profile))


def tofu_plan(cwd: Path, profile: str | None) -> CommandResult:
    """Run ``tofu plan`` in ``cwd``."""
    return run_tofu(["plan"], cwd, env=_profile_env(profile))


def tofu_apply(cwd: Path, profile: str | None) -> CommandResult:
    """Run ``tofu apply`` in ``cwd``.

    OpenTofu asks for its own approval; ``-auto-approve`` is never passed.
    """
    return run_tofu(["apply"], cwd, env=_profile_env(profile))


def manual_apply_command(cwd: Path) -> str:
    """Return the command an operator can run to apply later.

    Examples
    --------
    >>> from pathlib import Path
    >>> manual_apply_command(Path("/srv/infra"))
    'tofu -chdir=/srv/infra apply'
    """
    return f"{TOFU_BINARY} -chdir={cwd} apply"
