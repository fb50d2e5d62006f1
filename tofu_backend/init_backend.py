#!/usr/bin/env -S uv run python
# /// script
# requires-python = ">=3.13"
# dependencies = ["cyclopts>=2.9", "plumbum", "pyyaml"]
# ///
"""Bootstrap a secure OpenTofu S3 backend and initialise a project against it.

This script:
- resolves the project/environment identity, region and AWS profile;
- deploys the backend CloudFormation stack (S3 bucket, DynamoDB lock table,
  KMS key) idempotently;
- runs tofu init and plan against the new backend; and
- applies only after an explicit ``yes`` from the operator.
"""

from __future__ import annotations

import logging
import sys
from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter

from tofu_backend._backend_errors import ValidationError
from tofu_backend._backend_flow import run_backend_flow
from tofu_backend._backend_models import BackendSettings
from tofu_backend._input_resolution import (
    InputProvider,
    InputResolution,
    PromptInputProvider,
    resolve_input,
)
from tofu_backend._naming import (
    DEFAULT_REGION,
    resolve_identity,
    validate_profile,
    validate_region,
)
from tofu_backend._template import DEFAULT_TEMPLATE_PATH

app = App(help="Bootstrap a secure OpenTofu S3 backend via CloudFormation.")
logger = logging.getLogger(__name__)

DEFAULT_PROJECT_DIR = Path(".")


@dataclass(frozen=True, slots=True)
class RawBackendInputs:
    """Raw bootstrap inputs from the CLI."""

    project_dir: Path | None = None
    project_name: str | None = None
    environment_name: str | None = None
    region: str | None = None
    profile: str | None = None
    template: Path | None = None


def resolve_project_dir(project_dir: Path | None) -> Path:
    """Return the absolute project directory, which must already exist."""
    if project_dir is None:
        resolved = DEFAULT_PROJECT_DIR.resolve()
        print(f"No project directory specified. Using default: {resolved}")
        return resolved
    resolved = project_dir.expanduser().resolve()
    if not resolved.is_dir():
        msg = (
            f"the project path {str(project_dir)!r} does not exist or is not a "
            "directory; provide a valid OpenTofu project directory"
        )
        raise ValidationError(msg)
    return resolved


def resolve_settings(
    raw: RawBackendInputs,
    provider: InputProvider,
    env: cabc.Mapping[str, str] | None = None,
) -> BackendSettings:
    """Resolve and validate every input into an immutable ``BackendSettings``.

    Each value comes from the CLI first, then the environment, then an
    interactive prompt, then its default.

    Raises
    ------
    ValidationError
        If any input is invalid; no remote call has been made at this point.
    """
    project_dir = resolve_project_dir(raw.project_dir)

    def _resolved(value: str | Path | None, resolution: InputResolution) -> str | None:
        resolved = resolve_input(value, resolution, env=env, provider=provider)
        return None if resolved is None else str(resolved)

    project_name = _resolved(
        raw.project_name,
        InputResolution(env_key="PROJECT_NAME", prompt="Enter project name (required)"),
    )
    environment_name = _resolved(
        raw.environment_name,
        InputResolution(
            env_key="ENVIRONMENT_NAME",
            prompt="Enter environment name (dev/prod/etc., optional)",
        ),
    )
    identity = resolve_identity(project_name, environment_name)

    region = _resolved(
        raw.region,
        InputResolution(
            env_key="AWS_REGION",
            default=DEFAULT_REGION,
            prompt=f"Enter AWS region (default: {DEFAULT_REGION})",
        ),
    )
    profile = _resolved(
        raw.profile,
        InputResolution(
            env_key="AWS_PROFILE",
            prompt="Enter AWS profile (optional, blank for the default credential chain)",
        ),
    )

    return BackendSettings(
        identity=identity,
        region=validate_region(region),
        profile=validate_profile(profile),
        project_dir=project_dir,
        template_path=(raw.template or DEFAULT_TEMPLATE_PATH).resolve(),
    )


def bootstrap_backend(
    raw: RawBackendInputs,
    provider: InputProvider,
    env: cabc.Mapping[str, str] | None = None,
) -> int:
    """Resolve settings and run the provisioning flow, returning an exit code."""
    try:
        settings = resolve_settings(raw, provider, env=env)
    except ValidationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    logger.debug("resolved settings: %s", settings)
    result = run_backend_flow(settings, provider)
    logger.debug("flow finished in state %s", result.state)
    return result.exit_code


def _input_provider() -> InputProvider:
    return PromptInputProvider()


def configure_logging(*, verbose: bool) -> None:
    """Send log records to stderr; debug detail only when ``verbose``."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@app.default
def main(
    project_dir: Annotated[
        Path | None, Parameter(help="OpenTofu project directory (default: current directory).")
    ] = None,
    *,
    project_name: Annotated[str | None, Parameter(help="Project name.")] = None,
    environment_name: Annotated[
        str | None, Parameter(help="Optional environment name (dev, prod, ...).")
    ] = None,
    region: Annotated[str | None, Parameter(help="AWS region.")] = None,
    profile: Annotated[str | None, Parameter(help="AWS credential profile.")] = None,
    template: Annotated[
        Path | None, Parameter(help="Override the bundled CloudFormation template.")
    ] = None,
    verbose: Annotated[bool, Parameter(help="Enable debug logging.")] = False,
) -> int:
    """Bootstrap the OpenTofu S3 backend and initialise the project.

    Values not given on the command line are read from ``PROJECT_NAME``,
    ``ENVIRONMENT_NAME``, ``AWS_REGION`` and ``AWS_PROFILE`` or prompted for.
    ``tofu apply`` always requires an interactive ``yes``.
    """
    configure_logging(verbose=verbose)
    raw_inputs = RawBackendInputs(
        project_dir=project_dir,
        project_name=project_name,
        environment_name=environment_name,
        region=region,
        profile=profile,
        template=template,
    )
    return bootstrap_backend(raw_inputs, _input_provider())


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(app())
