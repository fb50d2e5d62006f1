"""AWS CLI helpers for deploying and querying the backend stack."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from plumbum import TEE, CommandNotFound, local
from plumbum.commands.processes import ProcessExecutionError

from tofu_backend._backend_errors import (
    BackendBootstrapError,
    ConfigurationError,
    ProvisioningError,
    QueryError,
)
from tofu_backend._backend_models import BackendSettings, DeploymentOutputs, Identity
from tofu_backend._naming import DEFAULT_PROFILE, stack_name

logger = logging.getLogger(__name__)

AWS_BINARY = "aws"

OUTPUT_KEYS = {
    "bucket_name": "OpenTofuBackendBucketName",
    "lock_table_name": "OpenTofuBackendDynamoDBName",
    "key_id": "KMSKeyID",
    "key_alias": "KMSKeyAlias",
}


@dataclass(slots=True)
class CommandContext:
    """Execution options for :func:`run_command`."""

    env: dict[str, str] | None = None
    timeout: int | None = None
    stream: bool = False


def run_command(
    command: str,
    *args: str,
    context: CommandContext | None = None,
) -> str:
    """Execute an external command and return its standard output.

    With ``context.stream`` set, output is echoed to the terminal as it
    arrives as well as being returned.

    Raises
    ------
    BackendBootstrapError
        If the command exits non-zero; the message carries its stderr.

    Examples
    --------
    >>> run_command("printf", "hello")
    'hello'
    """

    ctx = context or CommandContext()
    bound = local[command][list(args)]
    logger.debug("running: %s %s", command, " ".join(args))
    try:
        if ctx.stream:
            streamed = bound.with_env(**ctx.env) if ctx.env else bound
            _, stdout, _ = streamed & TEE(timeout=ctx.timeout)
        else:
            _, stdout, _ = bound.run(env=ctx.env, timeout=ctx.timeout)
    except ProcessExecutionError as exc:
        msg = f"Command {command!r} failed: {exc.stderr.strip()}"
        raise BackendBootstrapError(msg) from exc
    return stdout


def aws_available() -> bool:
    """Return whether the AWS CLI is on the PATH."""
    try:
        local.which(AWS_BINARY)
    except CommandNotFound:
        return False
    return True


def _target_args(settings: BackendSettings) -> list[str]:
    args = ["--region", settings.region]
    if settings.profile is not None:
        args += ["--profile", settings.profile]
    return args


def check_credentials(settings: BackendSettings) -> str:
    """Check the selected credentials and return the AWS account id.

    Raises
    ------
    ConfigurationError
        If the caller identity cannot be resolved.
    """
    try:
        stdout = run_command(
            AWS_BINARY,
            "sts",
            "get-caller-identity",
            *_target_args(settings),
            "--output",
            "json",
        )
    except BackendBootstrapError as exc:
        msg = (
            f"invalid AWS credentials (profile: {settings.profile or DEFAULT_PROFILE}); "
            f"configure your AWS credentials and try again ({exc})"
        )
        raise ConfigurationError(msg) from exc
    try:
        identity = json.loads(stdout)
    except json.JSONDecodeError as exc:
        msg = f"aws sts get-caller-identity returned invalid JSON: {exc}"
        raise ConfigurationError(msg) from exc
    account = identity.get("Account", "") if isinstance(identity, dict) else ""
    if not account:
        msg = "unable to determine the AWS account id from the active credentials"
        raise ConfigurationError(msg)
    return str(account)


def parameter_overrides(identity: Identity) -> list[str]:
    """Return CloudFormation parameter overrides for ``identity``.

    Examples
    --------
    >>> parameter_overrides(Identity("demo"))
    ['ProjectName=demo']
    >>> parameter_overrides(Identity("demo", "dev"))
    ['ProjectName=demo', 'EnvironmentName=dev']
    """
    overrides = [f"ProjectName={identity.project_name}"]
    if identity.environment_name:
        overrides.append(f"EnvironmentName={identity.environment_name}")
    return overrides


def deploy_stack(settings: BackendSettings) -> str:
    """Create or update the backend stack and wait for it to converge.

    ``--no-fail-on-empty-changeset`` turns a re-run without drift into a
    successful no-op. CloudFormation progress is streamed to the terminal.

    Raises
    ------
    ProvisioningError
        If CloudFormation reports a failed deploy.
    """
    try:
        return run_command(
            AWS_BINARY,
            "cloudformation",
            "deploy",
            "--template-file",
            str(settings.template_path),
            "--stack-name",
            stack_name(settings.identity),
            *_target_args(settings),
            "--parameter-overrides",
            *parameter_overrides(settings.identity),
            "--capabilities",
            "CAPABILITY_IAM",
            "--no-fail-on-empty-changeset",
            context=CommandContext(stream=True),
        )
    except BackendBootstrapError as exc:
        msg = f"deploy of stack {stack_name(settings.identity)!r} failed: {exc}"
        raise ProvisioningError(msg) from exc


def fetch_stack_output(settings: BackendSettings, output_key: str) -> str:
    """Return a single named output of the backend stack.

    Raises
    ------
    QueryError
        If the stack cannot be described or the output is missing or empty.
    """
    name = stack_name(settings.identity)
    try:
        stdout = run_command(
            AWS_BINARY,
            "cloudformation",
            "describe-stacks",
            "--stack-name",
            name,
            *_target_args(settings),
            "--query",
            f"Stacks[0].Outputs[?OutputKey=='{output_key}'].OutputValue",
            "--output",
            "text",
        )
    except BackendBootstrapError as exc:
        msg = f"unable to describe stack {name!r}: {exc}"
        raise QueryError(msg) from exc
    value = stdout.strip()
    # The CLI renders a null query result as the literal text "None".
    if not value or value == "None":
        msg = f"stack {name!r} has no output {output_key!r}"
        raise QueryError(msg)
    return value


def fetch_deployment_outputs(settings: BackendSettings) -> DeploymentOutputs:
    """Fetch all four backend outputs, one query per output."""
    values = {
        field_name: fetch_stack_output(settings, output_key)
        for field_name, output_key in OUTPUT_KEYS.items()
    }
    return DeploymentOutputs(**values)
