"""Provision the backend stack and initialise OpenTofu against it.

The flow is an explicit state machine. Each step takes the run context and
returns the next state; failures raise a ``BackendBootstrapError`` subclass
and move the run to ``FAILED``. No step is retried and nothing is rolled
back; re-running converges the same stack.

States
------
PREFLIGHT_CHECK -> DEPLOY -> QUERY -> TARGET_CHECK -> INIT -> PLAN
-> APPLY_DECISION -> DONE

TARGET_CHECK moves to ``ABORTED`` after writing ``backend-info.json`` when the
project directory has no ``main.tf``.

Examples
--------
>>> result = run_backend_flow(settings, PromptInputProvider())
>>> result.exit_code
0
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass

from tofu_backend._aws import (
    aws_available,
    check_credentials,
    deploy_stack,
    fetch_deployment_outputs,
)
from tofu_backend._backend_errors import (
    ApplyDeclined,
    ApplyError,
    BackendBootstrapError,
    ConfigurationError,
    InitializationError,
)
from tofu_backend._backend_models import (
    BackendDescriptor,
    BackendSettings,
    DeploymentOutputs,
    FlowResult,
    FlowState,
)
from tofu_backend._descriptor import write_descriptor
from tofu_backend._input_resolution import InputProvider
from tofu_backend._naming import (
    DEFAULT_PROFILE,
    access_logs_bucket_name,
    key_alias_name,
    lock_table_name,
    stack_name,
    state_bucket_name,
)
from tofu_backend._template import load_template_contract
from tofu_backend._tofu import (
    manual_apply_command,
    tofu_apply,
    tofu_available,
    tofu_init,
    tofu_plan,
)

logger = logging.getLogger(__name__)

ENTRYPOINT_FILENAME = "main.tf"
APPLY_PROMPT = "Do you want to apply the OpenTofu changes? (yes/no)"
APPLY_CONFIRMATION = "yes"
STATE_KEY_PLACEHOLDER = "path/to/your/state.tfstate"


@dataclass(slots=True)
class _FlowRun:
    """Mutable bookkeeping for one run; settings stay frozen."""

    settings: BackendSettings
    provider: InputProvider
    outputs: DeploymentOutputs | None = None
    plan_succeeded: bool | None = None
    applied: bool = False

    def require_outputs(self, state: FlowState) -> DeploymentOutputs:
        if self.outputs is None:
            msg = f"stack outputs were not fetched before {state}"
            raise BackendBootstrapError(msg)
        return self.outputs


def format_backend_block(outputs: DeploymentOutputs, region: str) -> str:
    """Render the ``backend "s3"`` block for an OpenTofu configuration.

    Examples
    --------
    >>> print(format_backend_block(outputs, "eu-west-1"))  # doctest: +SKIP
    terraform {
      backend "s3" {
        bucket         = "opentofu-backend-demo-dev"
        ...
    """
    return "\n".join(
        [
            "terraform {",
            '  backend "s3" {',
            f'    bucket         = "{outputs.bucket_name}"',
            f'    key            = "{STATE_KEY_PLACEHOLDER}"',
            f'    region         = "{region}"',
            f'    dynamodb_table = "{outputs.lock_table_name}"',
            "    encrypt        = true",
            "  }",
            "}",
        ]
    )


def confirm_apply(provider: InputProvider) -> None:
    """Return only when the operator answers exactly ``yes``.

    Raises
    ------
    ApplyDeclined
        For any other answer, including blank input.
    """
    answer = provider.ask(APPLY_PROMPT)
    if answer != APPLY_CONFIRMATION:
        raise ApplyDeclined(answer)


def _preflight_check(run: _FlowRun) -> FlowState:
    settings = run.settings
    if not tofu_available():
        msg = "OpenTofu (tofu) is not installed; install it and try again"
        raise ConfigurationError(msg)
    if not aws_available():
        msg = "the AWS CLI (aws) is not installed; install it and try again"
        raise ConfigurationError(msg)
    contract = load_template_contract(settings.template_path)
    logger.debug("template %s retains %s", contract.path, sorted(contract.retained_resources))
    account = check_credentials(settings)
    logger.info(
        "using AWS account %s with profile %s", account, settings.profile or DEFAULT_PROFILE
    )
    return FlowState.DEPLOY


def _deploy(run: _FlowRun) -> FlowState:
    settings = run.settings
    identity = settings.identity
    print("\n--- CloudFormation deploy ---")
    print(f"Creating or updating stack: {stack_name(identity)}")
    print(f"  Project: {identity.project_name}")
    if identity.environment_name:
        print(f"  Environment: {identity.environment_name}")
    print(f"  Region: {settings.region}")
    print(f"  Profile: {settings.profile or DEFAULT_PROFILE}")
    logger.info(
        "stack %s declares bucket %s, log bucket %s, table %s, key alias %s",
        stack_name(identity),
        state_bucket_name(identity),
        access_logs_bucket_name(identity),
        lock_table_name(identity),
        key_alias_name(identity),
    )
    deploy_stack(settings)
    return FlowState.QUERY


def _query(run: _FlowRun) -> FlowState:
    print("\n--- Fetching backend outputs ---")
    outputs = fetch_deployment_outputs(run.settings)
    print(f"S3 bucket: {outputs.bucket_name}")
    print(f"DynamoDB table: {outputs.lock_table_name}")
    print(f"KMS key ID: {outputs.key_id}")
    print(f"KMS key alias: {outputs.key_alias}")
    run.outputs = outputs
    return FlowState.TARGET_CHECK


def _target_check(run: _FlowRun) -> FlowState:
    settings = run.settings
    project_dir = settings.project_dir
    if (project_dir / ENTRYPOINT_FILENAME).is_file():
        return FlowState.INIT

    descriptor = BackendDescriptor(
        identity=settings.identity,
        region=settings.region,
        profile=settings.profile or DEFAULT_PROFILE,
        outputs=run.require_outputs(FlowState.TARGET_CHECK),
    )
    path = write_descriptor(project_dir, descriptor)
    print(
        f"error: {project_dir} does not contain {ENTRYPOINT_FILENAME}; "
        "it does not look like an OpenTofu project.",
        file=sys.stderr,
    )
    print("Backend infrastructure was created but OpenTofu initialisation was skipped.")
    print(f"Backend configuration saved to: {path}")
    print("\nTo finish the setup manually:")
    print(f"1. Create {ENTRYPOINT_FILENAME} with your OpenTofu configuration")
    print("2. Add the backend block below to it")
    print("3. Run 'tofu init' to initialise the backend\n")
    print(format_backend_block(run.require_outputs(FlowState.TARGET_CHECK), settings.region))
    return FlowState.ABORTED


def _init(run: _FlowRun) -> FlowState:
    settings = run.settings
    print("\n--- Running tofu init ---")
    result = tofu_init(
        settings.project_dir,
        run.require_outputs(FlowState.INIT),
        settings.region,
        settings.profile,
    )
    if not result.success:
        msg = f"tofu init failed (return code {result.return_code}) {result.stderr}".rstrip()
        raise InitializationError(msg)
    return FlowState.PLAN


def _plan(run: _FlowRun) -> FlowState:
    print("\n--- Running tofu plan ---")
    result = tofu_plan(run.settings.project_dir, run.settings.profile)
    run.plan_succeeded = result.success
    if not result.success:
        logger.warning("tofu plan exited with return code %s", result.return_code)
        print(
            f"warning: tofu plan failed (return code {result.return_code}); "
            "review the output above before applying",
            file=sys.stderr,
        )
    return FlowState.APPLY_DECISION


def _apply_decision(run: _FlowRun) -> FlowState:
    project_dir = run.settings.project_dir
    print("\n--- OpenTofu apply ---")
    try:
        confirm_apply(run.provider)
    except ApplyDeclined as exc:
        logger.info("%s", exc)
        print(f"Skipping apply. You can run it manually: {manual_apply_command(project_dir)}")
        return FlowState.DONE

    result = tofu_apply(project_dir, run.settings.profile)
    if not result.success:
        msg = f"tofu apply failed (return code {result.return_code}) {result.stderr}".rstrip()
        raise ApplyError(msg)
    run.applied = True
    return FlowState.DONE


def _done(run: _FlowRun) -> None:
    rule = "=" * 65
    print(f"\n{rule}")
    print("OpenTofu S3 backend setup complete!")
    print(rule)
    print("\nTo use this backend in your OpenTofu configuration:\n")
    print(format_backend_block(run.require_outputs(FlowState.DONE), run.settings.region))
    print(f"\n{rule}")


_STEPS: dict[FlowState, Callable[[_FlowRun], FlowState | None]] = {
    FlowState.PREFLIGHT_CHECK: _preflight_check,
    FlowState.DEPLOY: _deploy,
    FlowState.QUERY: _query,
    FlowState.TARGET_CHECK: _target_check,
    FlowState.INIT: _init,
    FlowState.PLAN: _plan,
    FlowState.APPLY_DECISION: _apply_decision,
    FlowState.DONE: _done,
}


def run_backend_flow(settings: BackendSettings, provider: InputProvider) -> FlowResult:
    """Drive the provisioning state machine to a terminal state.

    Parameters
    ----------
    settings : BackendSettings
        Validated, immutable run configuration.
    provider : InputProvider
        Source of the apply confirmation answer.

    Returns
    -------
    FlowResult
        Final state and exit code: ``0`` for ``DONE``, ``1`` for ``ABORTED``
        and ``FAILED``.
    """
    run = _FlowRun(settings=settings, provider=provider)
    state = FlowState.PREFLIGHT_CHECK
    while (step := _STEPS.get(state)) is not None:
        logger.debug("entering state %s", state)
        try:
            next_state = step(run)
        except BackendBootstrapError as exc:
            logger.debug("state %s failed", state, exc_info=True)
            print(f"error: {exc}", file=sys.stderr)
            state = FlowState.FAILED
            break
        if next_state is None:
            break
        state = next_state

    return FlowResult(
        state=state,
        exit_code=0 if state is FlowState.DONE else 1,
        outputs=run.outputs,
        applied=run.applied,
        plan_succeeded=run.plan_succeeded,
    )
