"""Unit tests for the identity and naming resolver."""

from __future__ import annotations

import pytest

from tofu_backend._backend_errors import ValidationError
from tofu_backend._backend_models import Identity
from tofu_backend._naming import (
    MAX_IDENTITY_LENGTH,
    access_logs_bucket_name,
    key_alias_name,
    lock_table_name,
    resolve_identity,
    stack_name,
    state_bucket_name,
    validate_name_part,
    validate_profile,
    validate_region,
)


def test_resolve_identity_demo_dev() -> None:
    identity = resolve_identity("demo", "dev")
    assert identity == Identity("demo", "dev"), "Expected demo/dev identity"
    assert identity.combined_length == 8, "4 + 3 + 1 separator"
    assert stack_name(identity) == "opentofu-backend-demo-dev"


def test_stack_name_without_environment() -> None:
    assert stack_name(resolve_identity("demo", "")) == "opentofu-backend-demo"
    assert stack_name(resolve_identity("demo", None)) == "opentofu-backend-demo"


def test_stack_name_is_deterministic() -> None:
    first = stack_name(resolve_identity("billing", "prod"))
    second = stack_name(resolve_identity("billing", "prod"))
    assert first == second, "Identical identities must give identical stack names"


def test_environment_presence_changes_stack_name() -> None:
    assert stack_name(Identity("demo")) != stack_name(Identity("demo", "dev"))


@pytest.mark.parametrize("project", ["", "   ", None])
def test_empty_project_rejected(project: str | None) -> None:
    with pytest.raises(ValidationError, match="project_name is required"):
        resolve_identity(project, "dev")


def test_combined_length_over_limit_rejected() -> None:
    with pytest.raises(ValidationError, match="32 characters"):
        resolve_identity("a" * 25, "b" * 6)


def test_combined_length_at_limit_accepted() -> None:
    identity = resolve_identity("a" * 25, "b" * 4)
    assert identity.combined_length == MAX_IDENTITY_LENGTH


def test_project_alone_at_limit_accepted() -> None:
    assert resolve_identity("a" * 30).combined_length == 30
    with pytest.raises(ValidationError):
        resolve_identity("a" * 31)


def test_longest_derived_bucket_fits_s3_limit() -> None:
    identity = resolve_identity("a" * 25, "b" * 4)
    assert len(access_logs_bucket_name(identity)) <= 63


def test_validate_name_part_normalises() -> None:
    assert validate_name_part(" Demo-1 ", "project_name") == "demo-1"


@pytest.mark.parametrize("value", ["my_project", "-bad", "bad-", "dot.name", "spa ce"])
def test_validate_name_part_rejects_illegal_characters(value: str) -> None:
    with pytest.raises(ValidationError, match="project_name"):
        validate_name_part(value, "project_name")


def test_derived_resource_names() -> None:
    identity = Identity("demo", "dev")
    assert state_bucket_name(identity) == "opentofu-backend-demo-dev"
    assert lock_table_name(identity) == "opentofu-backend-demo-dev-lock"
    assert key_alias_name(identity) == "alias/opentofu-backend-demo-dev"
    assert access_logs_bucket_name(identity) == "opentofu-backend-demo-dev-access-logs"


def test_validate_region_defaults_and_rejects() -> None:
    assert validate_region(None) == "eu-west-1"
    assert validate_region(" US-EAST-1 ") == "us-east-1"
    with pytest.raises(ValidationError, match="region"):
        validate_region("moon-base")


@pytest.mark.parametrize("region", ["us-gov-west-1", "eusc-de-east-1", "cn-north-1", "ap-southeast-5"])
def test_validate_region_accepts_partitions(region: str) -> None:
    assert validate_region(region) == region


@pytest.mark.parametrize("region", ["eu-west", "europe-west-1", "eu_west_1", "1-west-1"])
def test_validate_region_rejects_malformed(region: str) -> None:
    with pytest.raises(ValidationError, match="region"):
        validate_region(region)


def test_validate_profile() -> None:
    assert validate_profile("") is None, "Blank profile leaves the credential chain alone"
    assert validate_profile(None) is None
    assert validate_profile("ops") == "ops"
    with pytest.raises(ValidationError, match="whitespace"):
        validate_profile("my profile")
