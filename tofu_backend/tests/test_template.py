"""Tests for the CloudFormation template contract."""

from __future__ import annotations

from pathlib import Path

import pytest

from tofu_backend._aws import OUTPUT_KEYS
from tofu_backend._backend_errors import ConfigurationError
from tofu_backend._template import (
    DEFAULT_TEMPLATE_PATH,
    load_template,
    load_template_contract,
)


def test_bundled_template_satisfies_contract() -> None:
    contract = load_template_contract(DEFAULT_TEMPLATE_PATH)
    assert {"ProjectName", "EnvironmentName"} <= contract.parameters
    assert set(OUTPUT_KEYS.values()) <= contract.outputs
    assert contract.retained_resources == {
        "BackendKey",
        "AccessLogsBucket",
        "StateBucket",
        "LockTable",
    }


def test_bundled_template_resources() -> None:
    resources = load_template(DEFAULT_TEMPLATE_PATH)["Resources"]

    table = resources["LockTable"]["Properties"]
    assert table["BillingMode"] == "PAY_PER_REQUEST"
    assert table["KeySchema"] == [{"AttributeName": "LockID", "KeyType": "HASH"}]

    bucket = resources["StateBucket"]["Properties"]
    assert bucket["VersioningConfiguration"] == {"Status": "Enabled"}
    assert bucket["LoggingConfiguration"]["DestinationBucketName"] == {"Ref": "AccessLogsBucket"}
    assert all(bucket["PublicAccessBlockConfiguration"].values())

    statements = resources["BackendKey"]["Properties"]["KeyPolicy"]["Statement"]
    deny = next(s for s in statements if s["Effect"] == "Deny")
    assert deny["Action"] == "kms:ScheduleKeyDeletion"
    assert deny["Condition"] == {"StringNotEquals": {"aws:PrincipalType": "Service"}}


def test_intrinsic_tags_are_parsed(tmp_path: Path) -> None:
    template = tmp_path / "t.yaml"
    template.write_text(
        "Value: !GetAtt Key.Arn\nName: !Sub '${AWS::StackName}-x'\nRef: !Ref Bucket\n",
        encoding="utf-8",
    )
    document = load_template(template)
    assert document["Value"] == {"Fn::GetAtt": ["Key", "Arn"]}
    assert document["Name"] == {"Fn::Sub": "${AWS::StackName}-x"}
    assert document["Ref"] == {"Ref": "Bucket"}


def test_missing_template_is_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_template_contract(tmp_path / "absent.yaml")


def test_missing_output_is_configuration_error(tmp_path: Path) -> None:
    template = tmp_path / "t.yaml"
    template.write_text(
        "Parameters:\n  ProjectName: {Type: String}\n  EnvironmentName: {Type: String}\n"
        "Outputs:\n  OpenTofuBackendBucketName: {Value: x}\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigurationError, match="KMSKeyAlias"):
        load_template_contract(template)


def test_unretained_bucket_is_configuration_error(tmp_path: Path) -> None:
    outputs = "".join(f"  {name}: {{Value: x}}\n" for name in OUTPUT_KEYS.values())
    template = tmp_path / "t.yaml"
    template.write_text(
        "Parameters:\n  ProjectName: {Type: String}\n  EnvironmentName: {Type: String}\n"
        "Resources:\n  StateBucket:\n    Type: AWS::S3::Bucket\n"
        f"Outputs:\n{outputs}",
        encoding="utf-8",
    )
    with pytest.raises(ConfigurationError, match="StateBucket"):
        load_template_contract(template)


def test_non_mapping_template_is_configuration_error(tmp_path: Path) -> None:
    template = tmp_path / "t.yaml"
    template.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="mapping"):
        load_template(template)


def test_undecodable_template_is_configuration_error(tmp_path: Path) -> None:
    template = tmp_path / "t.yaml"
    template.write_bytes(b"\xff\xfeParameters: {}\n")
    with pytest.raises(ConfigurationError, match="unable to read"):
        load_template_contract(template)
