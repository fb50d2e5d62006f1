from __future__ import annotations

import sys
from pathlib import Path

import pytest

from tofu_backend._backend_models import BackendSettings, DeploymentOutputs, Identity
from tofu_backend._template import DEFAULT_TEMPLATE_PATH


def pytest_configure() -> None:
    project_root = Path(__file__).resolve().parents[2]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


@pytest.fixture
def settings(tmp_path: Path) -> BackendSettings:
    return BackendSettings(
        identity=Identity(project_name="demo", environment_name="dev"),
        region="eu-west-1",
        profile="default",
        project_dir=tmp_path,
        template_path=DEFAULT_TEMPLATE_PATH,
    )


@pytest.fixture
def outputs() -> DeploymentOutputs:
    return DeploymentOutputs(
        bucket_name="opentofu-backend-demo-dev",
        lock_table_name="opentofu-backend-demo-dev-lock",
        key_id="1234abcd-12ab-34cd-56ef-1234567890ab",
        key_alias="alias/opentofu-backend-demo-dev",
    )
