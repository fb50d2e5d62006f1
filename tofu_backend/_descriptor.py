"""Persist backend parameters for projects that cannot be initialised yet."""

from __future__ import annotations

import json
from pathlib import Path

from tofu_backend._backend_errors import DescriptorError
from tofu_backend._backend_models import BackendDescriptor

DESCRIPTOR_FILENAME = "backend-info.json"


def write_descriptor(project_dir: Path, descriptor: BackendDescriptor) -> Path:
    """Write ``descriptor`` as JSON into ``project_dir`` and return the path.

    An existing descriptor is overwritten; the remote stack remains the
    system of record.

    Raises
    ------
    DescriptorError
        If the file cannot be written.

    Examples
    --------
    >>> from pathlib import Path
    >>> write_descriptor(Path("/tmp"), descriptor).name
    'backend-info.json'
    """
    path = project_dir / DESCRIPTOR_FILENAME
    payload = json.dumps(descriptor.to_mapping(), indent=2)
    try:
        path.write_text(f"{payload}\n", encoding="utf-8")
    except OSError as exc:
        msg = f"unable to write backend descriptor {path}: {exc.strerror or exc}"
        raise DescriptorError(msg) from exc
    return path
