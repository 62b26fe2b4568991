"""Spec file loading with validation.

All file operations enforce size limits. Input validation is performed at
the boundary.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .config import MAX_SPEC_FILE_SIZE_BYTES
from .models import NetworkSpec

logger = logging.getLogger(__name__)


class SpecLoadError(Exception):
    """Raised when spec loading or validation fails."""

    pass


def load_spec(spec_path: Path) -> NetworkSpec:
    """Load and validate a network spec from YAML.

    Args:
        spec_path: Path to the spec file.

    Returns:
        Validated spec instance.

    Raises:
        SpecLoadError: If the spec cannot be loaded or fails validation.
    """
    if not spec_path.exists():
        raise SpecLoadError(f"Spec file not found: {spec_path}")

    # Check file size before reading
    try:
        file_size = spec_path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Failed to stat spec file {spec_path}: {e}") from e

    if file_size > MAX_SPEC_FILE_SIZE_BYTES:
        raise SpecLoadError(
            f"Spec file exceeds maximum size of {MAX_SPEC_FILE_SIZE_BYTES} bytes: {spec_path}"
        )

    try:
        content = spec_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read spec file {spec_path}: {e}") from e

    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {spec_path}: {e}") from e

    if not isinstance(raw_data, dict):
        raise SpecLoadError(f"Spec file must contain a YAML mapping: {spec_path}")

    # Support both flat format and Kubernetes-style wrapper
    if "apiVersion" in raw_data and "spec" in raw_data:
        spec_data = raw_data.get("spec", {})
        if not isinstance(spec_data, dict):
            raise SpecLoadError(f"Spec section must be a mapping: {spec_path}")
    else:
        spec_data = raw_data

    try:
        spec = NetworkSpec.model_validate(spec_data)
    except ValidationError as e:
        # Format Pydantic validation errors for readability
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"]) or "<root>"
            errors.append(f"  - {loc}: {error['msg']}")

        error_list = "\n".join(errors)
        raise SpecLoadError(f"Validation failed for {spec_path}:\n{error_list}") from e

    logger.info(
        "Loaded spec from %s",
        spec_path,
        extra={"vpc_count": len(spec.vpcs), "cidr_block_count": len(spec.cidr_blocks)},
    )
    return spec
