"""Configuration management with validation.

Configuration is validated at load time so a misconfigured operator fails
before it talks to the provider.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class DeploymentTarget(str, Enum):
    """Where a reconciliation pass renders its result."""

    DIRECT = "direct"
    TERRAFORM = "terraform"
    CLOUDFORMATION = "cloudformation"

    @property
    def is_document(self) -> bool:
        return self is not DeploymentTarget.DIRECT


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_RECONCILE_INTERVAL_SECONDS = 300
MIN_RECONCILE_INTERVAL_SECONDS = 60
MAX_RECONCILE_INTERVAL_SECONDS = 3600

DEFAULT_MAX_CONCURRENT_PASSES = 4
MAX_CONCURRENT_PASSES_LIMIT = 32

MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max spec file

DEFAULT_SPEC_FILE = "/specs/network.yaml"
DEFAULT_OUTPUT_DIR = "out"

VALID_REGION_PATTERN = r"^[a-z]{2}(-[a-z]+)+-\d$"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Operator configuration.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing mid-pass.
    """

    target: DeploymentTarget = DeploymentTarget.DIRECT
    region: str | None = None
    cluster_name: str | None = None

    # Paths
    spec_file: Path = field(default_factory=lambda: Path(DEFAULT_SPEC_FILE))
    output_dir: Path = field(default_factory=lambda: Path(DEFAULT_OUTPUT_DIR))

    # Discovery; None picks the target's default
    check_existing: bool | None = None

    # Loop behaviour
    run_once: bool = False
    reconcile_interval_seconds: int = DEFAULT_RECONCILE_INTERVAL_SECONDS
    max_concurrent_passes: int = DEFAULT_MAX_CONCURRENT_PASSES

    # Logging
    log_level: str = "INFO"
    json_logging: bool = True

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if self.discovery_enabled:
            if not self.region:
                errors.append("AWS_REGION is required when discovery or live apply is enabled")
            elif not re.match(VALID_REGION_PATTERN, self.region):
                errors.append(f"AWS_REGION must be a valid AWS region: {self.region}")

        if self.target == DeploymentTarget.DIRECT and self.check_existing is False:
            errors.append("CHECK_EXISTING cannot be disabled for the direct target")

        if not (
            MIN_RECONCILE_INTERVAL_SECONDS
            <= self.reconcile_interval_seconds
            <= MAX_RECONCILE_INTERVAL_SECONDS
        ):
            errors.append(
                f"RECONCILE_INTERVAL must be between {MIN_RECONCILE_INTERVAL_SECONDS} "
                f"and {MAX_RECONCILE_INTERVAL_SECONDS} seconds"
            )

        if not 1 <= self.max_concurrent_passes <= MAX_CONCURRENT_PASSES_LIMIT:
            errors.append(
                f"MAX_CONCURRENT_PASSES must be between 1 and {MAX_CONCURRENT_PASSES_LIMIT}"
            )

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {list(VALID_LOG_LEVELS)}: {self.log_level}")

        # Path validation
        if not self.spec_file.is_file():
            errors.append(f"Spec file does not exist: {self.spec_file}")

        if self.target.is_document and not self.output_dir.is_dir():
            errors.append(f"Output directory does not exist: {self.output_dir}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def discovery_enabled(self) -> bool:
        """Whether passes query the provider for actual state.

        Document targets describe the full desired state, so discovery is
        off for them unless explicitly requested.
        """
        if self.check_existing is None:
            return not self.target.is_document
        return self.check_existing

    @property
    def single_pass(self) -> bool:
        """Document targets always run exactly one pass."""
        return self.run_once or self.target.is_document

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            DEPLOYMENT_TARGET: One of direct, terraform, cloudformation (default: direct)
            AWS_REGION: Region for discovery and live apply
            CLUSTER_NAME: Cluster tag value for tag-based discovery
            SPEC_FILE: Desired-state YAML file (default: /specs/network.yaml)
            OUTPUT_DIR: Directory for generated documents (default: ./out)
            CHECK_EXISTING: Query the provider for actual state (default: target dependent)
            RUN_ONCE: If "true", run a single pass and exit (default: false)
            RECONCILE_INTERVAL: Seconds between passes (default: 300)
            MAX_CONCURRENT_PASSES: Concurrent resource passes (default: 4)
            LOG_LEVEL: Logging level (default: INFO)
            ENABLE_JSON_LOGGING: JSON log lines on stdout (default: true)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        def get_optional_bool(key: str) -> bool | None:
            if not os.environ.get(key):
                return None
            return get_bool(key, False)

        def get_target(value: str | None) -> DeploymentTarget:
            if not value:
                return DeploymentTarget.DIRECT
            try:
                return DeploymentTarget(value.lower())
            except ValueError as e:
                valid = [t.value for t in DeploymentTarget]
                raise ConfigurationError(
                    f"DEPLOYMENT_TARGET must be one of {valid}: {value}"
                ) from e

        return cls(
            target=get_target(os.environ.get("DEPLOYMENT_TARGET")),
            region=os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION"),
            cluster_name=os.environ.get("CLUSTER_NAME") or None,
            spec_file=Path(os.environ.get("SPEC_FILE", DEFAULT_SPEC_FILE)),
            output_dir=Path(os.environ.get("OUTPUT_DIR", DEFAULT_OUTPUT_DIR)),
            check_existing=get_optional_bool("CHECK_EXISTING"),
            run_once=get_bool("RUN_ONCE", False),
            reconcile_interval_seconds=get_int(
                "RECONCILE_INTERVAL", DEFAULT_RECONCILE_INTERVAL_SECONDS
            ),
            max_concurrent_passes=get_int("MAX_CONCURRENT_PASSES", DEFAULT_MAX_CONCURRENT_PASSES),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            json_logging=get_bool("ENABLE_JSON_LOGGING", True),
        )
