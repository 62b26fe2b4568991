"""Main entry point for the VPC CIDR block operator.

The operator loads the desired state from a YAML spec, then either runs a
single reconciliation cycle (document targets, RUN_ONCE) or loops at
RECONCILE_INTERVAL until SIGTERM/SIGINT.
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from datetime import UTC, datetime

from .aws_target import AWSAPITarget
from .cloud import AWSCloud
from .cloudformation import CloudformationTarget
from .config import Config, ConfigurationError, DeploymentTarget
from .dispatcher import Context
from .reconciler import Reconciler
from .spec_loader import SpecLoadError, load_spec
from .terraform import TerraformTarget

# LogRecord attributes that are not user-supplied extra fields
_RESERVED_LOG_ATTRS = frozenset({
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "exc_info",
    "exc_text",
    "thread",
    "threadName",
    "taskName",
    "message",
})


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add extra fields from the record
        for key, value in record.__dict__.items():
            if key not in _RESERVED_LOG_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Configure logging on stdout, JSON formatted unless disabled."""
    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    # Reduce noise from the AWS SDK
    for noisy in ("boto3", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def build_context(config: Config, cloud: AWSCloud | None = None) -> Context:
    """Create the target and cloud client selected by configuration.

    Args:
        config: Validated configuration.
        cloud: Pre-built cloud wrapper; created from config if omitted and
            discovery is enabled.
    """
    if cloud is None and config.discovery_enabled:
        cloud = AWSCloud(config.region, cluster_name=config.cluster_name)

    match config.target:
        case DeploymentTarget.DIRECT:
            target = AWSAPITarget(cloud)
        case DeploymentTarget.TERRAFORM:
            target = TerraformTarget(config.output_dir)
        case DeploymentTarget.CLOUDFORMATION:
            target = CloudformationTarget(config.output_dir)

    return Context(target=target, cloud=cloud, check_existing=config.discovery_enabled)


async def run_operator(config: Config, cloud: AWSCloud | None = None) -> int:
    """Run the operator for a validated configuration.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    logger = logging.getLogger(__name__)

    try:
        spec = load_spec(config.spec_file)
    except SpecLoadError as e:
        logger.error(
            "Spec loading failed",
            extra={"error": str(e), "spec_file": str(config.spec_file)},
        )
        return 1

    reconciler = Reconciler(config, spec.to_tasks(), build_context(config, cloud))

    if config.single_pass:
        result = await reconciler.reconcile_once()
        return 0 if result.success else 1

    loop = asyncio.get_running_loop()

    def signal_handler(sig: signal.Signals) -> None:
        logger.info("Received signal", extra={"signal": sig.name})
        reconciler.shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))

    try:
        await reconciler.run()
    except Exception as e:
        logger.exception("Unhandled exception", extra={"error": str(e)})
        return 1

    logger.info("Operator stopped")
    return 0


async def main() -> int:
    """Load configuration from the environment and run the operator."""
    try:
        config = Config.from_env()
    except ConfigurationError as e:
        setup_logging()
        logging.getLogger(__name__).error("Configuration error", extra={"error": str(e)})
        return 1

    setup_logging(config.log_level, config.json_logging)
    logging.getLogger(__name__).info(
        "Starting VPC CIDR block operator",
        extra={
            "target": config.target.value,
            "region": config.region,
            "spec_file": str(config.spec_file),
            "check_existing": config.discovery_enabled,
        },
    )
    return await run_operator(config)


def run() -> None:
    """Entry point for the operator."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
