"""Generic reconciliation driver.

A pass for one resource runs strictly in sequence:

    UNKNOWN -> DISCOVERED -> VALIDATED -> RENDERED

1. Required fields are checked on the desired state (before any provider call)
2. Discover: task.find() returns the actual state or None ("does not exist")
3. Diff: build_changes() computes the delta as a new descriptor
4. Validate: task.check_changes() enforces immutability and required fields
5. Render exactly once, on the renderer matching the active target

Nothing in this module knows about a specific resource type. A new resource
type only supplies a Task implementation (find, check_changes and one
renderer per target).

Errors abort the pass and propagate to the caller unchanged. The only
exceptions are the lifecycle policies, which are explicit opt-ins to turn
divergence or missing permissions into warnings.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Self

from .config import DeploymentTarget
from .delta import build_changes, changed_fields
from .errors import (
    LifecycleViolation,
    ProviderCommunicationError,
    ReconcileError,
    RequiredFieldMissing,
)

if TYPE_CHECKING:
    from .aws_target import AWSAPITarget
    from .cloud import AWSCloud
    from .cloudformation import CloudformationTarget
    from .terraform import TerraformTarget

    Target = AWSAPITarget | TerraformTarget | CloudformationTarget

logger = logging.getLogger(__name__)


class Lifecycle(str, Enum):
    """How a pass reacts when actual state diverges from desired state."""

    # Converge: render whatever delta was found
    SYNC = "Sync"
    # Report divergence as a warning, never change anything
    EXISTS_AND_WARN_IF_CHANGES = "ExistsAndWarnIfChanges"
    # Divergence (including absence) is a hard failure
    EXISTS_AND_VALIDATES = "ExistsAndValidates"
    # Sync, but permission errors from the provider only warn
    WARN_IF_INSUFFICIENT_ACCESS = "WarnIfInsufficientAccess"


class PassState(str, Enum):
    """States of a single reconciliation pass."""

    UNKNOWN = "unknown"
    DISCOVERED = "discovered"
    VALIDATED = "validated"
    RENDERED = "rendered"
    # Terminal states besides RENDERED
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class Context:
    """What a pass needs besides the task itself."""

    target: Target
    cloud: AWSCloud | None = None
    check_existing: bool = True

    def __post_init__(self) -> None:
        if self.check_existing and self.cloud is None:
            raise ValueError("discovery requires a cloud client")
        if self.target.kind == DeploymentTarget.DIRECT and not self.check_existing:
            raise ValueError("the direct target requires discovery")


@dataclass
class PassResult:
    """Outcome of one resource's reconciliation pass."""

    kind: str
    resource: str
    target: DeploymentTarget
    state: PassState = PassState.UNKNOWN
    exists: bool | None = None
    changed_fields: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: Exception | None = None

    @property
    def changed(self) -> bool:
        return bool(self.changed_fields)

    @property
    def success(self) -> bool:
        return self.error is None and self.state in (PassState.RENDERED, PassState.SKIPPED)


class Task(ABC):
    """Contract implemented by every reconcilable resource type.

    Implementations are frozen dataclasses whose optional fields are None
    when unset; the same class describes desired, actual and delta state.
    """

    # Human readable resource kind used in messages
    KIND: ClassVar[str] = "resource"

    # attribute name -> field name reported in RequiredFieldMissing
    REQUIRED_FIELDS: ClassVar[dict[str, str]] = {}

    name: str | None
    lifecycle: Lifecycle | None

    @abstractmethod
    def find(self, context: Context) -> Self | None:
        """Discover actual state; None means the resource does not exist."""

    @abstractmethod
    def check_changes(self, a: Self | None, e: Self, changes: Self | None) -> None:
        """Reject illegal deltas."""

    @abstractmethod
    def render_aws(self, t: AWSAPITarget, a: Self | None, e: Self, changes: Self) -> None:
        """Converge through the provider API."""

    @abstractmethod
    def render_terraform(self, t: TerraformTarget, a: Self | None, e: Self, changes: Self) -> None:
        """Emit a Terraform resource record."""

    @abstractmethod
    def render_cloudformation(
        self, t: CloudformationTarget, a: Self | None, e: Self, changes: Self
    ) -> None:
        """Emit a CloudFormation resource record."""


def require_fields(task: Task) -> None:
    """Raise RequiredFieldMissing for the first unset required field."""
    for attr, field_name in task.REQUIRED_FIELDS.items():
        if getattr(task, attr, None) is None:
            raise RequiredFieldMissing(field_name, resource=task.name)


def render(target: Target, a: Any, e: Task, changes: Any) -> None:
    """Invoke the renderer for the target's kind."""
    match target.kind:
        case DeploymentTarget.DIRECT:
            e.render_aws(target, a, e, changes)
        case DeploymentTarget.TERRAFORM:
            e.render_terraform(target, a, e, changes)
        case DeploymentTarget.CLOUDFORMATION:
            e.render_cloudformation(target, a, e, changes)
        case _:
            raise ReconcileError(f"unsupported deployment target: {target.kind}", resource=e.name)


def run_pass(task: Task, context: Context) -> PassResult:
    """Run one reconciliation pass for a task.

    Args:
        task: Desired state.
        context: Target, cloud client and discovery setting for this pass.

    Returns:
        PassResult in state RENDERED or SKIPPED.

    Raises:
        ReconcileError: Any discovery, validation or render failure.
    """
    result = PassResult(kind=task.KIND, resource=task.name or "", target=context.target.kind)
    lifecycle = task.lifecycle or Lifecycle.SYNC
    log_extra = {"kind": task.KIND, "resource": task.name, "target": context.target.kind.value}

    try:
        require_fields(task)

        actual = task.find(context) if context.check_existing else None
        result.state = PassState.DISCOVERED
        result.exists = actual is not None if context.check_existing else None

        changes, changed = build_changes(actual, task)
        if changed:
            result.changed_fields = changed_fields(changes)

        task.check_changes(actual, task, changes)
        result.state = PassState.VALIDATED

        # Lifecycle policies only apply to divergence observed on the provider
        if changed and context.check_existing:
            if lifecycle == Lifecycle.EXISTS_AND_VALIDATES:
                detail = "was not found" if actual is None else "does not match"
                raise LifecycleViolation(
                    f"lifecycle set to {lifecycle.value}, but {task.KIND} {detail}",
                    resource=task.name,
                )
            if lifecycle == Lifecycle.EXISTS_AND_WARN_IF_CHANGES:
                message = (
                    f"lifecycle set to {lifecycle.value} and changes were found: "
                    f"{', '.join(result.changed_fields)}"
                )
                logger.warning(message, extra=log_extra)
                result.warnings.append(message)
                result.state = PassState.SKIPPED
                return result

        render(context.target, actual, task, changes)
        result.state = PassState.RENDERED

    except ProviderCommunicationError as e:
        if lifecycle == Lifecycle.WARN_IF_INSUFFICIENT_ACCESS and e.is_access_denied:
            message = f"insufficient access, assuming {task.KIND} is correctly configured: {e}"
            logger.warning(message, extra=log_extra)
            result.warnings.append(message)
            result.state = PassState.SKIPPED
            return result
        logger.error(
            "Pass failed", extra={**log_extra, "state": result.state.value, "error": str(e)}
        )
        raise
    except ReconcileError as e:
        logger.error(
            "Pass failed", extra={**log_extra, "state": result.state.value, "error": str(e)}
        )
        raise

    logger.info(
        "Pass complete",
        extra={**log_extra, "exists": result.exists, "changed_fields": result.changed_fields},
    )
    return result
