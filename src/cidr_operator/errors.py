"""Error taxonomy for reconciliation passes.

Every error aborts the pass of the resource it was raised for and is
returned to the caller as-is. Messages follow the pattern
"error <verb>-ing <resource kind>: <cause>" where a provider is involved,
and always carry the resource name so the offending declaration can be
located.
"""

from __future__ import annotations

from botocore.exceptions import BotoCoreError, ClientError

# Error codes EC2 returns when the caller lacks IAM permissions
ACCESS_DENIED_CODES = frozenset({
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedOperation",
})


class ReconcileError(Exception):
    """Base class for errors that abort a reconciliation pass."""

    def __init__(self, message: str, *, resource: str | None = None) -> None:
        self.resource = resource
        if resource:
            message = f"{message} (resource {resource!r})"
        super().__init__(message)


class ProviderCommunicationError(ReconcileError):
    """A discovery or live-apply call to the provider failed.

    Not retried here; retry belongs to the caller.
    """

    def __init__(
        self,
        verb: str,
        kind: str,
        cause: ClientError | BotoCoreError,
        *,
        resource: str | None = None,
    ) -> None:
        self.verb = verb
        self.kind = kind
        self.cause = cause
        super().__init__(f"error {verb} {kind}: {cause}", resource=resource)

    @property
    def error_code(self) -> str | None:
        """AWS error code of the underlying ClientError, if any."""
        if isinstance(self.cause, ClientError):
            return self.cause.response.get("Error", {}).get("Code")
        return None

    @property
    def is_access_denied(self) -> bool:
        return self.error_code in ACCESS_DENIED_CODES


class RequiredFieldMissing(ReconcileError):
    """Desired state omits a mandatory field."""

    def __init__(self, field: str, *, resource: str | None = None) -> None:
        self.field = field
        super().__init__(f"field is required: {field}", resource=resource)


class FieldImmutable(ReconcileError):
    """Delta attempts to change a field that is fixed after creation."""

    def __init__(self, field: str, *, resource: str | None = None) -> None:
        self.field = field
        super().__init__(f"cannot change field: {field}", resource=resource)


class PreconditionViolated(ReconcileError):
    """A shared resource did not exist, or would have to be modified."""

    pass


class LifecycleViolation(ReconcileError):
    """Lifecycle ExistsAndValidates found the resource missing or divergent."""

    pass
