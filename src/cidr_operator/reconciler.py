"""Reconciliation loop over all declared resources.

Each resource gets its own independent pass (see dispatcher.run_pass).
Passes run on worker threads because discovery and live apply block on the
provider. Scheduling rules:

- passes for different resources may run concurrently, bounded by
  MAX_CONCURRENT_PASSES
- passes for the same resource are serialized with a per-resource lock
- parent ordering is not handled here; parents must already be resolved

A failed pass is recorded in the cycle result and logged; it never stops
the passes of other resources.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .config import Config
from .dispatcher import Context, PassResult, PassState, Task, run_pass

if TYPE_CHECKING:
    from .dispatcher import Target

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result of a single reconciliation cycle."""

    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    passes: list[PassResult] = field(default_factory=list)
    document_path: Path | None = None
    error: Exception | None = None

    @property
    def duration_seconds(self) -> float:
        """Calculate duration in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def failures(self) -> list[PassResult]:
        return [p for p in self.passes if not p.success]

    @property
    def success(self) -> bool:
        """Check if every pass succeeded."""
        return self.error is None and not self.failures


class Reconciler:
    """Runs reconciliation passes for a set of desired-state tasks."""

    def __init__(self, config: Config, tasks: list[Task], context: Context) -> None:
        """Initialize reconciler.

        Args:
            config: Validated operator configuration.
            tasks: Desired state, one task per resource.
            context: Target and cloud client shared by all passes.
        """
        self._config = config
        self._tasks = tasks
        self._context = context
        self._semaphore = asyncio.Semaphore(config.max_concurrent_passes)
        self._locks: dict[str, asyncio.Lock] = {}
        self._shutdown_event = asyncio.Event()

    @property
    def config(self) -> Config:
        return self._config

    @property
    def target(self) -> Target:
        return self._context.target

    def _lock_for(self, task: Task) -> asyncio.Lock:
        key = f"{task.KIND}/{task.name}"
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _run_task(self, task: Task) -> PassResult:
        async with self._lock_for(task), self._semaphore:
            try:
                return await asyncio.to_thread(run_pass, task, self._context)
            except Exception as e:
                return PassResult(
                    kind=task.KIND,
                    resource=task.name or "",
                    target=self.target.kind,
                    state=PassState.FAILED,
                    error=e,
                )

    async def reconcile_once(self) -> ReconcileResult:
        """Execute a single reconciliation cycle over all tasks.

        Document targets are written only when every pass succeeded, so a
        partial document is never handed to the downstream tool.
        """
        result = ReconcileResult()

        result.passes = list(await asyncio.gather(*(self._run_task(t) for t in self._tasks)))

        if result.success and self.target.kind.is_document:
            try:
                result.document_path = self.target.finish()
            except OSError as e:
                result.error = e

        result.end_time = datetime.now(UTC)
        self._log_result(result)
        return result

    async def run(self) -> None:
        """Run reconciliation cycles at the configured interval until shutdown."""
        logger.info(
            "Starting reconciler",
            extra={
                "target": self._config.target.value,
                "interval_seconds": self._config.reconcile_interval_seconds,
                "resource_count": len(self._tasks),
            },
        )

        while not self._shutdown_event.is_set():
            await self.reconcile_once()

            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=self._config.reconcile_interval_seconds,
                )
            except TimeoutError:
                # Normal timeout, continue to next cycle
                pass

        logger.info("Reconciler shutdown complete")

    def shutdown(self) -> None:
        """Signal the reconciler to stop."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()

    def _log_result(self, result: ReconcileResult) -> None:
        """Log reconciliation result with structured data."""
        extra: dict[str, Any] = {
            "target": self._config.target.value,
            "duration_seconds": result.duration_seconds,
            "passes": len(result.passes),
            "rendered": sum(1 for p in result.passes if p.state == PassState.RENDERED),
            "skipped": sum(1 for p in result.passes if p.state == PassState.SKIPPED),
            "failed": len(result.failures),
        }
        if result.document_path is not None:
            extra["document_path"] = str(result.document_path)

        for failed in result.failures:
            logger.error(
                "Resource pass failed",
                extra={
                    "kind": failed.kind,
                    "resource": failed.resource,
                    "error": str(failed.error),
                    "error_type": type(failed.error).__name__,
                },
            )

        if result.success:
            logger.info("Reconciliation complete", extra=extra)
        else:
            if result.error is not None:
                extra["error"] = str(result.error)
            logger.error("Reconciliation failed", extra=extra)
