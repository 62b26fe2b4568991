"""Terraform document target.

Renderers hand a (resource type, resource name, field record) triple to
render_resource(); nothing touches the provider. finish() writes the
collected resources as Terraform JSON syntax.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel

from .config import DeploymentTarget
from .errors import ReconcileError
from .vpc import terraform_sanitize

logger = logging.getLogger(__name__)

TERRAFORM_FILENAME = "kubernetes.tf.json"


@dataclass(frozen=True)
class RenderedResource:
    """A resource record handed to a document target."""

    resource_type: str
    name: str
    record: BaseModel

    @property
    def fields(self) -> dict[str, Any]:
        return self.record.model_dump(by_alias=True, exclude_none=True)


class TerraformTarget:
    """Collects Terraform resources and writes them on finish()."""

    kind: ClassVar[DeploymentTarget] = DeploymentTarget.TERRAFORM

    def __init__(self, out_dir: Path) -> None:
        self.out_dir = out_dir
        self._resources: list[RenderedResource] = []
        self._lock = threading.Lock()

    @property
    def resources(self) -> list[RenderedResource]:
        with self._lock:
            return list(self._resources)

    def render_resource(self, resource_type: str, name: str, record: BaseModel) -> None:
        """Add a resource block to the document.

        Raises:
            ReconcileError: If a resource with the same type and name was
                already rendered.
        """
        with self._lock:
            for existing in self._resources:
                if existing.resource_type == resource_type and existing.name == name:
                    raise ReconcileError(
                        f"error rendering {resource_type}: duplicate resource name {name!r}"
                    )
            self._resources.append(RenderedResource(resource_type, name, record))

        logger.debug(
            "Rendered terraform resource",
            extra={"resource_type": resource_type, "resource_name": name},
        )

    def document(self) -> dict[str, Any]:
        """Assemble the Terraform JSON document."""
        blocks: dict[str, dict[str, Any]] = {}
        for rendered in self.resources:
            by_name = blocks.setdefault(rendered.resource_type, {})
            by_name[terraform_sanitize(rendered.name)] = rendered.fields
        return {"resource": blocks}

    def finish(self) -> Path:
        """Write the document to out_dir and return its path."""
        path = self.out_dir / TERRAFORM_FILENAME
        path.write_text(json.dumps(self.document(), indent=2, sort_keys=True) + "\n")
        logger.info(
            "Wrote terraform document",
            extra={"path": str(path), "resource_count": len(self.resources)},
        )
        return path
