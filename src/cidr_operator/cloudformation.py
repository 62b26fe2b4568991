"""CloudFormation document target.

Resources are keyed by their own name; the logical id in the written
template is derived from type and name because CloudFormation logical ids
must be alphanumeric.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel

from .config import DeploymentTarget
from .errors import ReconcileError
from .terraform import RenderedResource
from .vpc import cloudformation_logical_id

logger = logging.getLogger(__name__)

CLOUDFORMATION_FILENAME = "kubernetes.json"


class CloudformationTarget:
    """Collects CloudFormation resources and writes a template on finish()."""

    kind: ClassVar[DeploymentTarget] = DeploymentTarget.CLOUDFORMATION

    def __init__(self, out_dir: Path) -> None:
        self.out_dir = out_dir
        self._resources: list[RenderedResource] = []
        self._lock = threading.Lock()

    @property
    def resources(self) -> list[RenderedResource]:
        with self._lock:
            return list(self._resources)

    def render_resource(self, resource_type: str, name: str, record: BaseModel) -> None:
        """Add a resource to the template.

        Raises:
            ReconcileError: If another resource maps to the same logical id.
        """
        logical_id = cloudformation_logical_id(resource_type, name)
        with self._lock:
            for existing in self._resources:
                if cloudformation_logical_id(existing.resource_type, existing.name) == logical_id:
                    raise ReconcileError(
                        f"error rendering {resource_type}: duplicate logical id {logical_id!r}"
                    )
            self._resources.append(RenderedResource(resource_type, name, record))

        logger.debug(
            "Rendered cloudformation resource",
            extra={"resource_type": resource_type, "logical_id": logical_id},
        )

    def document(self) -> dict[str, Any]:
        """Assemble the CloudFormation template."""
        resources: dict[str, Any] = {}
        for rendered in self.resources:
            logical_id = cloudformation_logical_id(rendered.resource_type, rendered.name)
            resources[logical_id] = {
                "Type": rendered.resource_type,
                "Properties": rendered.fields,
            }
        return {"Resources": resources}

    def finish(self) -> Path:
        """Write the template to out_dir and return its path."""
        path = self.out_dir / CLOUDFORMATION_FILENAME
        path.write_text(json.dumps(self.document(), indent=2, sort_keys=True) + "\n")
        logger.info(
            "Wrote cloudformation template",
            extra={"path": str(path), "resource_count": len(self.resources)},
        )
        return path
