"""Live-apply target: converges reality by calling the EC2 API."""

from __future__ import annotations

from typing import ClassVar

from .cloud import AWSCloud
from .config import DeploymentTarget


class AWSAPITarget:
    """Target that applies deltas directly through the provider API."""

    kind: ClassVar[DeploymentTarget] = DeploymentTarget.DIRECT

    def __init__(self, cloud: AWSCloud) -> None:
        self.cloud = cloud

    def finish(self) -> None:
        """Nothing is buffered for the live target."""
        return None
