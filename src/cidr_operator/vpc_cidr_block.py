"""VPC CIDR block association task.

Tracks one additional IPv4 CIDR block associated with a VPC. The VPC is a
required, immutable parent: an association is never moved between VPCs.

Shared associations are owned elsewhere. They are asserted to exist and
never created or modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .cloud import ASSOCIATED_STATE
from .dispatcher import Context, Lifecycle, Task
from .errors import FieldImmutable, PreconditionViolated, RequiredFieldMissing
from .vpc import CloudformationLiteral, ResolvedVPC, TerraformLiteral, VPCReference

if TYPE_CHECKING:
    from .aws_target import AWSAPITarget
    from .cloudformation import CloudformationTarget
    from .terraform import TerraformTarget

logger = logging.getLogger(__name__)

TERRAFORM_RESOURCE_TYPE = "aws_vpc_ipv4_cidr_block_association"
CLOUDFORMATION_RESOURCE_TYPE = "AWS::EC2::VPCCidrBlock"

# Terraform 0.12+ rejects resource names starting with a digit
TERRAFORM_NAME_PREFIX = "cidr-"


class TerraformVPCCIDRBlock(BaseModel):
    """Field record for aws_vpc_ipv4_cidr_block_association."""

    model_config = ConfigDict(frozen=True)

    vpc_id: TerraformLiteral
    cidr_block: str | None = None

    @field_serializer("vpc_id")
    def _serialize_link(self, value: TerraformLiteral) -> str:
        return value.to_json()


class CloudformationVPCCIDRBlock(BaseModel):
    """Field record for AWS::EC2::VPCCidrBlock."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    vpc_id: CloudformationLiteral = Field(alias="VpcId")
    cidr_block: str | None = Field(None, alias="CidrBlock")

    @field_serializer("vpc_id")
    def _serialize_link(self, value: CloudformationLiteral) -> object:
        return value.to_json()


def first_associated(associations: list[dict], preferred: str | None = None) -> list[str]:
    """Pick the tracked CIDR block from a VPC's association set.

    Entries that are pending, disassociating or failed are ignored. A VPC
    may carry several associations (the primary block among them); this
    resource tracks the preferred block when it is associated, otherwise
    the first associated one in provider order.
    """
    associated = [
        association["CidrBlock"]
        for association in associations
        if (association.get("CidrBlockState") or {}).get("State") == ASSOCIATED_STATE
        and association.get("CidrBlock")
    ]
    if preferred is not None and preferred in associated:
        return [preferred]
    return associated[:1]


@dataclass(frozen=True)
class VPCCIDRBlock(Task):
    """Desired, actual or delta state of a VPC CIDR block association."""

    KIND: ClassVar[str] = "VPC CIDR block"
    REQUIRED_FIELDS: ClassVar[dict[str, str]] = {"vpc": "VPC"}

    name: str | None = None
    lifecycle: Lifecycle | None = None
    vpc: VPCReference | None = None
    cidr_blocks: tuple[str, ...] | None = None
    # Set if the association is owned outside this operator
    shared: bool | None = None

    def __post_init__(self) -> None:
        if self.cidr_blocks is not None and len(self.cidr_blocks) > 1:
            raise ValueError(
                f"{self.KIND} {self.name!r} tracks a single CIDR block, "
                f"got {list(self.cidr_blocks)}"
            )

    @property
    def is_shared(self) -> bool:
        return bool(self.shared)

    @property
    def cidr_block(self) -> str | None:
        """The single tracked CIDR block, if any."""
        if not self.cidr_blocks:
            return None
        return self.cidr_blocks[0]

    def find(self, context: Context) -> VPCCIDRBlock | None:
        """Discover the association on the live VPC.

        The desired block is preferred over the first associated one in
        provider order, so the primary CIDR never masks a converged block.

        Returns:
            Actual state, or None if the VPC was not found or its id is not
            known yet.

        Raises:
            ProviderCommunicationError: If listing VPCs fails.
        """
        cloud = context.cloud
        vpc_id = self.vpc.vpc_id if self.vpc is not None else None

        if vpc_id:
            vpcs = cloud.describe_vpcs(vpc_ids=[vpc_id], resource=self.name)
        else:
            vpcs = cloud.describe_vpcs(filters=cloud.build_filters(self.name), resource=self.name)

        if not vpcs:
            return None

        # Without a resolved parent id there is nothing to compare against
        if not vpc_id:
            logger.debug(
                "VPC id unresolved, treating CIDR block as absent",
                extra={"resource": self.name, "matched_vpcs": len(vpcs)},
            )
            return None

        vpc = vpcs[0]
        tracked = first_associated(vpc.get("CidrBlockAssociationSet") or [], self.cidr_block)

        return VPCCIDRBlock(
            name=self.name,
            lifecycle=self.lifecycle,
            vpc=ResolvedVPC(
                name=self.vpc.name,
                shared=self.vpc.shared,
                id=vpc.get("VpcId") or vpc_id,
            ),
            cidr_blocks=tuple(tracked),
            shared=self.shared,
        )

    def check_changes(
        self,
        a: VPCCIDRBlock | None,
        e: VPCCIDRBlock,
        changes: VPCCIDRBlock | None,
    ) -> None:
        """Enforce the required and immutable VPC field.

        Raises:
            RequiredFieldMissing: If the desired state has no VPC.
            FieldImmutable: If an existing association would move VPC.
        """
        if e.vpc is None:
            raise RequiredFieldMissing("VPC", resource=e.name)

        if a is not None and changes is not None and changes.vpc is not None:
            raise FieldImmutable("VPC", resource=e.name)

    def render_aws(
        self,
        t: AWSAPITarget,
        a: VPCCIDRBlock | None,
        e: VPCCIDRBlock,
        changes: VPCCIDRBlock,
    ) -> None:
        """Associate the CIDR block with the VPC if it is not associated yet.

        Raises:
            PreconditionViolated: If a shared association is missing or
                would need changing, or the VPC id is still unresolved.
            ProviderCommunicationError: If the EC2 call fails.
        """
        if e.is_shared:
            if a is None:
                raise PreconditionViolated(
                    f"{self.KIND} {e.cidr_block!r} not found", resource=e.name
                )
            if changes.cidr_blocks:
                raise PreconditionViolated(
                    f"shared {self.KIND} differs from desired state "
                    f"(have {list(a.cidr_blocks or ())}, want {list(changes.cidr_blocks)})",
                    resource=e.name,
                )

        if not changes.cidr_blocks:
            return

        vpc_id = e.vpc.vpc_id
        if not vpc_id:
            raise PreconditionViolated(
                f"VPC {e.vpc.name!r} has no id yet, cannot associate {self.KIND}",
                resource=e.name,
            )

        cidr_block = changes.cidr_block
        if a is not None and cidr_block in (a.cidr_blocks or ()):
            return
        t.cloud.associate_vpc_cidr_block(vpc_id, cidr_block, resource=e.name)

    def render_terraform(
        self,
        t: TerraformTarget,
        a: VPCCIDRBlock | None,
        e: VPCCIDRBlock,
        changes: VPCCIDRBlock,
    ) -> None:
        record = TerraformVPCCIDRBlock(vpc_id=e.vpc.terraform_link(), cidr_block=e.cidr_block)
        t.render_resource(TERRAFORM_RESOURCE_TYPE, f"{TERRAFORM_NAME_PREFIX}{e.name}", record)

    def render_cloudformation(
        self,
        t: CloudformationTarget,
        a: VPCCIDRBlock | None,
        e: VPCCIDRBlock,
        changes: VPCCIDRBlock,
    ) -> None:
        record = CloudformationVPCCIDRBlock(
            vpc_id=e.vpc.cloudformation_link(), cidr_block=e.cidr_block
        )
        t.render_resource(CLOUDFORMATION_RESOURCE_TYPE, e.name, record)
