"""Thin wrapper around the boto3 EC2 client.

Only the calls the reconciliation core needs are exposed. Retries and
throttling are left to botocore's own retry configuration; errors are
translated into ProviderCommunicationError and never retried here.
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .errors import ProviderCommunicationError

logger = logging.getLogger(__name__)

# Tag used by kops-style clusters to mark owned resources
CLUSTER_TAG = "KubernetesCluster"

# CIDR association state meaning the association is confirmed
ASSOCIATED_STATE = "associated"

VPC_NOT_FOUND_CODE = "InvalidVpcID.NotFound"


def build_filters(name: str | None, cluster_name: str | None = None) -> list[dict[str, Any]]:
    """Build DescribeVpcs filters matching a resource by its tags.

    Args:
        name: Value of the Name tag.
        cluster_name: Optional cluster tag value.

    Returns:
        EC2 filter list.
    """
    filters: list[dict[str, Any]] = []
    if name:
        filters.append({"Name": "tag:Name", "Values": [name]})
    if cluster_name:
        filters.append({"Name": f"tag:{CLUSTER_TAG}", "Values": [cluster_name]})
    return filters


class AWSCloud:
    """Provider interface backed by an EC2 client."""

    def __init__(
        self,
        region: str,
        *,
        cluster_name: str | None = None,
        ec2_client: Any | None = None,
    ) -> None:
        """Initialize the cloud wrapper.

        Args:
            region: AWS region.
            cluster_name: Cluster tag used when filtering by tags.
            ec2_client: Pre-built EC2 client (tests inject mocks or stubbed
                clients here). Created from the default credential chain if
                omitted.
        """
        self.region = region
        self.cluster_name = cluster_name
        if ec2_client is None:
            ec2_client = boto3.client(
                "ec2",
                region_name=region,
                config=BotoConfig(retries={"mode": "standard"}),
            )
        self._ec2 = ec2_client

    @property
    def ec2(self) -> Any:
        return self._ec2

    def build_filters(self, name: str | None) -> list[dict[str, Any]]:
        return build_filters(name, self.cluster_name)

    def describe_vpcs(
        self,
        *,
        vpc_ids: list[str] | None = None,
        filters: list[dict[str, Any]] | None = None,
        resource: str | None = None,
    ) -> list[dict[str, Any]]:
        """Describe VPCs by id or by filter.

        Returns:
            VPC records in provider order, each with a CidrBlockAssociationSet.

        Raises:
            ProviderCommunicationError: If the EC2 call fails.
        """
        request: dict[str, Any] = {}
        if vpc_ids:
            request["VpcIds"] = vpc_ids
        else:
            request["Filters"] = filters or []

        logger.debug("Describing VPCs", extra={"request": request, "region": self.region})
        try:
            response = self._ec2.describe_vpcs(**request)
        except ClientError as e:
            # A VPC id that no longer exists is zero matches, not a failure
            if e.response.get("Error", {}).get("Code") == VPC_NOT_FOUND_CODE:
                logger.debug("VPC not found", extra={"vpc_ids": vpc_ids, "region": self.region})
                return []
            raise ProviderCommunicationError("listing", "VPCs", e, resource=resource) from e
        except BotoCoreError as e:
            raise ProviderCommunicationError("listing", "VPCs", e, resource=resource) from e

        if not response:
            return []
        return list(response.get("Vpcs") or [])

    def associate_vpc_cidr_block(
        self,
        vpc_id: str,
        cidr_block: str,
        *,
        resource: str | None = None,
    ) -> str | None:
        """Associate an IPv4 CIDR block with a VPC.

        Returns:
            The association id reported by EC2, if any.

        Raises:
            ProviderCommunicationError: If the EC2 call fails.
        """
        logger.info(
            "Associating CIDR block with VPC",
            extra={"vpc_id": vpc_id, "cidr_block": cidr_block, "resource": resource},
        )
        try:
            response = self._ec2.associate_vpc_cidr_block(VpcId=vpc_id, CidrBlock=cidr_block)
        except (ClientError, BotoCoreError) as e:
            raise ProviderCommunicationError(
                "associating",
                f"CIDR block {cidr_block} with VPC {vpc_id}",
                e,
                resource=resource,
            ) from e

        association = (response or {}).get("CidrBlockAssociation") or {}
        return association.get("AssociationId")
