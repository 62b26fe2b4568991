"""Pydantic models for the desired-state spec with validation.

These models provide:
1. Type-safe YAML parsing
2. Validation at the boundary (fail fast, fail loudly)
3. Conversion to task descriptors for the reconciliation core

Example spec:

    vpcs:
      - name: main
        id: vpc-0a1b2c3d
    cidrBlocks:
      - name: main-secondary
        vpc: main
        cidrBlocks: ["10.1.0.0/16"]
"""

from __future__ import annotations

import ipaddress
from typing import Annotated

from pydantic import BaseModel, Field, field_validator, model_validator

from .dispatcher import Lifecycle
from .vpc import ResolvedVPC, UnresolvedVPC, VPCReference
from .vpc_cidr_block import VPCCIDRBlock


class VPCSpec(BaseModel):
    """A parent VPC declaration."""

    model_config = {"extra": "ignore"}

    name: Annotated[str, Field(min_length=1, max_length=255)]
    # Provider id; omitted while the VPC is not created yet
    id: str | None = None
    shared: bool = False

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str | None) -> str | None:
        if v is not None and not v.startswith("vpc-"):
            raise ValueError("id must be an EC2 VPC id (vpc-...)")
        return v or None

    def to_reference(self) -> VPCReference:
        if self.id:
            return ResolvedVPC(name=self.name, shared=self.shared, id=self.id)
        return UnresolvedVPC(name=self.name, shared=self.shared)


class CIDRBlockSpec(BaseModel):
    """A VPC CIDR block association declaration."""

    model_config = {"extra": "ignore"}

    name: Annotated[str, Field(min_length=1, max_length=255)]
    vpc: str | None = None
    cidr_blocks: list[str] = Field(default_factory=list, alias="cidrBlocks")
    lifecycle: Lifecycle | None = None
    shared: bool | None = None

    @field_validator("cidr_blocks")
    @classmethod
    def validate_cidr_blocks(cls, v: list[str]) -> list[str]:
        # One association per resource; declare further blocks as separate resources
        if len(v) > 1:
            raise ValueError(f"at most one CIDR block per resource is supported, got {len(v)}")
        for cidr in v:
            try:
                network = ipaddress.ip_network(cidr, strict=True)
            except ValueError as e:
                raise ValueError(f"invalid CIDR block {cidr!r}: {e}") from e
            if network.version != 4:
                raise ValueError(f"only IPv4 CIDR blocks are supported: {cidr}")
        return v


class NetworkSpec(BaseModel):
    """Top-level desired-state document."""

    model_config = {"extra": "ignore"}

    vpcs: list[VPCSpec] = Field(default_factory=list)
    cidr_blocks: list[CIDRBlockSpec] = Field(default_factory=list, alias="cidrBlocks")

    @model_validator(mode="after")
    def validate_references(self) -> NetworkSpec:
        vpc_names = [v.name for v in self.vpcs]
        duplicates = {n for n in vpc_names if vpc_names.count(n) > 1}
        if duplicates:
            raise ValueError(f"duplicate VPC names: {sorted(duplicates)}")

        block_names = [b.name for b in self.cidr_blocks]
        duplicates = {n for n in block_names if block_names.count(n) > 1}
        if duplicates:
            raise ValueError(f"duplicate CIDR block names: {sorted(duplicates)}")

        for block in self.cidr_blocks:
            if block.vpc is not None and block.vpc not in vpc_names:
                raise ValueError(f"cidrBlocks[{block.name}] references unknown VPC {block.vpc!r}")
        return self

    def to_tasks(self) -> list[VPCCIDRBlock]:
        """Convert declarations into desired-state descriptors.

        A block without a VPC produces a descriptor with vpc=None; the
        reconciliation pass rejects it with RequiredFieldMissing.
        """
        refs = {v.name: v.to_reference() for v in self.vpcs}
        return [
            VPCCIDRBlock(
                name=block.name,
                lifecycle=block.lifecycle,
                vpc=refs[block.vpc] if block.vpc is not None else None,
                cidr_blocks=tuple(block.cidr_blocks),
                shared=block.shared,
            )
            for block in self.cidr_blocks
        ]
