"""Weak references from dependent resources to their parent VPC.

A reference is either unresolved (the VPC is declared but its id is not
known yet, usually because it has not been created) or resolved (the VPC id
is known). Dependent resources never own the VPC; they only need its id for
API calls and a format-specific link token for generated documents.

Links are forward references: the document consumer (Terraform,
CloudFormation) resolves them when it applies the document, so they work
even when the VPC does not exist at generation time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

TERRAFORM_VPC_TYPE = "aws_vpc"
CLOUDFORMATION_VPC_TYPE = "AWS::EC2::VPC"

_TERRAFORM_UNSAFE = re.compile(r"[./]")
_CLOUDFORMATION_UNSAFE = re.compile(r"[^A-Za-z0-9]")


def terraform_sanitize(name: str) -> str:
    """Make a name usable as a Terraform resource name."""
    return _TERRAFORM_UNSAFE.sub("-", name)


def cloudformation_logical_id(resource_type: str, name: str) -> str:
    """Build a CloudFormation logical id from a resource type and name.

    Logical ids must be alphanumeric, e.g.
    ("AWS::EC2::VPC", "main.example.com") -> "AWSEC2VPCmainexamplecom".
    """
    return _CLOUDFORMATION_UNSAFE.sub("", resource_type + name)


@dataclass(frozen=True)
class TerraformLiteral:
    """A raw Terraform expression or value, emitted without quoting rules."""

    value: str

    @classmethod
    def resource_property(cls, resource_type: str, name: str, prop: str) -> TerraformLiteral:
        return cls(f"${{{resource_type}.{terraform_sanitize(name)}.{prop}}}")

    def to_json(self) -> str:
        return self.value


@dataclass(frozen=True)
class CloudformationLiteral:
    """A CloudFormation value: an intrinsic function or a plain string."""

    value: Any

    @classmethod
    def ref(cls, resource_type: str, name: str) -> CloudformationLiteral:
        return cls({"Ref": cloudformation_logical_id(resource_type, name)})

    def to_json(self) -> Any:
        return self.value


@dataclass(frozen=True)
class VPCReference:
    """Base for the two parent reference states."""

    name: str
    shared: bool = False

    @property
    def vpc_id(self) -> str | None:
        return None

    @property
    def is_resolved(self) -> bool:
        return self.vpc_id is not None

    def identity(self) -> str:
        """Value compared when diffing references."""
        return self.vpc_id or self.name

    def terraform_link(self) -> TerraformLiteral:
        # Shared VPCs are not part of the document, so link by id
        if self.shared and self.vpc_id:
            return TerraformLiteral(self.vpc_id)
        return TerraformLiteral.resource_property(TERRAFORM_VPC_TYPE, self.name, "id")

    def cloudformation_link(self) -> CloudformationLiteral:
        if self.shared and self.vpc_id:
            return CloudformationLiteral(self.vpc_id)
        return CloudformationLiteral.ref(CLOUDFORMATION_VPC_TYPE, self.name)


@dataclass(frozen=True)
class UnresolvedVPC(VPCReference):
    """A VPC known only by its lookup key (the declared name)."""

    def resolve(self, vpc_id: str) -> ResolvedVPC:
        if not vpc_id:
            raise ValueError(f"cannot resolve VPC {self.name!r} to an empty id")
        return ResolvedVPC(name=self.name, shared=self.shared, id=vpc_id)


@dataclass(frozen=True)
class ResolvedVPC(VPCReference):
    """A VPC with a concrete provider id."""

    id: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError(f"resolved VPC {self.name!r} requires an id")

    @property
    def vpc_id(self) -> str | None:
        return self.id
