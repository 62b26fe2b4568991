"""Tests for the Pydantic models."""

import pytest
from pydantic import ValidationError

from cidr_operator.dispatcher import Lifecycle
from cidr_operator.models import CIDRBlockSpec, NetworkSpec, VPCSpec
from cidr_operator.vpc import ResolvedVPC, UnresolvedVPC


class TestVPCSpec:
    """Tests for VPCSpec model."""

    def test_with_id_resolves(self) -> None:
        """Test that a VPC with an id becomes a resolved reference."""
        spec = VPCSpec.model_validate({"name": "main", "id": "vpc-0a1b2c3d", "shared": True})

        ref = spec.to_reference()

        assert isinstance(ref, ResolvedVPC)
        assert ref.vpc_id == "vpc-0a1b2c3d"
        assert ref.shared is True

    def test_without_id_is_unresolved(self) -> None:
        """Test that a VPC without an id stays unresolved."""
        ref = VPCSpec.model_validate({"name": "main"}).to_reference()

        assert isinstance(ref, UnresolvedVPC)

    def test_invalid_id(self) -> None:
        """Test that a non-VPC id is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            VPCSpec.model_validate({"name": "main", "id": "subnet-123"})

        assert "vpc-" in str(exc_info.value)


class TestCIDRBlockSpec:
    """Tests for CIDRBlockSpec model."""

    def test_valid_spec(self) -> None:
        """Test parsing a valid CIDR block spec."""
        data = {
            "name": "main-secondary",
            "vpc": "main",
            "cidrBlocks": ["10.1.0.0/16"],
            "lifecycle": "ExistsAndWarnIfChanges",
        }
        spec = CIDRBlockSpec.model_validate(data)

        assert spec.cidr_blocks == ["10.1.0.0/16"]
        assert spec.lifecycle == Lifecycle.EXISTS_AND_WARN_IF_CHANGES
        assert spec.shared is None

    def test_host_bits_rejected(self) -> None:
        """Test that a CIDR with host bits set is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            CIDRBlockSpec.model_validate({"name": "b", "cidrBlocks": ["10.1.0.1/16"]})

        assert "invalid CIDR block" in str(exc_info.value)

    def test_ipv6_rejected(self) -> None:
        """Test that IPv6 blocks are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            CIDRBlockSpec.model_validate({"name": "b", "cidrBlocks": ["2001:db8::/56"]})

        assert "IPv4" in str(exc_info.value)

    def test_unknown_lifecycle_rejected(self) -> None:
        """Test that lifecycle values are checked."""
        with pytest.raises(ValidationError):
            CIDRBlockSpec.model_validate({"name": "b", "lifecycle": "Forever"})


class TestNetworkSpec:
    """Tests for NetworkSpec model."""

    def test_to_tasks(self) -> None:
        """Test conversion to desired-state descriptors."""
        spec = NetworkSpec.model_validate(
            {
                "vpcs": [{"name": "main", "id": "vpc-0001"}],
                "cidrBlocks": [
                    {"name": "main-secondary", "vpc": "main", "cidrBlocks": ["10.1.0.0/16"]},
                ],
            }
        )

        [task] = spec.to_tasks()

        assert task.name == "main-secondary"
        assert task.vpc == ResolvedVPC(name="main", id="vpc-0001")
        assert task.cidr_blocks == ("10.1.0.0/16",)
        assert task.lifecycle is None

    def test_block_without_vpc_keeps_none(self) -> None:
        """Test that a missing VPC is left for the pass to reject."""
        spec = NetworkSpec.model_validate({"cidrBlocks": [{"name": "orphan"}]})

        [task] = spec.to_tasks()

        assert task.vpc is None
        assert task.cidr_blocks == ()

    def test_unknown_vpc_reference(self) -> None:
        """Test that a block must reference a declared VPC."""
        with pytest.raises(ValidationError) as exc_info:
            NetworkSpec.model_validate({"cidrBlocks": [{"name": "b", "vpc": "missing"}]})

        assert "unknown VPC" in str(exc_info.value)

    def test_duplicate_block_names(self) -> None:
        """Test that block names must be unique."""
        with pytest.raises(ValidationError) as exc_info:
            NetworkSpec.model_validate(
                {"cidrBlocks": [{"name": "b"}, {"name": "b"}]}
            )

        assert "duplicate CIDR block names" in str(exc_info.value)

    def test_duplicate_vpc_names(self) -> None:
        """Test that VPC names must be unique."""
        with pytest.raises(ValidationError):
            NetworkSpec.model_validate({"vpcs": [{"name": "main"}, {"name": "main"}]})

    def test_empty_document(self) -> None:
        """Test that an empty spec yields no tasks."""
        assert NetworkSpec.model_validate({}).to_tasks() == []

    def test_multiple_cidr_blocks_rejected(self) -> None:
        """Test that a resource declares at most one CIDR block."""
        data = {
            "vpcs": [{"name": "main", "id": "vpc-0001"}],
            "cidrBlocks": [
                {"name": "b", "vpc": "main", "cidrBlocks": ["10.1.0.0/16", "10.2.0.0/16"]},
            ],
        }
        with pytest.raises(ValidationError) as exc_info:
            NetworkSpec.model_validate(data)

        assert "at most one CIDR block" in str(exc_info.value)
