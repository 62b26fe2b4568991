"""Tests for parent VPC references and document links."""

from __future__ import annotations

import pytest

from cidr_operator.vpc import (
    ResolvedVPC,
    UnresolvedVPC,
    cloudformation_logical_id,
    terraform_sanitize,
)


class TestReferences:
    """Tests for the two reference states."""

    def test_unresolved_has_no_id(self) -> None:
        """Test that an unresolved reference is identified by name."""
        ref = UnresolvedVPC(name="main")

        assert ref.vpc_id is None
        assert ref.is_resolved is False
        assert ref.identity() == "main"

    def test_resolve(self) -> None:
        """Test resolving a reference keeps name and shared flag."""
        ref = UnresolvedVPC(name="main", shared=True).resolve("vpc-0001")

        assert isinstance(ref, ResolvedVPC)
        assert ref.vpc_id == "vpc-0001"
        assert ref.shared is True
        assert ref.identity() == "vpc-0001"

    def test_resolve_rejects_empty_id(self) -> None:
        """Test that resolving needs a real id."""
        with pytest.raises(ValueError):
            UnresolvedVPC(name="main").resolve("")

    def test_resolved_requires_id(self) -> None:
        """Test that a resolved reference cannot lack an id."""
        with pytest.raises(ValueError):
            ResolvedVPC(name="main")


class TestLinks:
    """Tests for Terraform and CloudFormation links."""

    def test_terraform_link_is_symbolic(self) -> None:
        """Test the Terraform link uses the sanitized VPC name."""
        ref = ResolvedVPC(name="main.example.com", id="vpc-0001")

        assert ref.terraform_link().to_json() == "${aws_vpc.main-example-com.id}"

    def test_cloudformation_link_is_ref(self) -> None:
        """Test the CloudFormation link is a Ref to the VPC logical id."""
        ref = UnresolvedVPC(name="main.example.com")

        assert ref.cloudformation_link().to_json() == {"Ref": "AWSEC2VPCmainexamplecom"}

    def test_shared_vpc_links_by_id(self) -> None:
        """Test that a shared VPC is linked by its literal id."""
        ref = ResolvedVPC(name="main", id="vpc-0001", shared=True)

        assert ref.terraform_link().to_json() == "vpc-0001"
        assert ref.cloudformation_link().to_json() == "vpc-0001"

    def test_shared_unresolved_vpc_links_symbolically(self) -> None:
        """Test that a shared VPC without an id falls back to a symbolic link."""
        ref = UnresolvedVPC(name="main", shared=True)

        assert ref.terraform_link().to_json() == "${aws_vpc.main.id}"


class TestNaming:
    """Tests for name sanitizers."""

    def test_terraform_sanitize(self) -> None:
        """Test that dots and slashes become dashes."""
        assert terraform_sanitize("a.b/c") == "a-b-c"

    def test_cloudformation_logical_id(self) -> None:
        """Test that logical ids drop non-alphanumerics."""
        assert (
            cloudformation_logical_id("AWS::EC2::VPCCidrBlock", "1abc")
            == "AWSEC2VPCCidrBlock1abc"
        )
