"""Tests for the operator entry point."""

import json
import logging
from pathlib import Path

import pytest
from aws_mock import MockEC2Client

from cidr_operator.aws_target import AWSAPITarget
from cidr_operator.cloud import AWSCloud
from cidr_operator.cloudformation import CLOUDFORMATION_FILENAME, CloudformationTarget
from cidr_operator.config import Config, DeploymentTarget
from cidr_operator.main import JsonFormatter, build_context, run_operator

SPEC = """\
vpcs:
  - name: main
    id: vpc-0001
cidrBlocks:
  - name: main-secondary
    vpc: main
    cidrBlocks: ["10.1.0.0/16"]
"""


@pytest.fixture
def spec_file(tmp_path: Path) -> Path:
    path = tmp_path / "network.yaml"
    path.write_text(SPEC)
    return path


class TestJsonFormatter:
    """Tests for JSON log formatting."""

    def test_includes_extra_fields(self) -> None:
        """Test that extra fields are emitted and record internals are not."""
        record = logging.LogRecord(
            name="cidr_operator.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Pass complete",
            args=(),
            exc_info=None,
        )
        record.resource = "main-secondary"

        data = json.loads(JsonFormatter().format(record))

        assert data["message"] == "Pass complete"
        assert data["level"] == "INFO"
        assert data["logger"] == "cidr_operator.test"
        assert data["resource"] == "main-secondary"
        assert "lineno" not in data


class TestBuildContext:
    """Tests for target selection."""

    def test_direct(self, spec_file: Path) -> None:
        """Test that the direct target gets the given cloud client."""
        cloud = AWSCloud("eu-west-1", ec2_client=MockEC2Client())
        config = Config(region="eu-west-1", spec_file=spec_file)

        context = build_context(config, cloud)

        assert isinstance(context.target, AWSAPITarget)
        assert context.check_existing is True

    def test_cloudformation_without_discovery(self, spec_file: Path, tmp_path: Path) -> None:
        """Test that a document target without discovery has no cloud client."""
        config = Config(
            target=DeploymentTarget.CLOUDFORMATION,
            spec_file=spec_file,
            output_dir=tmp_path,
        )

        context = build_context(config)

        assert isinstance(context.target, CloudformationTarget)
        assert context.cloud is None
        assert context.check_existing is False


class TestRunOperator:
    """Tests for run_operator."""

    @pytest.mark.asyncio
    async def test_document_target_single_pass(self, spec_file: Path, tmp_path: Path) -> None:
        """Test that a CloudFormation run writes the template and exits 0."""
        out_dir = tmp_path / "out"
        out_dir.mkdir()
        config = Config(
            target=DeploymentTarget.CLOUDFORMATION,
            spec_file=spec_file,
            output_dir=out_dir,
        )

        exit_code = await run_operator(config)

        assert exit_code == 0
        template = json.loads((out_dir / CLOUDFORMATION_FILENAME).read_text())
        assert template["Resources"]["AWSEC2VPCCidrBlockmainsecondary"] == {
            "Type": "AWS::EC2::VPCCidrBlock",
            "Properties": {"VpcId": {"Ref": "AWSEC2VPCmain"}, "CidrBlock": "10.1.0.0/16"},
        }

    @pytest.mark.asyncio
    async def test_direct_run_once(self, spec_file: Path) -> None:
        """Test a single live-apply pass against the mock."""
        ec2 = MockEC2Client()
        ec2.add_vpc("vpc-0001", "10.0.0.0/16")
        cloud = AWSCloud("eu-west-1", ec2_client=ec2)
        config = Config(region="eu-west-1", spec_file=spec_file, run_once=True)

        exit_code = await run_operator(config, cloud)

        assert exit_code == 0
        assert ec2.associate_calls == [{"VpcId": "vpc-0001", "CidrBlock": "10.1.0.0/16"}]

    @pytest.mark.asyncio
    async def test_failed_pass_exit_code(self, spec_file: Path) -> None:
        """Test that a failed pass exits 1."""
        ec2 = MockEC2Client()
        ec2.add_vpc("vpc-0001", "10.0.0.0/16")
        ec2.set_failure("AssociateVpcCidrBlock", "CidrConflict")
        cloud = AWSCloud("eu-west-1", ec2_client=ec2)
        config = Config(region="eu-west-1", spec_file=spec_file, run_once=True)

        assert await run_operator(config, cloud) == 1

    @pytest.mark.asyncio
    async def test_invalid_spec_exit_code(self, tmp_path: Path) -> None:
        """Test that an invalid spec exits 1."""
        spec_file = tmp_path / "network.yaml"
        spec_file.write_text("cidrBlocks: [{name: b, vpc: missing}]\n")
        config = Config(
            target=DeploymentTarget.TERRAFORM,
            spec_file=spec_file,
            output_dir=tmp_path,
        )

        assert await run_operator(config) == 1
