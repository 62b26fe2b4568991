"""AWS EC2 Mock for Integration Testing.

This module provides an in-memory stand-in for the boto3 EC2 client that
enables reconciliation tests without AWS connectivity.

Key Features:
- In-memory VPCs with CIDR block association sets
- Tag-based DescribeVpcs filters
- Association lifecycle (associating -> associated)
- Error injection raising real botocore ClientError
- Call recording for idempotence assertions

Usage:
    from aws_mock import MockEC2Client

    ec2 = MockEC2Client()
    ec2.add_vpc("vpc-0001", "10.0.0.0/16", tags={"Name": "main"})
    cloud = AWSCloud("eu-west-1", ec2_client=ec2)
"""

from .ec2 import MockEC2Client, MockVpc

__all__ = [
    "MockEC2Client",
    "MockVpc",
]
