#!/usr/bin/env python3
"""
CDK Python application for an EC2 Spot Fleet

This application deploys a Spot Fleet with:
- Launch template with spot market options and a bootstrap script
- IAM role for instances with Systems Manager access
- IAM role for the Spot Fleet service
- Security group allowing SSH plus any configured ports
- Spot Fleet request pinned to the selected subnets
"""

import logging
import os

from aws_cdk import App, Aspects, Environment
from cdk_nag import AwsSolutionsChecks, NagSuppressions

from spot_fleet.config import load_stack_config
from spot_fleet.spot_fleet_stack import SpotFleetStack

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point for the CDK application."""
    app = App()

    account = app.node.try_get_context("account") or os.environ.get("CDK_DEFAULT_ACCOUNT")
    region = app.node.try_get_context("region") or os.environ.get("CDK_DEFAULT_REGION", "us-east-1")

    stack_config = load_stack_config(app.node)
    logger.info(
        "Synthesizing spot fleet of %d x %s in %s",
        stack_config["target_capacity"],
        stack_config["instance_type"],
        region,
    )

    stack = SpotFleetStack(
        app,
        "SpotFleetStack",
        env=Environment(account=account, region=region),
        description="EC2 Spot Fleet with launch template, IAM roles and security group",
        **stack_config,
    )

    # Apply CDK Nag for security best practices
    Aspects.of(app).add(AwsSolutionsChecks(verbose=True))
    NagSuppressions.add_stack_suppressions(
        stack,
        [
            {
                "id": "AwsSolutions-IAM4",
                "reason": "AWS managed policies cover SSM access for instances and tagging for the Spot Fleet service role",
            },
            {
                "id": "AwsSolutions-IAM5",
                "reason": "Elastic IP association cannot be scoped to an instance that does not exist yet",
            },
            {
                "id": "AwsSolutions-EC23",
                "reason": "SSH and the configured service ports are intentionally reachable from the internet",
            },
            {
                "id": "AwsSolutions-VPC7",
                "reason": "VPC Flow Logs not required for a spot compute fleet",
            },
        ],
    )

    app.synth()


if __name__ == "__main__":
    main()
