"""
EC2 Spot Fleet construct for the AWS CDK

Provisions a launch template, IAM roles, a security group and a Spot Fleet
request, bootstrapping Linux instances with the SSM agent and Docker.
"""

from .bootstrap import BootstrapConfig, PlatformFamily, build_bootstrap_config, render
from .spot import BlockDuration, InstanceInterruptionBehavior
from .spot_fleet_construct import SpotFleet

__version__ = "1.0.0"
__author__ = "AWS CDK Team"
__description__ = "EC2 Spot Fleet construct for the AWS CDK"

__all__ = [
    "BlockDuration",
    "BootstrapConfig",
    "InstanceInterruptionBehavior",
    "PlatformFamily",
    "SpotFleet",
    "build_bootstrap_config",
    "render",
]
