"""
CDK Stack hosting a single SpotFleet

This stack creates:
- SpotFleet (launch template, IAM roles, security group, fleet request)
- Extra security group ingress for the configured ports
- CloudFormation outputs for the fleet and its supporting resources
"""

from typing import List, Optional, Sequence

from aws_cdk import (
    CfnOutput,
    Duration,
    Stack,
    Tags,
    aws_ec2 as ec2,
)
from constructs import Construct

from .spot import BlockDuration, InstanceInterruptionBehavior
from .spot_fleet_construct import SpotFleet


class SpotFleetStack(Stack):
    """CDK Stack deploying one EC2 Spot Fleet."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        target_capacity: int = 1,
        instance_type: str = "t3.large",
        block_duration: BlockDuration = BlockDuration.NONE,
        instance_interruption_behavior: InstanceInterruptionBehavior = InstanceInterruptionBehavior.TERMINATE,
        custom_ami_name: Optional[str] = None,
        custom_ami_windows: bool = False,
        key_name: Optional[str] = None,
        eip_allocation_id: Optional[str] = None,
        additional_user_data: Optional[Sequence[str]] = None,
        allowed_ports: Optional[List[int]] = None,
        expire_after_hours: Optional[float] = None,
        terminate_instances_with_expiration: bool = False,
        environment_name: str = "development",
        **kwargs,
    ) -> None:
        """
        Initialize the Spot Fleet stack.

        Args:
            target_capacity: Number of spot instances to keep running
            instance_type: EC2 instance type, e.g. ``t3.large``
            block_duration: Spot block length
            instance_interruption_behavior: Action on spot interruption
            custom_ami_name: AMI name to look up instead of Amazon Linux 2
            custom_ami_windows: Whether the looked up AMI is a Windows image
            key_name: Existing EC2 key pair name
            eip_allocation_id: Elastic IP allocation associated at boot
            additional_user_data: Shell commands appended to the bootstrap script
            allowed_ports: TCP ports opened to the internet besides SSH
            expire_after_hours: Fleet request validity window, starting now
            terminate_instances_with_expiration: Terminate instances when the request expires
            environment_name: Value of the Environment tag
        """
        super().__init__(scope, construct_id, **kwargs)

        custom_ami = None
        if custom_ami_name:
            custom_ami = ec2.MachineImage.lookup(name=custom_ami_name, windows=custom_ami_windows)

        self.fleet = SpotFleet(
            self,
            "SpotFleet",
            target_capacity=target_capacity,
            default_instance_type=ec2.InstanceType(instance_type),
            block_duration=block_duration,
            instance_interruption_behavior=instance_interruption_behavior,
            custom_ami_id=custom_ami,
            key_name=key_name,
            eip_allocation_id=eip_allocation_id,
            additional_user_data=additional_user_data,
            terminate_instances_with_expiration=terminate_instances_with_expiration,
        )

        for port in allowed_ports or []:
            self.fleet.default_security_group.connections.allow_from_any_ipv4(ec2.Port.tcp(port))

        if expire_after_hours:
            self.fleet.expire_after(Duration.minutes(round(expire_after_hours * 60)))

        self._create_outputs()

        Tags.of(self).add("Project", "SpotFleet")
        Tags.of(self).add("Environment", environment_name)
        Tags.of(self).add("ManagedBy", "CDK")

    def _create_outputs(self) -> None:
        """Create CloudFormation outputs"""
        CfnOutput(
            self,
            "SpotFleetId",
            value=self.fleet.spot_fleet_id,
            description="ID of the Spot Fleet request",
        )

        CfnOutput(
            self,
            "LaunchTemplateId",
            value=self.fleet.launch_template.launch_template_id,
            description="ID of the fleet launch template",
        )

        CfnOutput(
            self,
            "SecurityGroupId",
            value=self.fleet.default_security_group.security_group_id,
            description="ID of the fleet security group",
        )

        CfnOutput(
            self,
            "InstanceRoleArn",
            value=self.fleet.instance_role.role_arn,
            description="ARN of the role assumed by fleet instances",
        )
