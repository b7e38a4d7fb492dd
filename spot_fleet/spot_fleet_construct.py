"""
SpotFleet construct.

Composes a launch template, instance and fleet IAM roles, a security group
and an ``AWS::EC2::SpotFleet`` request. The instance bootstrap script comes
from ``spot_fleet.bootstrap``; every other property is passed through to the
CDK resources as given.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from aws_cdk import (
    Duration,
    Stack,
    aws_ec2 as ec2,
    aws_iam as iam,
)
from constructs import Construct

from .bootstrap import PlatformFamily, build_bootstrap_config, render
from .spot import BlockDuration, InstanceInterruptionBehavior

logger = logging.getLogger(__name__)

SSM_MANAGED_INSTANCE_CORE_ARN = "arn:aws:iam::aws:policy/AmazonSSMManagedInstanceCore"
SPOT_FLEET_TAGGING_POLICY = "service-role/AmazonEC2SpotFleetTaggingRole"
FLEET_TYPES = ("maintain", "request")

# CloudFormation expects YYYY-MM-DDTHH:MM:SSZ for ValidFrom/ValidUntil
VALIDITY_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class SpotFleet(Construct):
    """
    EC2 Spot Fleet backed by a launch template.

    Without arguments this provisions a single ``t3.large`` spot instance on
    the latest Amazon Linux 2 image inside a new VPC, reachable over SSH and
    manageable through Systems Manager.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc: Optional[ec2.IVpc] = None,
        vpc_subnet: Optional[ec2.SubnetSelection] = None,
        target_capacity: int = 1,
        default_instance_type: Optional[ec2.InstanceType] = None,
        block_duration: BlockDuration = BlockDuration.NONE,
        instance_interruption_behavior: InstanceInterruptionBehavior = InstanceInterruptionBehavior.TERMINATE,
        custom_ami_id: Optional[ec2.IMachineImage] = None,
        key_name: Optional[str] = None,
        eip_allocation_id: Optional[str] = None,
        security_group: Optional[ec2.ISecurityGroup] = None,
        instance_role: Optional[iam.IRole] = None,
        additional_user_data: Optional[Sequence[str]] = None,
        terminate_instances_with_expiration: bool = False,
        valid_from: Optional[str] = None,
        valid_until: Optional[str] = None,
        fleet_type: str = "maintain",
    ) -> None:
        super().__init__(scope, construct_id)

        if isinstance(target_capacity, bool) or not isinstance(target_capacity, int) or target_capacity < 1:
            raise ValueError(f"target_capacity must be a positive integer, got {target_capacity!r}")
        if fleet_type not in FLEET_TYPES:
            raise ValueError(f"fleet_type must be one of {', '.join(FLEET_TYPES)}, got {fleet_type!r}")

        self.target_capacity = target_capacity
        self.instance_type = default_instance_type or ec2.InstanceType("t3.large")
        self.block_duration = block_duration
        self.instance_interruption_behavior = instance_interruption_behavior
        self.eip_allocation_id = eip_allocation_id
        self.valid_from = valid_from
        self.valid_until = valid_until

        self.vpc = vpc or ec2.Vpc(self, "Vpc", max_azs=3, nat_gateways=1)
        self.vpc_subnet = vpc_subnet or ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC)

        self.default_security_group = security_group or self._create_security_group()
        self.instance_role = instance_role or self._create_instance_role()
        self.fleet_role = self._create_fleet_role()

        machine_image = custom_ami_id or ec2.MachineImage.latest_amazon_linux2()
        self.user_data_script = self._compose_user_data(
            machine_image,
            use_default_ami=custom_ami_id is None,
            additional_user_data=additional_user_data,
        )

        self.launch_template = self._create_launch_template(machine_image, key_name)

        self.spot_fleet = self._create_spot_fleet(
            fleet_type=fleet_type,
            terminate_instances_with_expiration=terminate_instances_with_expiration,
        )
        self.spot_fleet_id = self.spot_fleet.ref

    def _create_security_group(self) -> ec2.SecurityGroup:
        """Create the default security group that allows SSH from anywhere"""
        sg = ec2.SecurityGroup(
            self,
            "SpotFleetSecurityGroup",
            vpc=self.vpc,
            allow_all_outbound=True,
        )
        sg.connections.allow_from_any_ipv4(ec2.Port.tcp(22))
        return sg

    def _create_instance_role(self) -> iam.Role:
        """Create the role assumed by fleet instances"""
        return iam.Role(
            self,
            "InstanceRole",
            assumed_by=iam.ServicePrincipal("ec2.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_managed_policy_arn(
                    self, "SsmManagedInstanceCore", SSM_MANAGED_INSTANCE_CORE_ARN
                ),
            ],
        )

    def _create_fleet_role(self) -> iam.Role:
        """Create the role the Spot Fleet service uses to launch and tag instances"""
        return iam.Role(
            self,
            "FleetRole",
            assumed_by=iam.ServicePrincipal("spotfleet.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(SPOT_FLEET_TAGGING_POLICY),
            ],
        )

    def _compose_user_data(
        self,
        machine_image: ec2.IMachineImage,
        use_default_ami: bool,
        additional_user_data: Optional[Sequence[str]],
    ) -> str:
        platform = PlatformFamily.LINUX
        if not use_default_ami and machine_image.get_image(self).os_type == ec2.OperatingSystemType.WINDOWS:
            platform = PlatformFamily.WINDOWS

        commands: List[str] = list(additional_user_data or [])
        if platform is PlatformFamily.WINDOWS:
            if commands:
                logger.warning(
                    "%s: Windows images get no bootstrap script, dropping %d user data command(s)",
                    self.node.path,
                    len(commands),
                )
            if self.eip_allocation_id:
                logger.warning(
                    "%s: Elastic IP %s is not associated at boot on Windows images",
                    self.node.path,
                    self.eip_allocation_id,
                )
        elif self.eip_allocation_id:
            commands.append(self._eip_association_command())

        config = build_bootstrap_config(
            platform_family=platform,
            use_default_ami=use_default_ami,
            additional_commands=commands,
        )
        return render(config)

    def _eip_association_command(self) -> str:
        """Grant the instance role address association and return the boot command doing it"""
        self.instance_role.add_to_principal_policy(
            iam.PolicyStatement(
                actions=["ec2:AssociateAddress"],
                resources=["*"],
            )
        )
        region = Stack.of(self).region
        return (
            f"aws ec2 associate-address --region {region} "
            "--instance-id $(curl -s http://169.254.169.254/latest/meta-data/instance-id) "
            f"--allocation-id {self.eip_allocation_id} --allow-reassociation"
        )

    def _create_launch_template(
        self, machine_image: ec2.IMachineImage, key_name: Optional[str]
    ) -> ec2.LaunchTemplate:
        key_pair = None
        if key_name:
            key_pair = ec2.KeyPair.from_key_pair_name(self, "KeyPair", key_name)

        return ec2.LaunchTemplate(
            self,
            "LaunchTemplate",
            machine_image=machine_image,
            instance_type=self.instance_type,
            role=self.instance_role,
            security_group=self.default_security_group,
            key_pair=key_pair,
            user_data=ec2.UserData.custom(self.user_data_script),
            spot_options=ec2.LaunchTemplateSpotOptions(
                block_duration=self.block_duration.to_duration(),
                interruption_behavior=self.instance_interruption_behavior.to_cdk(),
            ),
        )

    def _create_spot_fleet(
        self, fleet_type: str, terminate_instances_with_expiration: bool
    ) -> ec2.CfnSpotFleet:
        subnets = self.vpc.select_subnets(
            subnet_type=self.vpc_subnet.subnet_type,
            subnet_group_name=self.vpc_subnet.subnet_group_name,
            availability_zones=self.vpc_subnet.availability_zones,
            one_per_az=self.vpc_subnet.one_per_az,
            subnets=self.vpc_subnet.subnets,
            subnet_filters=self.vpc_subnet.subnet_filters,
        )

        overrides = [
            ec2.CfnSpotFleet.LaunchTemplateOverridesProperty(
                instance_type=self.instance_type.to_string(),
                subnet_id=subnet_id,
            )
            for subnet_id in subnets.subnet_ids
        ]

        return ec2.CfnSpotFleet(
            self,
            "SpotFleetRequest",
            spot_fleet_request_config_data=ec2.CfnSpotFleet.SpotFleetRequestConfigDataProperty(
                iam_fleet_role=self.fleet_role.role_arn,
                target_capacity=self.target_capacity,
                type=fleet_type,
                terminate_instances_with_expiration=terminate_instances_with_expiration,
                valid_from=self.valid_from,
                valid_until=self.valid_until,
                launch_template_configs=[
                    ec2.CfnSpotFleet.LaunchTemplateConfigProperty(
                        launch_template_specification=ec2.CfnSpotFleet.FleetLaunchTemplateSpecificationProperty(
                            launch_template_id=self.launch_template.launch_template_id,
                            version=self.launch_template.latest_version_number,
                        ),
                        overrides=overrides,
                    )
                ],
            ),
        )

    def expire_after(self, duration: Duration) -> None:
        """
        Limit the fleet request to a window starting now.

        Args:
            duration: How long the request stays valid

        Raises:
            ValueError: If the duration is not positive
        """
        seconds = duration.to_seconds()
        if seconds <= 0:
            raise ValueError("Fleet expiration must be a positive duration")

        now = datetime.now(timezone.utc)
        self.valid_from = now.strftime(VALIDITY_TIMESTAMP_FORMAT)
        self.valid_until = (now + timedelta(seconds=seconds)).strftime(VALIDITY_TIMESTAMP_FORMAT)

        self.spot_fleet.add_property_override("SpotFleetRequestConfigData.ValidFrom", self.valid_from)
        self.spot_fleet.add_property_override("SpotFleetRequestConfigData.ValidUntil", self.valid_until)
        logger.info("%s: fleet request valid until %s", self.node.path, self.valid_until)
