"""
Unit tests for the SpotFleetStack and its context-driven configuration.
"""

import aws_cdk as cdk
import pytest
from aws_cdk import assertions

from spot_fleet.config import load_stack_config
from spot_fleet.spot import BlockDuration, InstanceInterruptionBehavior
from spot_fleet.spot_fleet_stack import SpotFleetStack


class TestSpotFleetStack:
    """Test suite for the SpotFleetStack class."""

    def setup_method(self):
        """Set up test fixtures before each test method."""
        self.app = cdk.App()
        self.stack = SpotFleetStack(
            self.app,
            "TestSpotFleetStack",
            target_capacity=3,
            instance_type="c5.xlarge",
            block_duration=BlockDuration.TWO_HOURS,
            instance_interruption_behavior=InstanceInterruptionBehavior.STOP,
            additional_user_data=["echo ready"],
            allowed_ports=[80, 443],
            expire_after_hours=2,
            environment_name="test",
        )
        self.template = assertions.Template.from_stack(self.stack)

    def test_fleet_capacity(self):
        """Target capacity is passed through to the fleet request."""
        self.template.has_resource_properties("AWS::EC2::SpotFleet", {
            "SpotFleetRequestConfigData": {
                "TargetCapacity": 3,
                "ValidFrom": assertions.Match.any_value(),
                "ValidUntil": assertions.Match.any_value(),
            },
        })

    def test_launch_template(self):
        """Instance type, spot options and user data end up on the launch template."""
        self.template.has_resource_properties("AWS::EC2::LaunchTemplate", {
            "LaunchTemplateData": {
                "InstanceType": "c5.xlarge",
                "InstanceMarketOptions": {
                    "MarketType": "spot",
                    "SpotOptions": {
                        "BlockDurationMinutes": 120,
                        "InstanceInterruptionBehavior": "stop",
                    },
                },
                "UserData": {
                    "Fn::Base64": assertions.Match.string_like_regexp(r"service docker start\necho ready$"),
                },
            },
        })

    def test_allowed_ports(self):
        """SSH plus every configured port is open to the internet."""
        ingress = self.template.find_resources("AWS::EC2::SecurityGroup")
        (security_group,) = ingress.values()
        ports = [rule["FromPort"] for rule in security_group["Properties"]["SecurityGroupIngress"]]

        assert ports == [22, 80, 443]

    def test_stack_outputs(self):
        """Test that stack creates the expected outputs."""
        self.template.has_output("SpotFleetId", {})
        self.template.has_output("LaunchTemplateId", {})
        self.template.has_output("SecurityGroupId", {})
        self.template.has_output("InstanceRoleArn", {})

    def test_tags_applied(self):
        """Common tags are applied to taggable resources."""
        self.template.has_resource_properties("AWS::EC2::VPC", {
            "Tags": assertions.Match.array_with([
                {"Key": "Environment", "Value": "test"},
            ]),
        })


class TestLoadStackConfig:
    """Tests for reading stack configuration from CDK context."""

    def test_defaults(self):
        """An empty context yields a single default fleet."""
        config = load_stack_config(cdk.App().node)

        assert config["target_capacity"] == 1
        assert config["instance_type"] == "t3.large"
        assert config["block_duration"] is BlockDuration.NONE
        assert config["instance_interruption_behavior"] is InstanceInterruptionBehavior.TERMINATE
        assert config["additional_user_data"] == []
        assert config["allowed_ports"] == []
        assert config["expire_after_hours"] is None
        assert config["terminate_instances_with_expiration"] is False
        assert config["environment_name"] == "development"

    def test_command_line_strings_are_coerced(self):
        """Values passed with -c arrive as strings and are converted."""
        app = cdk.App(context={
            "target_capacity": "4",
            "block_duration_hours": "6",
            "interruption_behavior": "HIBERNATE",
            "additional_user_data": "yum update -y; echo done",
            "allowed_ports": "80, 443",
            "expire_after_hours": "1.5",
            "terminate_instances_with_expiration": "true",
            "custom_ami_name": "my-image-*",
            "custom_ami_windows": "false",
        })
        config = load_stack_config(app.node)

        assert config["target_capacity"] == 4
        assert config["block_duration"] is BlockDuration.SIX_HOURS
        assert config["instance_interruption_behavior"] is InstanceInterruptionBehavior.HIBERNATE
        assert config["additional_user_data"] == ["yum update -y", "echo done"]
        assert config["allowed_ports"] == [80, 443]
        assert config["expire_after_hours"] == 1.5
        assert config["terminate_instances_with_expiration"] is True
        assert config["custom_ami_name"] == "my-image-*"
        assert config["custom_ami_windows"] is False

    def test_json_lists_are_accepted(self):
        """cdk.json may hold real lists."""
        app = cdk.App(context={
            "additional_user_data": ["mycommand1", "mycommand2 arg1"],
            "allowed_ports": [8080],
        })
        config = load_stack_config(app.node)

        assert config["additional_user_data"] == ["mycommand1", "mycommand2 arg1"]
        assert config["allowed_ports"] == [8080]

    @pytest.mark.parametrize("context,key", [
        ({"target_capacity": "0"}, "target_capacity"),
        ({"target_capacity": "many"}, "target_capacity"),
        ({"target_capacity": 2.7}, "target_capacity"),
        ({"block_duration_hours": 1.9}, "block_duration_hours"),
        ({"allowed_ports": [80.5]}, "allowed_ports"),
        ({"interruption_behavior": "pause"}, "interruption_behavior"),
        ({"expire_after_hours": "-2"}, "expire_after_hours"),
        ({"allowed_ports": "80,http"}, "allowed_ports"),
        ({"allowed_ports": "70000"}, "allowed_ports"),
        ({"terminate_instances_with_expiration": "maybe"}, "terminate_instances_with_expiration"),
    ])
    def test_invalid_values_name_the_key(self, context, key):
        """Invalid context values are rejected with the offending key in the message."""
        with pytest.raises(ValueError, match=key):
            load_stack_config(cdk.App(context=context).node)

    def test_whole_number_floats_are_accepted(self):
        """JSON numbers such as 2.0 are whole and convert cleanly."""
        app = cdk.App(context={"target_capacity": 2.0, "allowed_ports": [443.0]})
        config = load_stack_config(app.node)

        assert config["target_capacity"] == 2
        assert config["allowed_ports"] == [443]

    def test_block_duration_out_of_range(self):
        """Spot blocks longer than six hours do not exist."""
        with pytest.raises(ValueError, match="Block duration"):
            load_stack_config(cdk.App(context={"block_duration_hours": "7"}).node)
