"""
Spot market options shared by the fleet construct and its configuration.
"""

from enum import Enum
from typing import Optional

from aws_cdk import Duration, aws_ec2 as ec2


class BlockDuration(Enum):
    """Spot block length in minutes. NONE requests a regular spot instance."""

    ONE_HOUR = 60
    TWO_HOURS = 120
    THREE_HOURS = 180
    FOUR_HOURS = 240
    FIVE_HOURS = 300
    SIX_HOURS = 360
    NONE = 0

    @classmethod
    def from_hours(cls, hours: int) -> "BlockDuration":
        """Map a whole number of hours (0-6) onto a member."""
        if isinstance(hours, bool) or not isinstance(hours, int) or not 0 <= hours <= 6:
            raise ValueError(f"Block duration must be a whole number of hours between 0 and 6, got {hours!r}")
        return cls(hours * 60)

    def to_duration(self) -> Optional[Duration]:
        if self is BlockDuration.NONE:
            return None
        return Duration.minutes(self.value)


class InstanceInterruptionBehavior(Enum):
    """What EC2 does with a spot instance when capacity is reclaimed."""

    HIBERNATE = "hibernate"
    STOP = "stop"
    TERMINATE = "terminate"

    def to_cdk(self) -> ec2.SpotInstanceInterruption:
        return {
            InstanceInterruptionBehavior.HIBERNATE: ec2.SpotInstanceInterruption.HIBERNATE,
            InstanceInterruptionBehavior.STOP: ec2.SpotInstanceInterruption.STOP,
            InstanceInterruptionBehavior.TERMINATE: ec2.SpotInstanceInterruption.TERMINATE,
        }[self]
