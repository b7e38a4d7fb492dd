"""
Bootstrap script composition for Spot Fleet instances.

The launch template of every fleet carries a user data script built here.
Linux instances started from the default Amazon Linux 2 image get the SSM
agent and Docker installed before any caller supplied commands run; a custom
image is expected to ship that setup already. Windows instances receive no
scripted bootstrap at all.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple, Union

logger = logging.getLogger(__name__)

SHEBANG = "#!/bin/bash"

SSM_AGENT_RPM_URL = (
    "https://s3.amazonaws.com/ec2-downloads-windows/SSMAgent/latest/"
    "linux_amd64/amazon-ssm-agent.rpm"
)

DEFAULT_AMI_BASELINE: Tuple[str, ...] = (
    f"yum install -y {SSM_AGENT_RPM_URL}",
    "yum install -y docker",
    "usermod -aG docker ec2-user",
    "usermod -aG docker ssm-user",
    "service docker start",
)


class PlatformFamily(Enum):
    """Operating system family of the fleet image."""

    LINUX = "linux"
    WINDOWS = "windows"


@dataclass(frozen=True)
class BootstrapConfig:
    """Fully resolved input for ``render``. Build it with ``build_bootstrap_config``."""

    platform_family: PlatformFamily
    use_default_ami: bool
    additional_commands: Tuple[str, ...]

    def __post_init__(self) -> None:
        # a list passed directly would stay mutable behind the frozen fields
        if not isinstance(self.additional_commands, tuple):
            object.__setattr__(self, "additional_commands", tuple(self.additional_commands))


def _resolve_platform(value: Union[PlatformFamily, str]) -> PlatformFamily:
    if isinstance(value, PlatformFamily):
        return value
    if isinstance(value, str):
        try:
            return PlatformFamily(value.strip().lower())
        except ValueError:
            pass
    allowed = ", ".join(member.value for member in PlatformFamily)
    raise ValueError(
        f"Unsupported platform family {value!r}; expected one of: {allowed}"
    )


def _resolve_commands(commands: Optional[Iterable[str]]) -> Tuple[str, ...]:
    if commands is None:
        return ()
    if isinstance(commands, (str, bytes)):
        raise TypeError(
            "additional_commands must be a sequence of strings, not a single string"
        )
    try:
        resolved = tuple(commands)
    except TypeError:
        raise TypeError(
            f"additional_commands must be a sequence of strings, got {type(commands).__name__}"
        ) from None

    for index, command in enumerate(resolved):
        if not isinstance(command, str):
            raise TypeError(
                f"additional_commands[{index}] must be a string, got {type(command).__name__}"
            )
    return resolved


def build_bootstrap_config(
    platform_family: Union[PlatformFamily, str] = PlatformFamily.LINUX,
    use_default_ami: bool = True,
    additional_commands: Optional[Iterable[str]] = None,
) -> BootstrapConfig:
    """
    Validate caller input and resolve defaults into a ``BootstrapConfig``.

    Args:
        platform_family: ``PlatformFamily`` member or its string value
        use_default_ami: False when the caller supplied a custom machine image
        additional_commands: Shell commands appended after the baseline

    Raises:
        ValueError: If the platform family is unknown
        TypeError: If the flag or the command list have the wrong type
    """
    if not isinstance(use_default_ami, bool):
        raise TypeError(
            f"use_default_ami must be a bool, got {type(use_default_ami).__name__}"
        )

    return BootstrapConfig(
        platform_family=_resolve_platform(platform_family),
        use_default_ami=use_default_ami,
        additional_commands=_resolve_commands(additional_commands),
    )


def render(config: BootstrapConfig) -> str:
    """Render the user data script for ``config``; empty for Windows."""
    if config.platform_family is PlatformFamily.WINDOWS:
        return ""

    if config.platform_family is PlatformFamily.LINUX:
        lines = [SHEBANG]
        if config.use_default_ami:
            lines.extend(DEFAULT_AMI_BASELINE)
        lines.extend(config.additional_commands)
        logger.debug("Rendered Linux bootstrap script with %d lines", len(lines))
        return "\n".join(lines)

    raise ValueError(f"No bootstrap renderer for {config.platform_family!r}")
