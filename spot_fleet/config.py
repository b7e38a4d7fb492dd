"""
Stack configuration read from CDK context.

Values come from ``cdk.json``, ``cdk.context.json`` or ``-c key=value`` on the
command line. Command line values always arrive as strings, so every key is
coerced here and rejected with a message naming the key when it does not
make sense.
"""

from typing import Any, Dict, List, Optional

from constructs import Node

from .spot import BlockDuration, InstanceInterruptionBehavior

DEFAULT_INSTANCE_TYPE = "t3.large"
DEFAULT_ENVIRONMENT = "development"


def _as_int(key: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"Context value '{key}' must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Context value '{key}' must be an integer, got {value!r}") from None
    if number < minimum:
        raise ValueError(f"Context value '{key}' must be at least {minimum}, got {number}")
    return number


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"Context value '{key}' must be true or false, got {value!r}")


def _as_list(key: str, value: Any, separator: str) -> List[Any]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(separator) if item.strip()]
    if isinstance(value, list) and all(isinstance(item, (str, int, float)) for item in value):
        return list(value)
    raise ValueError(f"Context value '{key}' must be a list or a '{separator}'-separated string")


def load_stack_config(node: Node) -> Dict[str, Any]:
    """
    Build ``SpotFleetStack`` keyword arguments from CDK context.

    Args:
        node: Construct node to read context from, usually ``app.node``

    Returns:
        Dictionary of validated stack arguments

    Raises:
        ValueError: If any context value is invalid
    """
    ctx = node.try_get_context

    block_duration = BlockDuration.NONE
    if ctx("block_duration_hours") is not None:
        hours = _as_int("block_duration_hours", ctx("block_duration_hours"), 0)
        block_duration = BlockDuration.from_hours(hours)

    behavior = InstanceInterruptionBehavior.TERMINATE
    if ctx("interruption_behavior") is not None:
        try:
            behavior = InstanceInterruptionBehavior(str(ctx("interruption_behavior")).lower())
        except ValueError:
            allowed = ", ".join(member.value for member in InstanceInterruptionBehavior)
            raise ValueError(
                f"Context value 'interruption_behavior' must be one of: {allowed}"
            ) from None

    expire_after_hours: Optional[float] = None
    if ctx("expire_after_hours") is not None:
        try:
            expire_after_hours = float(ctx("expire_after_hours"))
        except (TypeError, ValueError):
            raise ValueError("Context value 'expire_after_hours' must be a number") from None
        if expire_after_hours <= 0:
            raise ValueError("Context value 'expire_after_hours' must be positive")

    allowed_ports: List[int] = []
    if ctx("allowed_ports") is not None:
        allowed_ports = [
            _as_int("allowed_ports", port, 1)
            for port in _as_list("allowed_ports", ctx("allowed_ports"), ",")
        ]
        for port in allowed_ports:
            if port > 65535:
                raise ValueError(f"Context value 'allowed_ports' contains invalid port {port}")

    additional_user_data: List[str] = []
    if ctx("additional_user_data") is not None:
        additional_user_data = [
            str(command) for command in _as_list("additional_user_data", ctx("additional_user_data"), ";")
        ]

    terminate_with_expiration = False
    if ctx("terminate_instances_with_expiration") is not None:
        terminate_with_expiration = _as_bool(
            "terminate_instances_with_expiration", ctx("terminate_instances_with_expiration")
        )

    custom_ami_windows = False
    if ctx("custom_ami_windows") is not None:
        custom_ami_windows = _as_bool("custom_ami_windows", ctx("custom_ami_windows"))

    target_capacity = 1
    if ctx("target_capacity") is not None:
        target_capacity = _as_int("target_capacity", ctx("target_capacity"), 1)

    return {
        "target_capacity": target_capacity,
        "instance_type": ctx("instance_type") or DEFAULT_INSTANCE_TYPE,
        "block_duration": block_duration,
        "instance_interruption_behavior": behavior,
        "custom_ami_name": ctx("custom_ami_name"),
        "custom_ami_windows": custom_ami_windows,
        "key_name": ctx("key_name"),
        "eip_allocation_id": ctx("eip_allocation_id"),
        "additional_user_data": additional_user_data,
        "allowed_ports": allowed_ports,
        "expire_after_hours": expire_after_hours,
        "terminate_instances_with_expiration": terminate_with_expiration,
        "environment_name": ctx("environment") or DEFAULT_ENVIRONMENT,
    }
