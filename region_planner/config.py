"""
region_planner.config

Dataclass-backed ROS 2 parameter loading.

`load(node, cls, prefix="")` builds a config dataclass from the parameters of `node`:
- Each field name is a parameter key. Nested dataclass fields become dotted keys (`planner_params.fallback_seed`).
- Fields with a default (or default_factory) are optional; the default is declared and used when the key is absent.
- Fields without a default are required; `load()` raises if they are not set.

For `RegionPlannerConfig` a parameter file looks like:
```yaml
region_planner:
  ros__parameters:
    grid_frame_id: map
    planner_params:
      fallback_seed: middle
      search_params:
        cost_weight: 2.0
```

Validation stays in the dataclasses themselves (`__post_init__`), so a bad value fails at node startup.
"""

from collections.abc import Callable
from dataclasses import MISSING, fields, is_dataclass
from typing import Any, TypeVar, cast, get_type_hints

from rcl_interfaces.msg import ParameterDescriptor
from rclpy.node import Node
from rclpy.parameter import Parameter

T = TypeVar("T")

_TYPE_MAP: dict[type, Parameter.Type] = {
    bool: Parameter.Type.BOOL,
    int: Parameter.Type.INTEGER,
    float: Parameter.Type.DOUBLE,
    str: Parameter.Type.STRING,
}


def load(node: Node, cls: type[T], prefix: str = "") -> T:
    """
    Load ROS 2 parameters from `node` into a dataclass instance of type `cls`.

    Args:
        node: ROS 2 node providing parameters.
        cls: Dataclass type to construct.
        prefix: Prefix prepended to every key, used for nested dataclasses (e.g. "planner_params.").

    Returns:
        An instance of `cls` populated from ROS 2 parameters.

    Raises:
        TypeError: If `cls` is not a dataclass, or a required field has an unsupported type.
        RuntimeError: If a required parameter (field without a default) is missing or unset.
    """
    if not is_dataclass(cls):
        raise TypeError(f"{cls!r} is not a dataclass type")

    type_hints = get_type_hints(cls)
    kwargs: dict[str, Any] = {}

    for f in fields(cls):
        key = f"{prefix}{f.name}"
        field_type = type_hints.get(f.name, f.type)

        if isinstance(field_type, type) and is_dataclass(field_type):
            kwargs[f.name] = load(node, field_type, prefix=f"{key}.")
            continue

        if f.default is MISSING and f.default_factory is MISSING:
            param_type = _TYPE_MAP.get(field_type)
            if param_type is None:
                raise TypeError(
                    f"Parameter '{key}' has unsupported type {field_type!r}. "
                    f"Supported types: {', '.join(t.__name__ for t in _TYPE_MAP)}"
                )
            node.declare_parameter(key, descriptor=ParameterDescriptor(type=param_type.value))
            value = node.get_parameter(key).value
            if value is None:
                raise RuntimeError(f"Required parameter '{key}' not set for node '{node.get_name()}'")
            kwargs[f.name] = value
        else:
            default_value = f.default if f.default is not MISSING else cast(Callable[[], Any], f.default_factory)()
            node.declare_parameter(key, default_value)
            kwargs[f.name] = node.get_parameter(key).value

    return cls(**kwargs)
