from dataclasses import dataclass, field

import pytest

pytest.importorskip("rcl_interfaces")
pytest.importorskip("rclpy")

from region_planner.config import load  # noqa: E402
from region_planner.region_planner_config import RegionPlannerConfig  # noqa: E402


class Param:
    def __init__(self, value):
        self.value = value


class MockNode:
    def __init__(self, initial: dict[str, object] | None = None):
        self._store: dict[str, object] = dict(initial or {})
        self.declared: list[tuple[str, object | None]] = []

    def get_name(self) -> str:
        return "MockNode"

    def declare_parameter(self, key: str, value=None, descriptor=None):
        self.declared.append((key, value))
        if key not in self._store:
            self._store[key] = value

    def get_parameter(self, key: str) -> Param:
        return Param(self._store.get(key, None))


def test_load_required_param_success():
    @dataclass
    class Config:
        frame: str

    node = MockNode(initial={"frame": "map"})
    config = load(node, Config)

    assert ("frame", None) in node.declared
    assert config.frame == "map"


def test_load_required_param_missing_raises():
    @dataclass
    class Config:
        frame: str

    with pytest.raises(RuntimeError, match=r"Required parameter 'frame' not set"):
        load(MockNode(), Config)


def test_load_required_param_unsupported_type_raises():
    @dataclass
    class Config:
        frames: list[str]

    with pytest.raises(TypeError, match=r"unsupported type"):
        load(MockNode(), Config)


def test_load_rejects_non_dataclass():
    with pytest.raises(TypeError):
        load(MockNode(), dict)


def test_load_defaults_and_overrides():
    @dataclass
    class Config:
        period: float = 1.0
        frame: str = "map"
        ids: list[int] = field(default_factory=lambda: [1, 2])

    config = load(MockNode(initial={"frame": "odom"}), Config)

    assert config.period == 1.0
    assert config.frame == "odom"
    assert config.ids == [1, 2]


def test_load_region_planner_config():
    node = MockNode(
        initial={
            "robot_frame_id": "base_footprint",
            "planner_params.fallback_seed": "middle",
            "planner_params.search_params.cost_weight": 1.5,
        }
    )

    config = load(node, RegionPlannerConfig)

    assert config.grid_frame_id == "map"
    assert config.robot_frame_id == "base_footprint"
    assert config.planner_params.fallback_seed == "middle"
    assert config.planner_params.heading_lookahead_cells == 5
    assert config.planner_params.search_params.cost_weight == 1.5
    assert ("planner_params.search_params.cost_weight", 3.0) in node.declared


def test_load_runs_validation():
    node = MockNode(initial={"planner_params.fallback_seed": "random"})

    with pytest.raises(ValueError, match=r"fallback_seed"):
        load(node, RegionPlannerConfig)
