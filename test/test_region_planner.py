import math

import pytest

for module in ("rclpy", "tf2_ros", "geometry_msgs", "nav_msgs", "std_msgs"):
    pytest.importorskip(module)

import numpy as np  # noqa: E402
import tf2_ros  # noqa: E402
from geometry_msgs.msg import TransformStamped  # noqa: E402
from region_planner.cost_grid import CostGrid  # noqa: E402
from region_planner.errors import PlanningFailure  # noqa: E402
from region_planner.geometry import Pose2D  # noqa: E402
from region_planner.goal_region import PositionConstraint  # noqa: E402
from region_planner.plan_synthesis import PlanPose  # noqa: E402
from region_planner.planner import RegionPlanner  # noqa: E402
from region_planner.region_planner import (  # noqa: E402
    TfTransformProvider,
    parse_constraint,
    to_path_msg,
    to_pose_msg,
)
from region_planner.transforms import TransformError  # noqa: E402


def test_parse_constraint():
    constraint = parse_constraint('{"frame": "map", "constraint": "x^2 + y^2 < 4"}')

    assert constraint == PositionConstraint("map", "x^2 + y^2 < 4")


def test_parse_constraint_missing_keys_is_empty():
    assert parse_constraint("{}").is_empty


@pytest.mark.parametrize("data", ["", "not json", "[1, 2]", '"map"'])
def test_parse_constraint_rejects_malformed(data: str):
    with pytest.raises(ValueError):
        parse_constraint(data)


def test_to_pose_msg():
    pose = to_pose_msg(1.0, 2.0, math.pi / 2)

    assert (pose.position.x, pose.position.y) == (1.0, 2.0)
    assert math.isclose(pose.orientation.z, math.sin(math.pi / 4))
    assert math.isclose(pose.orientation.w, math.cos(math.pi / 4))


def test_to_path_msg():
    plan = [PlanPose(0.5, 0.5, 0.0, "map", 3.0), PlanPose(1.5, 1.5, 0.0, "map", 3.0)]

    path = to_path_msg(plan, "map")

    assert path.header.frame_id == "map"
    assert path.header.stamp.sec == 3
    assert [(p.pose.position.x, p.pose.position.y) for p in path.poses] == [(0.5, 0.5), (1.5, 1.5)]


class StubBuffer:
    def __init__(self, error: Exception | None = None):
        self.error = error

    def lookup_transform(self, target_frame, source_frame, time):
        if self.error is not None:
            raise self.error
        transform = TransformStamped()
        transform.transform.translation.x = 2.0
        transform.transform.translation.y = -1.0
        transform.transform.rotation.z = math.sin(math.pi / 4)
        transform.transform.rotation.w = math.cos(math.pi / 4)
        return transform


def test_tf_lookup():
    transform = TfTransformProvider(StubBuffer()).lookup("map", "base_link")

    assert (transform.x, transform.y) == (2.0, -1.0)
    assert math.isclose(transform.yaw, math.pi / 2)


@pytest.mark.parametrize(
    "error",
    [
        tf2_ros.LookupException("no frame"),
        tf2_ros.ExtrapolationException("too old"),
        tf2_ros.InvalidArgumentException("empty frame id"),
    ],
)
def test_tf_errors_become_transform_errors(error: Exception):
    with pytest.raises(TransformError):
        TfTransformProvider(StubBuffer(error)).lookup("", "map")


def test_constraint_without_frame_fails_planning():
    planner = RegionPlanner()
    planner.initialize(TfTransformProvider(StubBuffer(tf2_ros.InvalidArgumentException("empty frame id"))))
    grid = CostGrid(np.zeros((10, 10), dtype=np.uint8), resolution=1.0, frame_id="map")

    result = planner.make_plan(Pose2D(0.5, 0.5), parse_constraint('{"constraint": "x > 0"}'), grid)

    assert result.failure is PlanningFailure.TRANSFORM_UNAVAILABLE
