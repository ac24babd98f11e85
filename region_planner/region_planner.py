import json

import rclpy
import region_planner.config
import tf2_ros
from geometry_msgs.msg import Point, Pose, PoseArray, PoseStamped, Quaternion
from nav_msgs.msg import OccupancyGrid, Path
from rclpy.node import Node
from rclpy.time import Time
from std_msgs.msg import Header, String

from .cost_grid import CostGrid
from .geometry import Pose2D, Transform2D, WorldPoint, get_yaw_radians_from_quaternion, quaternion_components_from_yaw
from .goal_region import PositionConstraint
from .plan_synthesis import PlanPose
from .planner import RegionPlanner
from .region_planner_config import RegionPlannerConfig
from .transforms import TransformError


class TfTransformProvider:
    """Planar transform lookups backed by a tf2 buffer."""

    def __init__(self, buffer: tf2_ros.Buffer) -> None:
        self._buffer = buffer

    def lookup(self, target_frame: str, source_frame: str, stamp: float | None = None) -> Transform2D:
        time = Time() if stamp is None else Time(nanoseconds=int(stamp * 1e9))
        try:
            transform = self._buffer.lookup_transform(target_frame, source_frame, time).transform
        except tf2_ros.TransformException as e:
            raise TransformError(str(e)) from e

        return Transform2D(
            x=transform.translation.x,
            y=transform.translation.y,
            yaw=get_yaw_radians_from_quaternion(transform.rotation),
        )


def to_pose_msg(x: float, y: float, yaw: float) -> Pose:
    qx, qy, qz, qw = quaternion_components_from_yaw(yaw)
    return Pose(position=Point(x=x, y=y, z=0.0), orientation=Quaternion(x=qx, y=qy, z=qz, w=qw))


def to_path_msg(plan: list[PlanPose], frame_id: str) -> Path:
    stamp = Time(nanoseconds=int(plan[0].stamp * 1e9)).to_msg() if plan else Time().to_msg()
    header = Header(frame_id=frame_id, stamp=stamp)
    return Path(
        header=header,
        poses=[PoseStamped(header=header, pose=to_pose_msg(pose.x, pose.y, pose.yaw)) for pose in plan],
    )


def parse_constraint(data: str) -> PositionConstraint:
    """Parse a `{"frame": ..., "constraint": ...}` JSON document into a PositionConstraint."""
    document = json.loads(data)
    if not isinstance(document, dict):
        raise ValueError("position constraint must be a JSON object")
    return PositionConstraint(frame=str(document.get("frame", "")), expression=str(document.get("constraint", "")))


class RegionPlannerNode(Node):
    def __init__(self) -> None:
        super().__init__("region_planner")

        self.config: RegionPlannerConfig = region_planner.config.load(self, RegionPlannerConfig)

        self.grid: CostGrid | None = None
        self.constraint: PositionConstraint | None = None
        self.plan: list[PlanPose] = []

        self.tf_buffer = tf2_ros.Buffer()
        self.tf_listener = tf2_ros.TransformListener(self.tf_buffer, self)
        self.transforms = TfTransformProvider(self.tf_buffer)

        self.planner = RegionPlanner(
            self.config.planner_params,
            logger=self.get_logger(),
            clock=lambda: self.get_clock().now().nanoseconds / 1e9,
        )
        self.planner.initialize(self.transforms)

        self.create_subscription(OccupancyGrid, "occupancy_grid", self.occupancy_grid_callback, 10)
        self.create_subscription(String, "position_constraint", self.constraint_callback, 10)

        self.plan_publisher = self.create_publisher(Path, "plan", 10)
        self.goal_positions_publisher = self.create_publisher(PoseArray, "goal_positions", 10)

        self.create_timer(self.config.plan_period_s, self.make_plan)

    def occupancy_grid_callback(self, msg: OccupancyGrid) -> None:
        if msg.header.frame_id != self.config.grid_frame_id:
            self.get_logger().error(
                f"Frame ID of occupancy grid ({msg.header.frame_id}) does not match config grid frame ID "
                f"({self.config.grid_frame_id})"
            )
            return

        self.grid = CostGrid.from_occupancy_values(
            msg.data,
            width=msg.info.width,
            height=msg.info.height,
            resolution=msg.info.resolution,
            origin=WorldPoint(msg.info.origin.position.x, msg.info.origin.position.y),
            frame_id=msg.header.frame_id,
            lethal_threshold=self.config.lethal_occupancy_threshold,
            track_unknown_space=self.config.track_unknown_space,
        )

        if self.plan and not self.planner.check_plan(self.plan, self.grid):
            self.get_logger().warn("Current plan is blocked by an obstacle, replanning")
            self.make_plan()

    def constraint_callback(self, msg: String) -> None:
        try:
            constraint = parse_constraint(msg.data)
        except ValueError as e:
            self.get_logger().error(f"Ignoring malformed position constraint '{msg.data}': {e}")
            return

        self.constraint = constraint
        self.make_plan()

    def robot_pose(self) -> Pose2D | None:
        try:
            robot = self.transforms.lookup(self.config.grid_frame_id, self.config.robot_frame_id)
        except TransformError as e:
            self.get_logger().error(f"TF transform failed: {e}")
            return None
        return Pose2D(x=robot.x, y=robot.y, yaw=robot.yaw)

    def make_plan(self) -> None:
        if self.grid is None or self.constraint is None:
            return

        start = self.robot_pose()
        if start is None:
            return

        result = self.planner.make_plan(start, self.constraint, self.grid)

        header = Header(frame_id=self.grid.frame_id, stamp=self.get_clock().now().to_msg())
        self.goal_positions_publisher.publish(
            PoseArray(header=header, poses=[to_pose_msg(p.x, p.y, 0.0) for p in result.goal_positions])
        )

        if not result.ok:
            self.get_logger().warn(f"Planning failed: {result.failure.value}")
            self.plan = []
            return

        self.plan = result.plan
        self.plan_publisher.publish(to_path_msg(self.plan, self.grid.frame_id))


def main() -> None:
    rclpy.init()
    node = RegionPlannerNode()
    try:
        rclpy.spin(node)
    finally:
        node.destroy_node()
        rclpy.shutdown()
