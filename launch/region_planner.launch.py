from launch import LaunchDescription
from launch.substitutions import PathJoinSubstitution
from launch_ros.actions import Node
from launch_ros.substitutions import FindPackageShare


def generate_launch_description() -> LaunchDescription:
    params_file = PathJoinSubstitution([FindPackageShare("region_planner"), "config", "region_planner.yaml"])

    return LaunchDescription(
        [
            Node(
                package="region_planner",
                executable="region_planner",
                name="region_planner",
                parameters=[params_file],
                remappings=[
                    ("plan", "path"),
                ],
            ),
        ]
    )
