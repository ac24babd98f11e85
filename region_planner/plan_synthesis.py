from collections.abc import Sequence
from dataclasses import dataclass

from region_planner.cost_grid import Cell, CostGrid
from region_planner.geometry import WorldPoint, bearing


@dataclass(frozen=True)
class PlanPose:
    """One pose of a plan.

    Attributes:
        x: X position (m) in `frame_id`.
        y: Y position (m) in `frame_id`.
        yaw: Heading hint (radians about +Z). 0.0 when the plan is too short to estimate one.
        frame_id: TF frame of the position.
        stamp: Time (seconds) the plan was generated. Shared by all poses of a plan.
    """

    x: float
    y: float
    yaw: float
    frame_id: str
    stamp: float

    @property
    def position(self) -> WorldPoint:
        return WorldPoint(self.x, self.y)


def plan_to_world(path: Sequence[Cell], grid: CostGrid, stamp: float, lookahead: int = 5) -> list[PlanPose]:
    """Convert a cell path into world-frame poses with smoothed headings.

    The heading of pose `i` points at the cell `lookahead` steps further along the path, which hides single-cell
    jitter of the search. The last `lookahead` poses have no such cell and repeat the heading of the pose before them.
    If the whole path has `lookahead` cells or fewer, every heading is left at 0.0.

    Args:
        path: Cells from start to goal.
        grid: Grid the path was planned on.
        stamp: Time (seconds) stamped onto every pose.
        lookahead: Number of cells ahead used for the heading.

    Returns:
        One pose per cell of `path`, in the grid frame.
    """
    positions = [grid.map_to_world(cell) for cell in path]

    plan: list[PlanPose] = []
    for i, position in enumerate(positions):
        yaw = 0.0
        if i + lookahead < len(positions):
            yaw = bearing(position, positions[i + lookahead])
        elif len(positions) > lookahead:
            yaw = plan[i - 1].yaw

        plan.append(PlanPose(x=position.x, y=position.y, yaw=yaw, frame_id=grid.frame_id, stamp=stamp))

    return plan


def check_plan(plan: Sequence[PlanPose], grid: CostGrid) -> bool:
    """Check a previously generated plan against the current grid.

    Args:
        plan: Plan poses, expected in the grid frame.
        grid: Current cost grid.

    Returns:
        False if any pose lies on an inscribed or lethal obstacle cell, True otherwise. Poses off the grid are not
        checked.
    """
    for pose in plan:
        cell = grid.world_to_map(pose.position)
        if cell is not None and grid.is_obstacle(cell):
            return False
    return True
