from collections.abc import Sequence
from enum import IntEnum

import numpy as np

from region_planner.geometry import WorldPoint

Cell = tuple[int, int]


class CostValue(IntEnum):
    """
    Reserved traversal cost values of a cost grid cell.

    Values follow the ROS costmap convention:
    - FREE_SPACE                    (0): Known free cell, cheapest to traverse.
    - MAX_NON_OBSTACLE            (252): Highest cost a traversable cell can carry.
    - INSCRIBED_INFLATED_OBSTACLE (253): Robot footprint would intersect an obstacle. Impassable.
    - LETHAL_OBSTACLE             (254): Cell is occupied by an obstacle. Impassable.
    - NO_INFORMATION              (255): Occupancy is unknown. Traversable at maximum cost.
    """

    FREE_SPACE = 0
    MAX_NON_OBSTACLE = 252
    INSCRIBED_INFLATED_OBSTACLE = 253
    LETHAL_OBSTACLE = 254
    NO_INFORMATION = 255


def is_obstacle_cost(cost: int) -> bool:
    """
    Whether a raw cost value marks an impassable cell.

    Returns:
        True for INSCRIBED_INFLATED_OBSTACLE and LETHAL_OBSTACLE, False for every other value.
    """
    return cost == CostValue.INSCRIBED_INFLATED_OBSTACLE or cost == CostValue.LETHAL_OBSTACLE


class CostGrid:
    """
    World-facing view of a rectangular cost grid.

    The grid follows the ROS map convention: cell (0, 0) is the bottom-left cell, its lower-left corner sits at
    `origin` in the grid frame, +X runs along the width and +Y along the height. Costs are stored row-major as a
    `(size_y, size_x)` uint8 array, so the cost of cell (x, y) is `costs[y, x]`, matching the 1d `y * width + x` layout
    of `nav_msgs/msg/OccupancyGrid.data`.

    A CostGrid is only valid for the planning call it is handed to; planners must not hold on to it.

    Attributes:
        costs: `(size_y, size_x)` uint8 array of traversal costs.
        resolution: Cell size in meters.
        origin: World position (grid frame) of the lower-left corner of cell (0, 0).
        frame_id: TF frame the grid is expressed in.
    """

    costs: np.ndarray
    resolution: float
    origin: WorldPoint
    frame_id: str

    def __init__(
        self,
        costs: np.ndarray,
        resolution: float = 1.0,
        origin: WorldPoint = WorldPoint(0.0, 0.0),
        frame_id: str = "map",
    ) -> None:
        costs = np.asarray(costs)
        if costs.ndim != 2:
            raise ValueError(f"CostGrid: costs must be 2D, got shape {costs.shape}")
        if resolution <= 0:
            raise ValueError("CostGrid: resolution must be > 0")

        self.costs = costs.astype(np.uint8, copy=False)
        self.resolution = resolution
        self.origin = origin
        self.frame_id = frame_id

    @classmethod
    def from_occupancy_values(
        cls,
        data: Sequence[int],
        width: int,
        height: int,
        resolution: float,
        origin: WorldPoint,
        frame_id: str,
        lethal_threshold: int = 100,
        track_unknown_space: bool = True,
    ) -> "CostGrid":
        """
        Build a cost grid from ROS occupancy values.

        Occupancy values are interpreted the way a costmap static layer does:
        - -1 (unknown) becomes NO_INFORMATION, or FREE_SPACE when `track_unknown_space` is False.
        - Values at or above `lethal_threshold` become LETHAL_OBSTACLE.
        - Remaining values are scaled linearly into [FREE_SPACE, MAX_NON_OBSTACLE].

        Args:
            data: Row-major occupancy values (`y * width + x`), as in `nav_msgs/msg/OccupancyGrid.data`.
            width: Number of cells in +X.
            height: Number of cells in +Y.
            resolution: Cell size in meters.
            origin: World position of the lower-left corner of cell (0, 0).
            frame_id: TF frame of the grid.
            lethal_threshold: Occupancy value (1..100) from which a cell counts as an obstacle.
            track_unknown_space: Keep unknown cells distinct from free space.

        Returns:
            A new CostGrid.
        """
        values = np.asarray(data, dtype=np.int16).reshape((height, width))
        costs = np.empty(values.shape, dtype=np.uint8)

        unknown = values < 0
        lethal = ~unknown & (values >= lethal_threshold)
        scaled = ~unknown & ~lethal

        costs[scaled] = (values[scaled] * int(CostValue.MAX_NON_OBSTACLE)) // lethal_threshold
        costs[lethal] = CostValue.LETHAL_OBSTACLE
        costs[unknown] = CostValue.NO_INFORMATION if track_unknown_space else CostValue.FREE_SPACE

        return cls(costs, resolution=resolution, origin=origin, frame_id=frame_id)

    @property
    def size_x(self) -> int:
        return int(self.costs.shape[1])

    @property
    def size_y(self) -> int:
        return int(self.costs.shape[0])

    def in_bounds(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self.size_x and 0 <= y < self.size_y

    def cost(self, cell: Cell) -> int:
        """Raw cost byte of an in-bounds cell."""
        x, y = cell
        return int(self.costs[y, x])

    def is_obstacle(self, cell: Cell) -> bool:
        return is_obstacle_cost(self.cost(cell))

    def obstacle_mask(self) -> np.ndarray:
        """`(size_y, size_x)` boolean array, True where the cell is impassable."""
        return (self.costs == CostValue.INSCRIBED_INFLATED_OBSTACLE) | (self.costs == CostValue.LETHAL_OBSTACLE)

    def map_to_world(self, cell: Cell) -> WorldPoint:
        """
        Convert a cell index to the world position of its center.

        Args:
            cell: (x, y) grid index. Not required to be in bounds.

        Returns:
            World-coordinate point at the center of the cell.
        """
        x, y = cell
        return WorldPoint(
            x=self.origin.x + (x + 0.5) * self.resolution,
            y=self.origin.y + (y + 0.5) * self.resolution,
        )

    def world_to_map(self, point: WorldPoint) -> Cell | None:
        """
        Project a world point into the cell containing it.

        Args:
            point: World-coordinate point in the grid frame.

        Returns:
            (x, y) grid index, or None if the point lies outside the grid.
        """
        if point.x < self.origin.x or point.y < self.origin.y:
            return None

        x = int((point.x - self.origin.x) / self.resolution)
        y = int((point.y - self.origin.y) / self.resolution)

        if x >= self.size_x or y >= self.size_y:
            return None

        return x, y

    def cell_centers(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        World coordinates of every cell center, enumerated x-major (x outer, y inner).

        Returns:
            `(cell_xs, cell_ys, world_xs, world_ys)` flat arrays of length `size_x * size_y`.
        """
        cell_xs, cell_ys = np.meshgrid(np.arange(self.size_x), np.arange(self.size_y), indexing="ij")
        cell_xs = cell_xs.reshape(-1)
        cell_ys = cell_ys.reshape(-1)
        world_xs = self.origin.x + (cell_xs + 0.5) * self.resolution
        world_ys = self.origin.y + (cell_ys + 0.5) * self.resolution
        return cell_xs, cell_ys, world_xs, world_ys
