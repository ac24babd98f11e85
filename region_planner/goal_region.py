from dataclasses import dataclass

import numpy as np

from region_planner.constraint import ConstraintEvaluator
from region_planner.cost_grid import Cell, CostGrid
from region_planner.errors import TransformUnavailableError
from region_planner.geometry import Transform2D, WorldPoint
from region_planner.transforms import TransformError, TransformProvider


@dataclass(frozen=True)
class PositionConstraint:
    """A goal region given as a predicate expression over (x, y) in `frame`.

    Attributes:
        frame: TF frame the expression is evaluated in.
        expression: Constraint expression, e.g. `x^2 + y^2 < 4`.
    """

    frame: str = ""
    expression: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.frame and not self.expression


@dataclass(frozen=True, eq=False)
class GoalRegion:
    """Points satisfying a constraint, expressed in the constraint frame.

    Built once per constraint change from the cell centers of the grid at that time, enumerated x-major. The arrays are
    read-only.

    Attributes:
        frame: Constraint frame the points are expressed in.
        xs: X coordinates of the points.
        ys: Y coordinates of the points.
    """

    frame: str
    xs: np.ndarray
    ys: np.ndarray

    def __len__(self) -> int:
        return int(self.xs.shape[0])

    def points(self) -> list[WorldPoint]:
        return [WorldPoint(float(x), float(y)) for x, y in zip(self.xs.tolist(), self.ys.tolist(), strict=True)]


@dataclass(frozen=True)
class ProjectedGoalSet:
    """Goal region projected onto the current grid.

    Every cell is in bounds and traversable at projection time. `cells[i]` is the cell containing `positions[i]`.

    Attributes:
        cells: Goal cells as (x, y) grid indices, in goal region order.
        positions: Goal points in the grid frame.
    """

    cells: list[Cell]
    positions: list[WorldPoint]

    def __len__(self) -> int:
        return len(self.cells)


class GoalRegionResolver:
    """
    Turns a frame-relative position constraint into goal cells on a cost grid.

    Resolving is split in two steps. `rebuild` evaluates the constraint predicate at every cell of the grid, which is
    expensive, and only needs to run when the constraint changes. `project` maps the cached region back onto the
    current grid and drops cells that are now blocked, and runs on every planning call.
    """

    def __init__(self, transforms: TransformProvider, evaluator: ConstraintEvaluator) -> None:
        self._transforms = transforms
        self._evaluator = evaluator

    def rebuild(self, constraint: PositionConstraint, grid: CostGrid) -> GoalRegion:
        """
        Evaluate `constraint` at the center of every cell of `grid`.

        Args:
            constraint: Position constraint to resolve.
            grid: Grid whose cell centers are sampled.

        Returns:
            The points (constraint frame) that satisfy the constraint, possibly none.

        Raises:
            TransformUnavailableError: If the grid frame cannot be transformed into the constraint frame.
            ConstraintCompileError: If the constraint expression does not compile.
        """
        to_constraint = self._lookup(constraint.frame, grid.frame_id)
        predicate = self._evaluator.compile(constraint.expression)

        _, _, world_xs, world_ys = grid.cell_centers()
        xs, ys = to_constraint.apply_arrays(world_xs, world_ys)

        inside = np.fromiter(
            (predicate.evaluate(x, y) for x, y in zip(xs.tolist(), ys.tolist(), strict=True)),
            dtype=bool,
            count=xs.shape[0],
        )

        region_xs = xs[inside]
        region_ys = ys[inside]
        region_xs.flags.writeable = False
        region_ys.flags.writeable = False
        return GoalRegion(frame=constraint.frame, xs=region_xs, ys=region_ys)

    def project(self, region: GoalRegion, grid: CostGrid) -> ProjectedGoalSet:
        """
        Map a cached goal region onto the current grid.

        Points that fall outside the grid or onto an obstacle cell (inscribed or lethal) are dropped.

        Args:
            region: Cached goal region in the constraint frame.
            grid: Current cost grid.

        Returns:
            The traversable goal cells and their grid-frame positions.

        Raises:
            TransformUnavailableError: If the constraint frame cannot be transformed into the grid frame.
        """
        if len(region) == 0:
            return ProjectedGoalSet(cells=[], positions=[])

        to_grid = self._lookup(grid.frame_id, region.frame)
        xs, ys = to_grid.apply_arrays(region.xs, region.ys)

        offsets_x = (xs - grid.origin.x) / grid.resolution
        offsets_y = (ys - grid.origin.y) / grid.resolution
        on_grid = (
            (xs >= grid.origin.x)
            & (ys >= grid.origin.y)
            & (offsets_x < grid.size_x)
            & (offsets_y < grid.size_y)
        )

        cell_xs = np.zeros(xs.shape, dtype=np.int64)
        cell_ys = np.zeros(ys.shape, dtype=np.int64)
        cell_xs[on_grid] = offsets_x[on_grid].astype(np.int64)
        cell_ys[on_grid] = offsets_y[on_grid].astype(np.int64)

        keep = on_grid.copy()
        keep[on_grid] = ~grid.obstacle_mask()[cell_ys[on_grid], cell_xs[on_grid]]

        return ProjectedGoalSet(
            cells=list(zip(cell_xs[keep].tolist(), cell_ys[keep].tolist(), strict=True)),
            positions=[
                WorldPoint(x, y) for x, y in zip(xs[keep].tolist(), ys[keep].tolist(), strict=True)
            ],
        )

    def _lookup(self, target_frame: str, source_frame: str) -> Transform2D:
        try:
            return self._transforms.lookup(target_frame, source_frame)
        except TransformError as e:
            raise TransformUnavailableError(
                f"Transform error from '{source_frame}' to '{target_frame}': {e}"
            ) from e
