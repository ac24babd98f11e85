import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np

from region_planner.constraint import ConstraintEvaluator, ExpressionEvaluator
from region_planner.cost_grid import Cell, CostGrid
from region_planner.errors import GoalRegionError, PlanningFailure
from region_planner.geometry import Pose2D, WorldPoint
from region_planner.goal_region import GoalRegion, GoalRegionResolver, PositionConstraint, ProjectedGoalSet
from region_planner.grid_search import GridPathSearch
from region_planner.plan_synthesis import PlanPose, check_plan, plan_to_world
from region_planner.region_planner_config import RegionPlannerParams
from region_planner.transforms import TransformProvider


class PlannerLogger(Protocol):
    """The subset of a ROS node logger (or a `logging.Logger`) the planner writes to."""

    def info(self, message: str) -> object: ...

    def warning(self, message: str) -> object: ...

    def error(self, message: str) -> object: ...


@dataclass(frozen=True)
class PlanResult:
    """Outcome of one planning call.

    Attributes:
        plan: Poses from start to goal in the grid frame. Empty when planning failed.
        goal_positions: Goal points (grid frame) that were considered, for visualization.
        failure: Why planning failed, or None on success.
    """

    plan: list[PlanPose] = field(default_factory=list)
    goal_positions: list[WorldPoint] = field(default_factory=list)
    failure: PlanningFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class RegionPlanner:
    """
    Plans from the robot pose to any cell of a constraint region.

    Each call resolves the constraint into goal cells (re-evaluating the constraint only when it changed since the
    previous call), searches toward all goal cells at once, and, if that fails, searches once more from a single goal
    cell back to the start. The planner is not reentrant: calls on one instance must not overlap.
    """

    def __init__(
        self,
        params: RegionPlannerParams | None = None,
        evaluator: ConstraintEvaluator | None = None,
        logger: PlannerLogger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.params = params if params is not None else RegionPlannerParams()
        self._evaluator: ConstraintEvaluator = evaluator if evaluator is not None else ExpressionEvaluator()
        self._logger: PlannerLogger = logger if logger is not None else logging.getLogger("region_planner")
        self._clock = clock

        self._search = GridPathSearch(self.params.search_params)
        self._resolver: GoalRegionResolver | None = None

        self._constraint: PositionConstraint | None = None
        self._goal_region: GoalRegion | None = None

    def initialize(self, transforms: TransformProvider) -> None:
        self._resolver = GoalRegionResolver(transforms, self._evaluator)
        self._logger.info("Region planner initialized.")

    @property
    def initialized(self) -> bool:
        return self._resolver is not None

    @property
    def constraint(self) -> PositionConstraint | None:
        """The constraint the cached goal region was built for."""
        return self._constraint

    @property
    def goal_region(self) -> GoalRegion | None:
        return self._goal_region

    @property
    def search(self) -> GridPathSearch:
        return self._search

    def make_plan(self, start: Pose2D, constraint: PositionConstraint, grid: CostGrid) -> PlanResult:
        """
        Plan from `start` to the region described by `constraint`.

        Args:
            start: Robot pose in the grid frame.
            constraint: Goal region constraint.
            grid: Current cost grid. Only used for the duration of this call.

        Returns:
            The plan and the goal points considered, or the reason planning failed. Never raises for planning failures.
        """
        if self._resolver is None:
            self._logger.warning("The region planner is not initialized! It's not possible to create a plan.")
            return PlanResult(failure=PlanningFailure.NOT_INITIALIZED)

        if constraint.is_empty:
            return PlanResult(failure=PlanningFailure.NO_CONSTRAINT)

        start_cell = grid.world_to_map(start.position)
        if start_cell is None:
            self._logger.warning(
                f"The robot's start position ({start.x:.2f}, {start.y:.2f}) is off the grid. Planning will always "
                "fail, are you sure the robot has been properly localized?"
            )
            return PlanResult(failure=PlanningFailure.START_OFF_GRID)

        goal_region = self._goal_region
        try:
            if goal_region is None or constraint != self._constraint:
                self._logger.info(
                    f"Position constraint changed to '{constraint.expression}' in '{constraint.frame}', "
                    "rebuilding goal region."
                )
                goal_region = self._resolver.rebuild(constraint, grid)
                self._constraint = constraint
                self._goal_region = goal_region
                self._logger.info(f"Goal region has {len(goal_region)} points.")

            goals = self._resolver.project(goal_region, grid)
        except GoalRegionError as e:
            self._logger.error(f"Failed to resolve position constraint: {e}")
            return PlanResult(failure=e.failure)

        if len(goals) == 0:
            self._logger.error(
                "There is no goal which meets the given constraint. Planning will always fail to this goal constraint."
            )
            return PlanResult(failure=PlanningFailure.NO_REACHABLE_GOAL)

        path = self._search.plan(goals.cells, start_cell, grid)

        if len(path) == 0:
            seed = self._fallback_seed(goals.cells)
            self._logger.warning(
                f"No path from {start_cell} to any of {len(goals)} goal cells, searching back from goal cell {seed}."
            )
            path = list(reversed(self._search.plan([start_cell], seed, grid, reversed=True)))

        if len(path) == 0:
            self._logger.error("Region planner could not find a path to the goal region.")
            return PlanResult(goal_positions=goals.positions, failure=PlanningFailure.SEARCH_EXHAUSTED)

        plan = plan_to_world(path, grid, self._clock(), self.params.heading_lookahead_cells)
        if len(plan) == 0:
            self._logger.error("Region planner could not convert the path into a plan.")
            return PlanResult(goal_positions=goals.positions, failure=PlanningFailure.SYNTHESIS_EMPTY)

        self._logger.info(f"Region planner generated a plan with {len(plan)} poses.")
        return PlanResult(plan=plan, goal_positions=goals.positions)

    def check_plan(self, plan: Sequence[PlanPose], grid: CostGrid) -> bool:
        return check_plan(plan, grid)

    def _fallback_seed(self, cells: list[Cell]) -> Cell:
        """Pick the goal cell the fallback search starts from."""
        if self.params.fallback_seed == "middle":
            return cells[len(cells) // 2]

        points = np.asarray(cells, dtype=np.float64)
        centroid = points.mean(axis=0)
        nearest = int(np.argmin(np.sum((points - centroid) ** 2, axis=1)))
        return cells[nearest]
