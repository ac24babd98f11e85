import heapq
import math
from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np

from region_planner.cost_grid import Cell, CostGrid, CostValue
from region_planner.region_planner_config import SearchParams

DIAGONAL_STEP = math.sqrt(2.0)

# (dx, dy, step length)
_NEIGHBOR_STEPS: tuple[tuple[int, int, float], ...] = (
    (1, 0, 1.0),
    (-1, 0, 1.0),
    (0, 1, 1.0),
    (0, -1, 1.0),
    (1, 1, DIAGONAL_STEP),
    (1, -1, DIAGONAL_STEP),
    (-1, 1, DIAGONAL_STEP),
    (-1, -1, DIAGONAL_STEP),
)


@dataclass(order=True)
class FrontierEntry:
    """A frontier cell keyed by `f = g + h`, ties broken by smaller `h`, then by insertion order."""

    f: float
    h: float
    order: int
    key: int = field(compare=False)


@dataclass(frozen=True)
class SearchStats:
    """Diagnostics of the last search.

    Attributes:
        expanded: Number of cells popped and expanded.
        reversed: Whether the caller labeled the search as reversed (goal searching toward start).
        found: Whether a goal cell was reached.
    """

    expanded: int
    reversed: bool
    found: bool


def octile_distance(a: Cell, b: Cell) -> float:
    """Shortest 8-connected distance between two cells on a free grid, in cells."""
    dx = abs(a[0] - b[0])
    dy = abs(a[1] - b[1])
    return max(dx, dy) + (DIAGONAL_STEP - 1.0) * min(dx, dy)


def step_cost(step_length: float, destination_cost: int, cost_weight: float) -> float:
    """
    Cost of moving onto a cell.

    The step length (1 orthogonal, sqrt(2) diagonal) is scaled up by the traversal cost of the destination cell. A
    free destination costs exactly the step length, which keeps the octile heuristic admissible. Unknown cells are
    charged like the most expensive traversable cell.
    """
    cost = min(destination_cost, int(CostValue.MAX_NON_OBSTACLE))
    return step_length * (1.0 + cost_weight * cost / float(CostValue.MAX_NON_OBSTACLE))


def path_cost(path: list[Cell], grid: CostGrid, cost_weight: float) -> float:
    """Total cost of a cell path under the same edge model the search uses."""
    total = 0.0
    for (x0, y0), (x1, y1) in zip(path, path[1:]):
        step_length = DIAGONAL_STEP if x0 != x1 and y0 != y1 else 1.0
        total += step_cost(step_length, grid.cost((x1, y1)), cost_weight)
    return total


class GridPathSearch:
    """
    Multi-goal A* over an 8-connected cost grid.
    https://en.wikipedia.org/wiki/A*_search_algorithm.

    The heuristic is the octile distance to the nearest goal cell. The search stops as soon as any goal cell is popped
    off the frontier, so with many goals and uneven terrain cost the returned path is not guaranteed to be the cheapest
    over all goals.

    The search holds no reference to a grid between calls; every call may use a grid of a different size.
    """

    def __init__(self, params: SearchParams) -> None:
        self.cost_weight = params.cost_weight
        self.last_stats: SearchStats | None = None

    def plan(self, goals: Iterable[Cell], start: Cell, grid: CostGrid, reversed: bool = False) -> list[Cell]:
        """
        Find a path from `start` to the first reachable cell of `goals`.

        `reversed` does not change the search. It marks a call where the caller swapped the roles of start and goal,
        and is only recorded in `last_stats`.

        Args:
            goals: Goal cells as (x, y) grid indices. Off-grid and obstacle cells are ignored.
            start: Start cell.
            grid: Cost grid to search.
            reversed: Whether the caller swapped start and goal.

        Returns:
            Cells from `start` to the reached goal (both inclusive), or an empty list if no goal is reachable.
        """
        size_x = grid.size_x
        size_y = grid.size_y

        if not grid.in_bounds(start) or grid.is_obstacle(start):
            self.last_stats = SearchStats(expanded=0, reversed=reversed, found=False)
            return []

        blocked: list[bool] = grid.obstacle_mask().reshape(-1).tolist()
        costs: list[int] = grid.costs.reshape(-1).tolist()

        goal_keys: set[int] = set()
        for goal in goals:
            if grid.in_bounds(goal) and not blocked[goal[1] * size_x + goal[0]]:
                goal_keys.add(goal[1] * size_x + goal[0])

        if len(goal_keys) == 0:
            self.last_stats = SearchStats(expanded=0, reversed=reversed, found=False)
            return []

        goal_xs = np.fromiter((key % size_x for key in goal_keys), dtype=np.float64, count=len(goal_keys))
        goal_ys = np.fromiter((key // size_x for key in goal_keys), dtype=np.float64, count=len(goal_keys))

        def heuristic(x: int, y: int) -> float:
            dx = np.abs(goal_xs - x)
            dy = np.abs(goal_ys - y)
            return float(np.min(np.maximum(dx, dy) + (DIAGONAL_STEP - 1.0) * np.minimum(dx, dy)))

        start_key = start[1] * size_x + start[0]
        cost_so_far: list[float] = [math.inf] * (size_x * size_y)
        came_from: list[int] = [-1] * (size_x * size_y)
        closed: list[bool] = [False] * (size_x * size_y)

        cost_so_far[start_key] = 0.0
        start_h = heuristic(*start)
        priority_queue: list[FrontierEntry] = [FrontierEntry(start_h, start_h, 0, start_key)]
        pushed = 1
        expanded = 0

        while len(priority_queue) > 0:
            current_key = heapq.heappop(priority_queue).key
            if closed[current_key]:
                continue
            closed[current_key] = True
            expanded += 1

            if current_key in goal_keys:
                self.last_stats = SearchStats(expanded=expanded, reversed=reversed, found=True)
                return self._backtrace(came_from, current_key, size_x)

            current_x = current_key % size_x
            current_y = current_key // size_x
            for dx, dy, step_length in _NEIGHBOR_STEPS:
                nx, ny = current_x + dx, current_y + dy
                if not (0 <= nx < size_x and 0 <= ny < size_y):
                    continue

                neighbor_key = ny * size_x + nx
                if blocked[neighbor_key] or closed[neighbor_key]:
                    continue

                neighbor_cost = cost_so_far[current_key] + step_cost(step_length, costs[neighbor_key], self.cost_weight)
                if neighbor_cost < cost_so_far[neighbor_key]:
                    cost_so_far[neighbor_key] = neighbor_cost
                    came_from[neighbor_key] = current_key
                    h = heuristic(nx, ny)
                    heapq.heappush(priority_queue, FrontierEntry(neighbor_cost + h, h, pushed, neighbor_key))
                    pushed += 1

        self.last_stats = SearchStats(expanded=expanded, reversed=reversed, found=False)
        return []

    @staticmethod
    def _backtrace(came_from: list[int], goal_key: int, size_x: int) -> list[Cell]:
        backtrace: list[Cell] = []
        key = goal_key
        while key != -1:
            backtrace.append((key % size_x, key // size_x))
            key = came_from[key]

        return list(reversed(backtrace))
