import math

import numpy as np
import pytest
from region_planner.cost_grid import CostGrid, CostValue
from region_planner.grid_search import (
    DIAGONAL_STEP,
    FrontierEntry,
    GridPathSearch,
    octile_distance,
    path_cost,
    step_cost,
)
from region_planner.region_planner_config import SearchParams


def make_grid(matrix: list[list[int]] | None = None, size: int = 10) -> CostGrid:
    """Builds a grid from rows listed bottom (y = 0) to top."""
    costs = np.zeros((size, size), dtype=np.uint8) if matrix is None else np.array(matrix, dtype=np.uint8)
    return CostGrid(costs, resolution=1.0, frame_id="map")


def make_search(cost_weight: float = 3.0) -> GridPathSearch:
    return GridPathSearch(SearchParams(cost_weight=cost_weight))


def assert_connected(path: list[tuple[int, int]]) -> None:
    for (x0, y0), (x1, y1) in zip(path, path[1:]):
        assert max(abs(x1 - x0), abs(y1 - y0)) == 1


def test_frontier_entry_ordering():
    assert FrontierEntry(1.0, 0.5, 7, key=1) < FrontierEntry(2.0, 0.0, 0, key=0)
    assert FrontierEntry(1.0, 0.5, 7, key=1) < FrontierEntry(1.0, 0.6, 0, key=0)
    assert FrontierEntry(1.0, 0.5, 0, key=9) < FrontierEntry(1.0, 0.5, 1, key=0)


def test_octile_distance():
    assert octile_distance((0, 0), (3, 0)) == 3
    assert math.isclose(octile_distance((0, 0), (3, 3)), 3 * DIAGONAL_STEP)
    assert math.isclose(octile_distance((5, 1), (1, 3)), 2 + 2 * DIAGONAL_STEP)


def test_step_cost():
    assert step_cost(1.0, 0, cost_weight=3.0) == 1.0
    assert math.isclose(step_cost(DIAGONAL_STEP, 252, cost_weight=3.0), 4 * DIAGONAL_STEP)
    assert step_cost(1.0, CostValue.NO_INFORMATION, cost_weight=1.0) == step_cost(1.0, 252, cost_weight=1.0)


def test_free_grid_diagonal():
    search = make_search()
    path = search.plan([(9, 9)], (0, 0), make_grid())

    assert len(path) == 10
    assert path[0] == (0, 0)
    assert path[-1] == (9, 9)
    assert_connected(path)
    assert search.last_stats is not None
    assert search.last_stats.found
    assert not search.last_stats.reversed


@pytest.mark.parametrize(
    "start, goal",
    [((0, 0), (9, 9)), ((0, 0), (9, 0)), ((2, 7), (8, 1)), ((4, 4), (6, 9)), ((9, 3), (0, 5))],
)
def test_free_grid_cost_is_octile_distance(start, goal):
    grid = make_grid()
    search = make_search()

    path = search.plan([goal], start, grid)

    assert path[0] == start
    assert path[-1] == goal
    assert_connected(path)
    assert math.isclose(path_cost(path, grid, search.cost_weight), octile_distance(start, goal))


@pytest.mark.parametrize("uniform_cost", [0, 100])
@pytest.mark.parametrize("start, goal", [((0, 0), (9, 9)), ((1, 8), (7, 2)), ((3, 0), (3, 9))])
def test_forward_and_reversed_are_symmetric(uniform_cost, start, goal):
    grid = make_grid(np.full((10, 10), uniform_cost).tolist())
    search = make_search()

    forward = search.plan([goal], start, grid)
    backward = list(reversed(search.plan([start], goal, grid, reversed=True)))

    assert search.last_stats.reversed
    assert len(forward) == len(backward)
    assert backward[0] == start
    assert backward[-1] == goal
    assert math.isclose(path_cost(forward, grid, search.cost_weight), path_cost(backward, grid, search.cost_weight))


def test_routes_around_wall():
    matrix = [[0] * 10 for _ in range(10)]
    for y in range(9):
        matrix[y][5] = CostValue.LETHAL_OBSTACLE
    grid = make_grid(matrix)

    path = make_search().plan([(9, 0)], (0, 0), grid)

    assert path[-1] == (9, 0)
    assert (5, 9) in path
    assert_connected(path)
    assert not any(grid.is_obstacle(cell) for cell in path)


def test_prefers_cheaper_terrain():
    # expensive cells in column 2, rows 0 and 1; the top row stays free
    matrix = [[0] * 5 for _ in range(3)]
    matrix[0][2] = 250
    matrix[1][2] = 250
    grid = make_grid(matrix)

    path = make_search(cost_weight=10.0).plan([(4, 0)], (0, 0), grid)

    assert (2, 2) in path
    assert (2, 0) not in path


def test_cost_weight_zero_ignores_terrain():
    matrix = [[0, 200, 0], [0, 0, 0]]
    grid = make_grid(matrix)

    assert make_search(cost_weight=3.0).plan([(2, 0)], (0, 0), grid) == [(0, 0), (1, 1), (2, 0)]
    assert make_search(cost_weight=0.0).plan([(2, 0)], (0, 0), grid) == [(0, 0), (1, 0), (2, 0)]


def test_multi_goal_stops_at_first_reached():
    grid = make_grid()
    search = make_search()

    path = search.plan([(9, 9), (2, 0), (0, 9)], (0, 0), grid)

    assert path == [(0, 0), (1, 0), (2, 0)]


def test_start_is_goal():
    assert make_search().plan([(3, 3)], (3, 3), make_grid()) == [(3, 3)]


def test_enclosed_goal_is_unreachable():
    matrix = [[0] * 10 for _ in range(10)]
    for x, y in [(6, 6), (7, 6), (8, 6), (6, 7), (8, 7), (6, 8), (7, 8), (8, 8)]:
        matrix[y][x] = CostValue.INSCRIBED_INFLATED_OBSTACLE
    search = make_search()

    assert search.plan([(7, 7)], (0, 0), make_grid(matrix)) == []
    assert not search.last_stats.found
    assert search.last_stats.expanded > 0


def test_impassable_start_or_goals():
    matrix = [[0] * 10 for _ in range(10)]
    matrix[0][0] = CostValue.LETHAL_OBSTACLE
    matrix[9][9] = CostValue.LETHAL_OBSTACLE
    grid = make_grid(matrix)
    search = make_search()

    assert search.plan([(5, 5)], (0, 0), grid) == []
    assert search.plan([(9, 9)], (1, 1), grid) == []
    assert search.last_stats.expanded == 0


def test_off_grid_start_or_goals():
    grid = make_grid()
    search = make_search()

    assert search.plan([(5, 5)], (-1, 0), grid) == []
    assert search.plan([(10, 3), (3, -1)], (0, 0), grid) == []
    assert search.plan([(10, 3), (3, 3)], (0, 0), grid)[-1] == (3, 3)


def test_unknown_cells_are_traversable():
    matrix = [[0, CostValue.NO_INFORMATION, 0]]

    assert make_search().plan([(2, 0)], (0, 0), make_grid(matrix)) == [(0, 0), (1, 0), (2, 0)]


def test_accepts_a_different_grid_each_call():
    search = make_search()

    assert len(search.plan([(9, 9)], (0, 0), make_grid(size=10))) == 10
    assert len(search.plan([(2, 2)], (0, 0), make_grid(size=3))) == 3
    assert len(search.plan([(19, 0)], (0, 0), make_grid(size=20))) == 20
