from dataclasses import dataclass, field

FALLBACK_SEEDS = ("middle", "nearest_to_centroid")


@dataclass(frozen=True)
class SearchParams:
    """Parameters for the grid A* search.

    Attributes:
        cost_weight: How strongly cell cost inflates step cost. A step onto a cell of cost `c` costs
            `step_length * (1 + cost_weight * c / 252)`. 0 ignores cell costs entirely.
    """

    cost_weight: float = 3.0

    def __post_init__(self) -> None:
        if self.cost_weight < 0:
            raise ValueError("SearchParams: cost_weight must be >= 0")


@dataclass(frozen=True)
class RegionPlannerParams:
    """Parameters for planning toward a constraint region.

    Attributes:
        heading_lookahead_cells: Number of cells ahead used to compute the heading of each plan pose.
        fallback_seed: Which goal cell the reversed fallback search starts from when the forward search fails.
            "middle" takes the middle element of the goal cell list; "nearest_to_centroid" takes the goal cell
            closest to the mean of all goal cells.
        search_params: Parameters for the grid search.
    """

    heading_lookahead_cells: int = 5
    fallback_seed: str = "nearest_to_centroid"
    search_params: SearchParams = field(default_factory=SearchParams)

    def __post_init__(self) -> None:
        if self.heading_lookahead_cells < 1:
            raise ValueError("RegionPlannerParams: heading_lookahead_cells must be >= 1")
        if self.fallback_seed not in FALLBACK_SEEDS:
            raise ValueError(f"RegionPlannerParams: fallback_seed must be one of {', '.join(FALLBACK_SEEDS)}")


@dataclass(frozen=True)
class RegionPlannerConfig:
    """Configuration for the region planner node.

    Attributes:
        planner_params: Parameters for the planner itself.
        grid_frame_id: TF frame ID of the occupancy grid. Plans are published in this frame.
        robot_frame_id: TF frame ID of the robot base, used to look up the start pose.
        plan_period_s: How often (seconds) to replan toward the active constraint.
        lethal_occupancy_threshold: Occupancy value (1..100) from which a grid cell is treated as an obstacle.
        track_unknown_space: Treat unknown grid cells as unknown (expensive) instead of free.
    """

    planner_params: RegionPlannerParams
    grid_frame_id: str = "map"
    robot_frame_id: str = "base_link"
    plan_period_s: float = 1.0
    lethal_occupancy_threshold: int = 100
    track_unknown_space: bool = True

    def __post_init__(self) -> None:
        if self.plan_period_s <= 0:
            raise ValueError("RegionPlannerConfig: plan_period_s must be > 0")
        if not (1 <= self.lethal_occupancy_threshold <= 100):
            raise ValueError("RegionPlannerConfig: lethal_occupancy_threshold must be between 1 and 100")
