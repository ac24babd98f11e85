from enum import Enum


class PlanningFailure(Enum):
    """Reason a planning call produced no plan. Every member is recoverable by the caller."""

    NOT_INITIALIZED = "planner has not been initialized"
    NO_CONSTRAINT = "no position constraint given"
    START_OFF_GRID = "start pose is off the grid"
    TRANSFORM_UNAVAILABLE = "constraint frame transform unavailable"
    CONSTRAINT_COMPILE_FAILED = "constraint expression failed to compile"
    NO_REACHABLE_GOAL = "no goal cell meets the constraint"
    SEARCH_EXHAUSTED = "no path found to the goal region"
    SYNTHESIS_EMPTY = "path could not be converted to a plan"


class GoalRegionError(Exception):
    """Resolving a position constraint into goal cells failed. Cached goal state stays untouched."""

    failure: PlanningFailure


class TransformUnavailableError(GoalRegionError):
    failure = PlanningFailure.TRANSFORM_UNAVAILABLE


class ConstraintCompileError(GoalRegionError):
    failure = PlanningFailure.CONSTRAINT_COMPILE_FAILED
