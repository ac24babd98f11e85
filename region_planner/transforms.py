from typing import Protocol

from region_planner.geometry import Transform2D


class TransformError(Exception):
    """A frame transform could not be resolved (unknown frame, extrapolation, no data)."""


class TransformProvider(Protocol):
    def lookup(self, target_frame: str, source_frame: str, stamp: float | None = None) -> Transform2D:
        """
        Look up the transform that maps points from `source_frame` into `target_frame`.

        Args:
            target_frame: Frame the returned transform maps into.
            source_frame: Frame the returned transform maps from.
            stamp: Time (seconds) of the transform, or None for the latest available.

        Returns:
            The planar transform between the two frames.

        Raises:
            TransformError: If the transform cannot be resolved.
        """
        ...


class StaticTransformProvider:
    """
    In-memory frame tree of fixed planar transforms.

    Each frame has at most one parent. A lookup between two frames walks both up to their common root, so direct,
    inverse and chained lookups all resolve as long as the frames share a tree. Stamps are ignored.
    """

    def __init__(self) -> None:
        self._parent_of: dict[str, tuple[str, Transform2D]] = {}

    def set_transform(self, parent_frame: str, child_frame: str, transform: Transform2D) -> None:
        """
        Register the pose of `child_frame` in `parent_frame`.

        Args:
            parent_frame: Parent frame ID.
            child_frame: Child frame ID.
            transform: Transform mapping child-frame points into the parent frame.
        """
        if not parent_frame or not child_frame:
            raise ValueError("StaticTransformProvider: frame IDs must be non-empty")
        if parent_frame == child_frame:
            raise ValueError(f"StaticTransformProvider: frame '{child_frame}' cannot be its own parent")

        self._parent_of[child_frame] = (parent_frame, transform)

    def known_frames(self) -> set[str]:
        frames = set(self._parent_of)
        frames.update(parent for parent, _ in self._parent_of.values())
        return frames

    def lookup(self, target_frame: str, source_frame: str, stamp: float | None = None) -> Transform2D:
        if not target_frame or not source_frame:
            raise TransformError("Invalid argument: frame ID is empty")

        if target_frame == source_frame:
            return Transform2D()

        known = self.known_frames()
        for frame in (target_frame, source_frame):
            if frame not in known:
                raise TransformError(f'"{frame}" passed to lookup does not exist')

        target_root, root_from_target = self._to_root(target_frame)
        source_root, root_from_source = self._to_root(source_frame)
        if target_root != source_root:
            raise TransformError(
                f"Could not find a connection between '{target_frame}' and '{source_frame}' because they are not "
                "part of the same tree"
            )

        return root_from_target.inverse().compose(root_from_source)

    def _to_root(self, frame: str) -> tuple[str, Transform2D]:
        """Walk up from `frame` and return (root frame, transform mapping `frame` points into the root)."""
        transform = Transform2D()
        visited = {frame}
        while frame in self._parent_of:
            parent, parent_from_frame = self._parent_of[frame]
            if parent in visited:
                raise TransformError(f"Frame tree contains a loop at '{parent}'")
            visited.add(parent)
            transform = parent_from_frame.compose(transform)
            frame = parent
        return frame, transform
