class StarEngineError(Exception):
    """Base class for engine errors."""

    pass


class InvalidBoardError(StarEngineError):
    """Raised when a board snapshot is built from inconsistent input."""

    pass


class PlacementError(StarEngineError):
    """Raised when the placement oracle is misused (illegal place, out-of-order remove)."""

    pass


class SnapshotMutationError(StarEngineError):
    """Raised when deductions would overwrite an already determined cell."""

    pass


class SearchCancelled(StarEngineError):
    """Raised inside a search when the caller's cancel token fires."""
