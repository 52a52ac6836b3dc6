"""Error types raised by the mesh generation pipeline."""


class MeshError(Exception):
    """Base class for mesh generation failures."""


class InvalidParameterError(MeshError, ValueError):
    """Generation parameters rejected before any geometry work."""


class MeshInvariantError(MeshError, RuntimeError):
    """
    A half-edge invariant does not hold.

    Indicates corrupted or non-Delaunay input; never recoverable at runtime.
    """

    def __init__(self, message: str, index: int, kind: str = "side"):
        super().__init__(f"{message} ({kind} {index})")
        self.index = index
        self.kind = kind


class GenerationCancelled(MeshError):
    """The caller asked to stop between pipeline stages."""

    def __init__(self, stage: str):
        super().__init__(f"Generation cancelled before stage '{stage}'")
        self.stage = stage
