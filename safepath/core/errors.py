"""
Error taxonomy for SafePath.

Graph errors are terminal and reported to the caller; collaborator errors
are recovered from inside the retrieval coordinator.
"""


class SafePathError(Exception):
    """Base class for SafePath errors."""


class UnknownRegion(SafePathError):
    """A route token resolved to no node of the region graph."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"unknown region: {token!r}")


class NoRoute(SafePathError):
    """Both regions exist but the graph has no path between them."""

    def __init__(self, from_id: str, to_id: str):
        self.from_id = from_id
        self.to_id = to_id
        super().__init__(f"no route between {from_id!r} and {to_id!r}")


class CollaboratorUnavailable(SafePathError):
    """The news search collaborator failed (network, timeout, or parse error)."""


class DataLoadError(SafePathError):
    """Static region data could not be read."""
