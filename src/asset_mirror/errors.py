"""Exception hierarchy for asset_mirror.

Repository back-ends raise ``RepositoryError`` subclasses; the sync engine
catches them at the event boundary, discards uncommitted changes and logs.
Nothing defined here is ever allowed to reach the event channel.
"""


class MirrorSyncError(Exception):
    """Base class for every error raised by asset_mirror."""


# ---------------------------------------------------------------------------
# Repository back-end failures
# ---------------------------------------------------------------------------


class RepositoryError(MirrorSyncError):
    """A back-end call failed (lookup, write, query, commit or discard)."""


class ItemNotFoundError(RepositoryError):
    """No node exists at the given path or with the given identifier."""


class ItemExistsError(RepositoryError):
    """A node already exists at the destination of an add or move."""


class InvalidQueryError(RepositoryError):
    """The structural query statement could not be parsed."""


# ---------------------------------------------------------------------------
# Engine-level conditions
# ---------------------------------------------------------------------------


class UnresolvableReferenceError(MirrorSyncError):
    """A link node targets a missing or wrongly-typed node.

    Attributes:
        reference: The identifier stored on the link node.
        link_path: Path of the link node holding the reference.
    """

    def __init__(self, reference: str, link_path: str, reason: str) -> None:
        super().__init__(
            f"Cannot resolve reference '{reference}' from {link_path}: {reason}"
        )
        self.reference = reference
        self.link_path = link_path


class MalformedEventError(MirrorSyncError):
    """A workflow event is missing the arguments its action requires."""
