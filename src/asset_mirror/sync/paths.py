"""Path algebra between the primary tree and the mirror tree.

Both trees share relative coordinates: a content item at
``<primary_root>/a/b/doc`` corresponds to the container at
``<mirror_root>/a/b/doc``.  Converting between them is pure root-prefix
substitution:

1. ``relativize`` strips a root prefix (paths outside the root pass through).
2. ``absolutize`` prepends a root.
3. ``replace_prefix`` swaps one relative prefix for another on whole
   segments, so ``a/b`` never matches ``a/bc``.
"""

from __future__ import annotations

from asset_mirror.config_schema import MirrorConfig


def relativize(path: str, root: str) -> str:
    """Strip *root* and the joining slash from *path*.

    ``relativize(root, root)`` is the empty string.  A path that is not
    under *root* is returned unchanged.
    """
    root = root.rstrip("/")
    if path == root:
        return ""
    if path.startswith(root + "/"):
        return path[len(root) + 1 :]
    return path


def absolutize(rel_path: str, root: str) -> str:
    """Prepend *root* to a relative path."""
    root = root.rstrip("/")
    rel_path = rel_path.strip("/")
    if not rel_path:
        return root
    return f"{root}/{rel_path}"


def split_segments(rel_path: str) -> list[str]:
    """Split a relative path into its non-empty segments."""
    return [segment for segment in rel_path.split("/") if segment]


def strip_index(segment: str) -> str:
    """Drop a same-name-sibling index: ``name[2]`` becomes ``name``."""
    return segment.split("[", 1)[0]


def join(parent: str, name: str) -> str:
    """Join a parent path (absolute or relative) and a child name."""
    if not parent:
        return name
    return f"{parent.rstrip('/')}/{name}"


def parent_of(path: str) -> str:
    """Parent of a relative or absolute path (``""`` for a single segment)."""
    parent = path.rstrip("/").rpartition("/")[0]
    if not parent and path.startswith("/"):
        return "/"
    return parent


def is_same_or_descendant(path: str, prefix: str) -> bool:
    """True if *path* equals *prefix* or lies below it, segment-wise."""
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


def replace_prefix(path: str, old_prefix: str, new_prefix: str) -> str:
    """Swap *old_prefix* for *new_prefix* when *path* starts with it.

    Paths not under *old_prefix* are returned unchanged.
    """
    if not is_same_or_descendant(path, old_prefix):
        return path
    remainder = path[len(old_prefix.rstrip("/")) :].lstrip("/")
    return join(new_prefix.rstrip("/"), remainder) if remainder else new_prefix


class PathMapper:
    """Translate paths between the primary and mirror coordinate spaces.

    Args:
        config: Configuration providing the two tree roots.
    """

    def __init__(self, config: MirrorConfig) -> None:
        self.primary_root = config.repository.primary_root
        self.mirror_root = config.repository.mirror_root

    def is_under_primary(self, path: str) -> bool:
        return path.startswith(self.primary_root + "/")

    def is_under_mirror(self, path: str) -> bool:
        return path.startswith(self.mirror_root + "/")

    def to_primary_relative(self, path: str) -> str:
        return relativize(path, self.primary_root)

    def to_mirror_relative(self, path: str) -> str:
        return relativize(path, self.mirror_root)

    def primary_path(self, rel_path: str) -> str:
        return absolutize(rel_path, self.primary_root)

    def mirror_path(self, rel_path: str) -> str:
        return absolutize(rel_path, self.mirror_root)

    def primary_to_mirror(self, path: str) -> str:
        """Map an absolute primary path to its mirror counterpart."""
        return self.mirror_path(self.to_primary_relative(path))

    def mirror_to_primary(self, path: str) -> str:
        """Map an absolute mirror path to its primary counterpart."""
        return self.primary_path(self.to_mirror_relative(path))
