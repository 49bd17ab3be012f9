"""Namespace path helpers.

A GitLab path like ``org/team/project`` encodes its ownership chain: every
prefix ending at a ``/`` is a group. These helpers walk that chain without
touching the API.
"""

from typing import List, Optional


def _segments(path: str) -> List[str]:
    return [segment for segment in path.strip().strip("/").split("/") if segment]


def parent_path(path: str) -> Optional[str]:
    """Return the parent group path, or None when ``path`` has a single segment.

    >>> parent_path("org/team/project")
    'org/team'
    >>> parent_path("project") is None
    True
    """
    segments = _segments(path)
    if len(segments) < 2:
        return None
    return "/".join(segments[:-1])


def ancestor_chain(path: str) -> List[str]:
    """Return ``[path, parent, grandparent, ...]`` nearest first."""
    segments = _segments(path)
    return ["/".join(segments[:end]) for end in range(len(segments), 0, -1)]
