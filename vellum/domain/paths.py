"""
Path grammar for addressing values inside a document tree.

Two textual forms share one segment model:

- Patch paths: dot-separated names, each optionally followed by bracketed
  tokens, e.g. ``reviews[0].rating`` or ``content[id=abc].title``.
  ``[3]`` is an index segment and ``[id=xyz]`` an id segment; any other
  bracket content is dropped.
- Field paths: the dotted form stored in the field tables, e.g.
  ``images.0.alt``. All-digit tokens are index segments.

Both walkers return ``(parent, key)`` so callers can read, overwrite or
delete in place.
"""

import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

from vellum.domain.errors import PathResolutionError


@dataclass(frozen=True)
class FieldSegment:
    key: str


@dataclass(frozen=True)
class IndexSegment:
    index: int


@dataclass(frozen=True)
class IdSegment:
    id: str


PathSegment = Union[FieldSegment, IndexSegment, IdSegment]

_NAME_RE = re.compile(r"^([^\[]+)")
_BRACKET_RE = re.compile(r"\[([^\]]+)\]")
_INDEX_RE = re.compile(r"^\d+$")


# =============================================================================
# PARSING / BUILDING
# =============================================================================

def parse_patch_path(path: str) -> List[PathSegment]:
    """
    Parse a patch path into segments.

    Malformed bracket content never raises; it is skipped.

    >>> parse_patch_path("reviews[0].rating")
    [FieldSegment(key='reviews'), IndexSegment(index=0), FieldSegment(key='rating')]
    """
    segments: List[PathSegment] = []
    for part in path.split("."):
        name = _NAME_RE.match(part)
        if not name:
            continue
        segments.append(FieldSegment(name.group(1)))

        for token in _BRACKET_RE.findall(part):
            if _INDEX_RE.match(token):
                segments.append(IndexSegment(int(token)))
            elif token.startswith("id="):
                segments.append(IdSegment(token[3:]))
    return segments


def format_patch_path(segments: Sequence[PathSegment]) -> str:
    """Inverse of parse_patch_path for well-formed segment lists."""
    out = ""
    for segment in segments:
        if isinstance(segment, FieldSegment):
            out = f"{out}.{segment.key}" if out else segment.key
        elif isinstance(segment, IndexSegment):
            out += f"[{segment.index}]"
        else:
            out += f"[id={segment.id}]"
    return out


def parse_field_path(path: str) -> List[PathSegment]:
    """Parse a stored field path (``images.0.alt``) into segments."""
    segments: List[PathSegment] = []
    for token in path.split("."):
        if not token:
            continue
        if _INDEX_RE.match(token):
            segments.append(IndexSegment(int(token)))
        else:
            segments.append(FieldSegment(token))
    return segments


def join_field_path(*parts: Union[str, int, None]) -> str:
    return ".".join(str(part) for part in parts if part is not None and part != "")


def parent_field_path(path: str) -> Optional[str]:
    """Path with its last segment removed, or None at the top level."""
    if "." not in path:
        return None
    return path.rsplit(".", 1)[0]


# =============================================================================
# WALKING
# =============================================================================

def find_index_by_id(items: List[Any], item_id: str) -> int:
    for index, item in enumerate(items):
        if isinstance(item, dict) and item.get("id") == item_id:
            return index
    return -1


def get_by_segments(root: Any, segments: Sequence[PathSegment]) -> Tuple[Any, Any]:
    """
    Locate the container holding the value addressed by ``segments``.

    Returns (parent, key). Parent is None when an intermediate value is
    missing, in which case there is nothing to read or delete.

    Raises:
        PathResolutionError: index/id segment applied to a non-array, or an
            id segment with no matching element
    """
    if not segments:
        return None, None

    current = root
    parent = None
    key: Any = None

    for segment in segments:
        parent = current
        if parent is None:
            break

        if isinstance(segment, FieldSegment):
            key = segment.key
            current = parent.get(key) if isinstance(parent, dict) else None
        elif isinstance(segment, IndexSegment):
            if not isinstance(parent, list):
                raise PathResolutionError("Expected array when resolving index segment in path")
            key = segment.index
            current = parent[key] if key < len(parent) else None
        else:
            if not isinstance(parent, list):
                raise PathResolutionError("Expected array when resolving id segment in path")
            index = find_index_by_id(parent, segment.id)
            if index == -1:
                raise PathResolutionError(f"Item with id={segment.id} not found in array")
            key = index
            current = parent[index]

    return parent, key


def ensure_path(root: Any, segments: Sequence[PathSegment]) -> Tuple[Any, Any]:
    """
    Locate the container for ``segments``, creating what is missing.

    Missing containers become arrays when the next segment is index or id
    shaped and objects otherwise. An id with no match appends a
    ``{"id": <value>}`` placeholder. Index segments past the end pad the
    array with None.

    Raises:
        PathResolutionError: a segment meets a value of the wrong shape
    """
    if not segments:
        return None, None

    current = root
    parent = None
    key: Any = None

    for position, segment in enumerate(segments):
        following = segments[position + 1] if position + 1 < len(segments) else None
        parent = current

        if isinstance(segment, FieldSegment):
            if not isinstance(parent, dict):
                raise PathResolutionError(
                    f"Expected object when resolving field segment '{segment.key}' in path"
                )
            key = segment.key
            if parent.get(key) is None:
                parent[key] = [] if isinstance(following, (IndexSegment, IdSegment)) else {}
        elif isinstance(segment, IndexSegment):
            if not isinstance(parent, list):
                raise PathResolutionError("Expected array when resolving index segment in path")
            key = segment.index
            while len(parent) <= key:
                parent.append(None)
            if parent[key] is None:
                parent[key] = {}
        else:
            if not isinstance(parent, list):
                raise PathResolutionError("Expected array when resolving id segment in path")
            key = find_index_by_id(parent, segment.id)
            if key == -1:
                parent.append({"id": segment.id})
                key = len(parent) - 1

        current = parent[key]

    return parent, key
