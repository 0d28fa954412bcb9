"""Path addressing for composition trees.

A path is a sequence of ``/``-separated segments, each naming an attribute
and optionally a predicate selecting one child of that attribute::

    /content[openEHR-EHR-SECTION.vitals.v1]/items[at0002, 'Pulse']/links[1]

Predicates:

- ``[node_id]``           first child with that archetype node id
- ``[node_id, 'name']``   first child with that node id and name
- ``[node_id, k]``        k-th child (1-based) with that node id
- ``[k]``                 k-th child overall

Tree nodes taking part in resolution expose ``base`` (their embedded
:class:`~record.src.locatable.Locatable`) and ``path_children()``, a mapping
from attribute name to the tuple of children stored there.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from record.src.errors import PathResolutionError

logger = logging.getLogger(__name__)

ROOT = "/"
LINKS_ATTRIBUTE = "links"

NODE_ID_PATTERN = r"[A-Za-z][\w.\-]*"

_NODE_ID_RE = re.compile(NODE_ID_PATTERN)
_SEGMENT_RE = re.compile(
    rf"""
    (?P<attribute>[a-z_][a-z0-9_]*)
    (?:\[
        (?:
            (?P<node_id>{NODE_ID_PATTERN})
            (?:\s*,\s*(?:'(?P<name>(?:[^'\\]|\\.)*)'|(?P<index>[1-9][0-9]*)))?
          | (?P<position>[1-9][0-9]*)
        )
    \])?
    """,
    re.VERBOSE,
)
_ESCAPED_RE = re.compile(r"\\(.)")


def _escape(name: str) -> str:
    return name.replace("\\", "\\\\").replace("'", "\\'")


def _unescape(name: str) -> str:
    return _ESCAPED_RE.sub(r"\1", name)


def is_node_id(value: Any) -> bool:
    """True if *value* can be written as a node id predicate in a path."""
    return isinstance(value, str) and _NODE_ID_RE.fullmatch(value) is not None


@dataclass(frozen=True)
class PathSegment:
    """One step of a path: an attribute plus an optional child predicate.

    Attributes:
        attribute: Attribute name (``content``, ``items``, ``links``).
        node_id: Archetype node id the child must carry.
        name: Name value the child must carry (only with ``node_id``).
        index: 1-based position; among ``node_id`` matches when
            ``node_id`` is set, among all children otherwise.
    """

    attribute: str
    node_id: str | None = None
    name: str | None = None
    index: int | None = None

    @property
    def has_predicate(self) -> bool:
        return self.node_id is not None or self.index is not None

    def matches(self, item: Any) -> bool:
        """Check node id and name constraints (position is not considered)."""
        if self.node_id is not None and item.archetype_node_id != self.node_id:
            return False
        if self.name is not None and item.name.value != self.name:
            return False
        return True

    def __str__(self) -> str:
        if self.node_id is None:
            if self.index is None:
                return self.attribute
            return f"{self.attribute}[{self.index}]"
        if self.name is not None:
            return f"{self.attribute}[{self.node_id}, '{_escape(self.name)}']"
        if self.index is not None:
            return f"{self.attribute}[{self.node_id}, {self.index}]"
        return f"{self.attribute}[{self.node_id}]"


# ---------------------------------------------------------------------------
# Parsing and formatting
# ---------------------------------------------------------------------------


def split_path(path: Any) -> tuple[PathSegment, ...] | None:
    """Parse *path* into segments, returning None when it is malformed.

    ``"/"`` parses to an empty tuple.
    """
    if not isinstance(path, str) or not path.startswith(ROOT):
        return None
    if path == ROOT:
        return ()

    segments: list[PathSegment] = []
    pos = 0
    while pos < len(path):
        if path[pos] != "/":
            return None
        match = _SEGMENT_RE.match(path, pos + 1)
        if match is None:
            return None
        segments.append(_segment_from_match(match))
        pos = match.end()
    return tuple(segments)


def _segment_from_match(match: re.Match[str]) -> PathSegment:
    name = match.group("name")
    index = match.group("index") or match.group("position")
    return PathSegment(
        attribute=match.group("attribute"),
        node_id=match.group("node_id"),
        name=_unescape(name) if name is not None else None,
        index=int(index) if index is not None else None,
    )


def parse_path(path: Any) -> tuple[PathSegment, ...]:
    """Parse *path* into segments.

    Raises:
        PathResolutionError: If the path is not well formed.
    """
    segments = split_path(path)
    if segments is None:
        raise PathResolutionError(path, "malformed path")
    return segments


def format_path(segments: Sequence[PathSegment]) -> str:
    """Render segments back into a path string."""
    if not segments:
        return ROOT
    return ROOT + "/".join(str(segment) for segment in segments)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def link_at(base: Any, segment: PathSegment) -> Any | None:
    """Return the link addressed by a ``links[k]`` segment, or None."""
    if segment.attribute != LINKS_ATTRIBUTE or segment.node_id is not None:
        return None
    if segment.index is None:
        return None
    links = base.ordered_links()
    if segment.index > len(links):
        return None
    return links[segment.index - 1]


def match_child(children: Sequence[Any], segment: PathSegment) -> Any | None:
    """Select the child of an attribute that *segment* addresses."""
    if not segment.has_predicate:
        return None
    if segment.node_id is None:
        if segment.index is not None and segment.index <= len(children):
            return children[segment.index - 1]
        return None

    seen = 0
    for child in children:
        if not segment.matches(child):
            continue
        seen += 1
        if segment.index is None or seen == segment.index:
            return child
    return None


def descend(node: Any, segments: Sequence[PathSegment]) -> Any | None:
    """Walk *segments* down from *node*; None when any step misses."""
    current = node
    last = len(segments) - 1
    for position, segment in enumerate(segments):
        if segment.attribute == LINKS_ATTRIBUTE:
            if position != last:
                return None
            return link_at(current.base, segment)
        children = current.path_children().get(segment.attribute)
        if children is None:
            return None
        current = match_child(children, segment)
        if current is None:
            return None
    return current


def resolve_item(node: Any, path: Any) -> Any:
    """Resolve *path* against a tree node.

    Base resolution runs first and wins when it finds something; the
    embedded base resolving to itself stands for *node*. Otherwise the
    node's own prefix is stripped and the remainder is walked through
    the node's child attributes.

    Raises:
        PathResolutionError: If the path is malformed or addresses nothing.
    """
    found = node.base.item_at_path(path)
    if found is node.base:
        return node
    if found is not None:
        return found

    relative = path
    if isinstance(path, str):
        whole = node.base.whole()
        if path.startswith(whole):
            relative = path[len(whole) :]

    segments = parse_path(relative)
    found = descend(node, segments)
    if found is None:
        logger.debug("No item at path %s under %s", path, node.base.archetype_node_id)
        raise PathResolutionError(path)
    return found


# ---------------------------------------------------------------------------
# Canonical paths
# ---------------------------------------------------------------------------


def child_segment(attribute: str, children: Sequence[Any], position: int) -> PathSegment:
    """Canonical segment for ``children[position]``.

    Uses the shortest predicate that :func:`match_child` resolves back to
    the same position: node id alone, then node id and name, then node id
    and occurrence index.
    """
    child = children[position]
    node_id = child.archetype_node_id
    earlier = [c for c in children[:position] if c.archetype_node_id == node_id]
    if not earlier:
        return PathSegment(attribute, node_id=node_id)
    name = child.name.value
    if all(c.name.value != name for c in earlier):
        return PathSegment(attribute, node_id=node_id, name=name)
    return PathSegment(attribute, node_id=node_id, index=len(earlier) + 1)


def iter_items(
    node: Any, prefix: tuple[PathSegment, ...] = ()
) -> Iterator[tuple[tuple[PathSegment, ...], Any]]:
    """Yield ``(segments, item)`` for everything addressable below *node*.

    Order is depth first: a node's links, then each attribute's children
    in stored order, each followed by its own subtree.
    """
    for index, link in enumerate(node.base.ordered_links(), start=1):
        yield prefix + (PathSegment(LINKS_ATTRIBUTE, index=index),), link
    for attribute, children in node.path_children().items():
        for position, child in enumerate(children):
            trail = prefix + (child_segment(attribute, children, position),)
            yield trail, child
            yield from iter_items(child, trail)


def path_of(node: Any, item: Any) -> str:
    """Canonical path of *item* relative to *node*.

    Identity is preferred; equality is the fallback so that an equal
    value built elsewhere still maps to a path.

    Raises:
        PathResolutionError: If *item* is not part of the tree.
    """
    if item is node or item is node.base or item == node:
        return ROOT
    for trail, candidate in iter_items(node):
        if candidate is item:
            return format_path(trail)
    for trail, candidate in iter_items(node):
        if candidate == item:
            return format_path(trail)
    raise PathResolutionError(item, "item is not part of this tree")
