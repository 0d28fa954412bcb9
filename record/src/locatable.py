"""Base hierarchical item shared by every node of a composition tree.

``Locatable`` holds identity and archetype metadata plus optional
provenance and links. It is embedded (not inherited) by the tree nodes:
a ``Composition`` or ``Section`` keeps its ``Locatable`` in ``base`` and
exposes the fields through the :class:`Pathable` mixin.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from record.src import paths
from record.src.datatypes import DvText, ObjectID
from record.src.errors import PathResolutionError, StructuralValidityError, ValidityRule


@dataclass(frozen=True)
class Archetyped:
    """Archetype metadata for a node.

    Attributes:
        archetype_id: Archetype constraining this subtree.
        rm_version: Reference model release the data was built against.
        template_id: Template used at creation time, if any.
        archetype_root: True when this node is the top of the archetype's
            subtree.
    """

    archetype_id: str
    rm_version: str = "1.0.2"
    template_id: str | None = None
    archetype_root: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "archetype_id": self.archetype_id,
            "rm_version": self.rm_version,
            "template_id": self.template_id,
            "archetype_root": self.archetype_root,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Archetyped:
        return cls(
            archetype_id=data["archetype_id"],
            rm_version=data.get("rm_version", "1.0.2"),
            template_id=data.get("template_id"),
            archetype_root=data.get("archetype_root", True),
        )


@dataclass(frozen=True)
class FeederAudit:
    """Where the data came from when it was imported from another system."""

    originating_system_id: str
    originating_system_item_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "originating_system_id": self.originating_system_id,
            "originating_system_item_ids": list(self.originating_system_item_ids),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeederAudit:
        return cls(
            originating_system_id=data["originating_system_id"],
            originating_system_item_ids=tuple(data.get("originating_system_item_ids", [])),
        )


@dataclass(frozen=True)
class Link:
    """A non-owning relation from one item to another.

    Attributes:
        meaning: What the link means (e.g. "follow up to").
        type: Coarse classification of the link (e.g. "problem").
        target: URI of the linked item.
    """

    meaning: DvText
    type: DvText
    target: str

    def sort_key(self) -> tuple[str, str, str]:
        return (self.target, self.meaning.value, self.type.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "meaning": self.meaning.to_dict(),
            "type": self.type.to_dict(),
            "target": self.target,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Link:
        return cls(
            meaning=DvText.from_dict(data["meaning"]),
            type=DvText.from_dict(data["type"]),
            target=data["target"],
        )


@dataclass(frozen=True)
class Locatable:
    """Identity and archetype metadata of one tree node.

    Construction rejects a missing node id, name or archetype details,
    a node id that a path predicate cannot spell, and an empty (but
    present) link collection. "No links" is ``None``.
    """

    archetype_node_id: str
    name: DvText
    archetype_details: Archetyped
    uid: ObjectID | None = None
    feeder_audit: FeederAudit | None = None
    links: frozenset[Link] | None = None

    def __post_init__(self) -> None:
        if not self.archetype_node_id:
            raise StructuralValidityError(
                ValidityRule.NODE_ID_REQUIRED, "archetype_node_id is required"
            )
        if not paths.is_node_id(self.archetype_node_id):
            raise StructuralValidityError(
                ValidityRule.INVALID_VALUE,
                "archetype_node_id must start with a letter and contain only"
                " letters, digits, '_', '.' and '-'",
                details=repr(self.archetype_node_id),
            )
        if self.name is None:
            raise StructuralValidityError(ValidityRule.NAME_REQUIRED, "name is required")
        if not isinstance(self.name, DvText):
            raise StructuralValidityError(
                ValidityRule.INVALID_VALUE, "name must be a DvText", details=repr(self.name)
            )
        if self.archetype_details is None:
            raise StructuralValidityError(
                ValidityRule.DETAILS_REQUIRED, "archetype_details is required"
            )
        if self.links is not None:
            links = frozenset(self.links)
            if not links:
                raise StructuralValidityError(ValidityRule.EMPTY_LINKS, "empty links")
            object.__setattr__(self, "links", links)

    @property
    def is_archetype_root(self) -> bool:
        return self.archetype_details.archetype_root

    def whole(self) -> str:
        """This item's own path prefix, e.g. ``/[openEHR-EHR-COMPOSITION.report.v1]``."""
        return f"{paths.ROOT}[{self.archetype_node_id}]"

    def ordered_links(self) -> tuple[Link, ...]:
        """Links in a stable order, so ``links[k]`` always means the same link."""
        if self.links is None:
            return ()
        return tuple(sorted(self.links, key=Link.sort_key))

    def item_at_path(self, path: Any) -> Locatable | Link | None:
        """Resolve *path* against this item's identity and links.

        ``/`` and :meth:`whole` resolve to this item, ``/links[k]`` to a
        link. Anything else, including malformed paths, gives None.
        """
        if not isinstance(path, str):
            return None
        whole = self.whole()
        if path in (paths.ROOT, whole):
            return self
        relative = path[len(whole) :] if path.startswith(whole) else path
        segments = paths.split_path(relative)
        if segments is None or len(segments) != 1:
            return None
        return paths.link_at(self, segments[0])

    def to_dict(self) -> dict[str, Any]:
        return {
            "archetype_node_id": self.archetype_node_id,
            "name": self.name.to_dict(),
            "archetype_details": self.archetype_details.to_dict(),
            "uid": self.uid.to_dict() if self.uid else None,
            "feeder_audit": self.feeder_audit.to_dict() if self.feeder_audit else None,
            "links": (
                [link.to_dict() for link in self.ordered_links()]
                if self.links is not None
                else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Locatable:
        links = data.get("links")
        return cls(
            archetype_node_id=data.get("archetype_node_id"),  # type: ignore[arg-type]
            name=DvText.from_dict(data["name"]) if data.get("name") else None,  # type: ignore[arg-type]
            archetype_details=(
                Archetyped.from_dict(data["archetype_details"])
                if data.get("archetype_details")
                else None  # type: ignore[arg-type]
            ),
            uid=ObjectID.from_dict(data["uid"]) if data.get("uid") else None,
            feeder_audit=(
                FeederAudit.from_dict(data["feeder_audit"]) if data.get("feeder_audit") else None
            ),
            links=frozenset(Link.from_dict(link) for link in links) if links is not None else None,
        )


def build_locatable(
    archetype_node_id: str,
    name: DvText | str,
    archetype_details: Archetyped,
    uid: ObjectID | None = None,
    feeder_audit: FeederAudit | None = None,
    links: Iterable[Link] | None = None,
) -> Locatable:
    """Build a :class:`Locatable`, accepting a plain string for *name*."""
    if isinstance(name, str):
        name = DvText(name)
    return Locatable(
        archetype_node_id=archetype_node_id,
        name=name,
        archetype_details=archetype_details,
        uid=uid,
        feeder_audit=feeder_audit,
        links=frozenset(links) if links is not None else None,
    )


class Pathable:
    """Accessors and path operations for nodes that embed a ``Locatable``.

    Subclasses provide a ``base`` attribute and :meth:`path_children`.
    """

    base: Locatable

    def path_children(self) -> dict[str, tuple[Any, ...]]:
        """Attributes that hold addressable children, by name."""
        return {}

    @property
    def uid(self) -> ObjectID | None:
        return self.base.uid

    @property
    def archetype_node_id(self) -> str:
        return self.base.archetype_node_id

    @property
    def name(self) -> DvText:
        return self.base.name

    @property
    def archetype_details(self) -> Archetyped:
        return self.base.archetype_details

    @property
    def feeder_audit(self) -> FeederAudit | None:
        return self.base.feeder_audit

    @property
    def links(self) -> frozenset[Link] | None:
        return self.base.links

    @property
    def is_archetype_root(self) -> bool:
        return self.base.is_archetype_root

    def item_at_path(self, path: str) -> Any:
        """The item at a path relative to this node.

        Raises:
            PathResolutionError: If the path is malformed or addresses nothing.
        """
        return paths.resolve_item(self, path)

    def path_of_item(self, item: Any) -> str:
        """Canonical path of *item* relative to this node.

        Raises:
            PathResolutionError: If *item* is not in this node's tree.
        """
        return paths.path_of(self, item)

    def valid_path(self, path: str) -> bool:
        """True if :meth:`item_at_path` resolves *path*."""
        try:
            self.item_at_path(path)
        except PathResolutionError:
            return False
        return True

    def walk(self) -> Iterator[tuple[str, Any]]:
        """Yield ``(path, item)`` for every addressable item below this node."""
        for trail, item in paths.iter_items(self):
            yield paths.format_path(trail), item
