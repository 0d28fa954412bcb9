"""The composition: unit of modification, transmission and attestation.

A composition is the top-level record of one clinical session (or one
persistent summary). It is validated completely when it is built and is
immutable afterwards; a changed composition is a new value built through
the same checks (see :meth:`Composition.evolve`).
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import InitVar, dataclass, field
from typing import Any

from record.src.config import DEFAULT_CONFIG, RecordConfig
from record.src.content import ContentItem, EventContext, content_item_from_dict
from record.src.datatypes import CodePhrase, DvCodedText, DvText, ObjectID
from record.src.errors import StructuralValidityError, ValidityRule
from record.src.locatable import (
    Archetyped,
    FeederAudit,
    Link,
    Locatable,
    Pathable,
    build_locatable,
)
from record.src.terminology import TerminologyService

logger = logging.getLogger(__name__)

COMPOSITION_TYPE = "COMPOSITION"


def _lookup(description: str, query: Callable[..., bool], *args: Any) -> bool:
    """Run a terminology query, treating a failing service as a miss."""
    try:
        return bool(query(*args))
    except Exception as exc:
        logger.warning("Terminology lookup for %s failed: %s", description, exc)
        return False


@dataclass(frozen=True)
class Composition(Pathable):
    """An immutable, validated clinical document.

    Build it with :meth:`create` (or directly from an already built
    ``Locatable``). Construction checks, in order: category and territory
    value types, archetype root, non-empty content, no context on a
    persistent category, category and territory present, a terminology
    service present, then the category and territory codes against the
    terminology. The first failing check raises
    :class:`StructuralValidityError`.

    Attributes:
        base: Identity and archetype metadata.
        category: Broad category, e.g. "event" or "persistent".
        territory: Country the composition was written in.
        content: Sections and entries, None when there is no content.
        context: The clinical session this composition records.
        config: Lookup names and persistence policy used to validate it.
    """

    base: Locatable
    category: DvCodedText
    territory: CodePhrase
    terminology: InitVar[TerminologyService | None]
    content: tuple[ContentItem, ...] | None = None
    context: EventContext | None = None
    config: RecordConfig = field(default=DEFAULT_CONFIG, compare=False, repr=False)

    def __post_init__(self, terminology: TerminologyService | None) -> None:
        if not isinstance(self.base, Locatable):
            raise StructuralValidityError(
                ValidityRule.INVALID_VALUE, "base must be a Locatable", details=repr(self.base)
            )
        if self.category is not None and not isinstance(self.category, DvCodedText):
            raise StructuralValidityError(
                ValidityRule.INVALID_VALUE,
                "category must be a DvCodedText",
                details=repr(self.category),
            )
        if self.territory is not None and not isinstance(self.territory, CodePhrase):
            raise StructuralValidityError(
                ValidityRule.INVALID_VALUE,
                "territory must be a CodePhrase",
                details=repr(self.territory),
            )
        if not self.base.is_archetype_root:
            raise StructuralValidityError(ValidityRule.NOT_ARCHETYPE_ROOT, "not archetype root")

        if self.content is not None:
            content = tuple(self.content)
            if not content:
                raise StructuralValidityError(ValidityRule.EMPTY_CONTENT, "empty content")
            object.__setattr__(self, "content", content)

        if self.config.is_persistent(self.category) and self.context is not None:
            raise StructuralValidityError(
                ValidityRule.PERSISTENT_WITH_CONTEXT,
                "invalid persistent category: a persistent composition has no context",
                details=self.category.defining_code.code_string,
            )

        if self.category is None:
            raise StructuralValidityError(ValidityRule.CATEGORY_REQUIRED, "null category")
        if self.territory is None:
            raise StructuralValidityError(ValidityRule.TERRITORY_REQUIRED, "null territory")
        if terminology is None:
            raise StructuralValidityError(
                ValidityRule.TERMINOLOGY_REQUIRED, "null terminology service"
            )

        cfg = self.config
        category_code = self.category.defining_code
        if not _lookup(
            f"category {category_code}",
            terminology.has_code_for_group_name,
            category_code,
            cfg.category_group,
            cfg.category_language,
        ):
            raise StructuralValidityError(
                ValidityRule.UNKNOWN_CATEGORY,
                f"unknown category: {category_code}",
                details=str(category_code),
            )
        if not _lookup(
            f"territory {self.territory}",
            terminology.code_set_has,
            cfg.territory_code_set,
            self.territory,
        ):
            raise StructuralValidityError(
                ValidityRule.UNKNOWN_TERRITORY,
                f"unknown territory: {self.territory}",
                details=str(self.territory),
            )

        logger.debug(
            "Accepted composition %s (category=%s, territory=%s, %d content items)",
            self.base.archetype_node_id,
            category_code,
            self.territory,
            len(self.content or ()),
        )

    @classmethod
    def create(
        cls,
        *,
        archetype_node_id: str,
        name: DvText | str,
        archetype_details: Archetyped,
        category: DvCodedText,
        territory: CodePhrase,
        terminology: TerminologyService | None,
        uid: ObjectID | None = None,
        feeder_audit: FeederAudit | None = None,
        links: Iterable[Link] | None = None,
        content: Sequence[ContentItem] | None = None,
        context: EventContext | None = None,
        config: RecordConfig | None = None,
    ) -> Composition:
        """Validate all fields and build a composition.

        The base item is built first, so its checks (node id, name,
        archetype details, empty links) come before the composition's own.

        Raises:
            StructuralValidityError: On the first violated invariant.
        """
        base = build_locatable(
            archetype_node_id=archetype_node_id,
            name=name,
            archetype_details=archetype_details,
            uid=uid,
            feeder_audit=feeder_audit,
            links=links,
        )
        return cls(
            base=base,
            category=category,
            territory=territory,
            terminology=terminology,
            content=tuple(content) if content is not None else None,
            context=context,
            config=config or DEFAULT_CONFIG,
        )

    def evolve(self, terminology: TerminologyService | None, **changes: Any) -> Composition:
        """Return a new composition with *changes* applied and re-validated.

        Args:
            terminology: Service used to validate the new value.
            **changes: Field values to replace (``base``, ``content``,
                ``context``, ``category``, ``territory``, ``config``).

        Raises:
            StructuralValidityError: If the changed composition is invalid.
        """
        return dataclasses.replace(self, terminology=terminology, **changes)

    def is_persistent(self) -> bool:
        """True if the category marks this composition as persistent."""
        return self.config.is_persistent(self.category)

    def path_children(self) -> dict[str, tuple[Any, ...]]:
        return {"content": self.content or ()}

    def to_dict(self) -> dict[str, Any]:
        result = {"_type": COMPOSITION_TYPE, **self.base.to_dict()}
        result.update(
            {
                "content": (
                    [item.to_dict() for item in self.content]
                    if self.content is not None
                    else None
                ),
                "context": self.context.to_dict() if self.context else None,
                "category": self.category.to_dict(),
                "territory": self.territory.to_dict(),
            }
        )
        return result

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        terminology: TerminologyService | None,
        config: RecordConfig | None = None,
    ) -> Composition:
        """Rebuild a composition from :meth:`to_dict` output.

        Goes through the same validation as :meth:`create`.

        Raises:
            StructuralValidityError: If the data describes an invalid composition.
        """
        content = data.get("content")
        return cls(
            base=Locatable.from_dict(data),
            category=DvCodedText.from_dict(data["category"]) if data.get("category") else None,  # type: ignore[arg-type]
            territory=CodePhrase.from_dict(data["territory"]) if data.get("territory") else None,  # type: ignore[arg-type]
            terminology=terminology,
            content=(
                tuple(content_item_from_dict(item) for item in content)
                if content is not None
                else None
            ),
            context=EventContext.from_dict(data["context"]) if data.get("context") else None,
            config=config or DEFAULT_CONFIG,
        )
