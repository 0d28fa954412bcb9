"""Content nodes and the clinical session context of a composition.

Sections and entries are only modelled as far as the tree needs them:
identity, archetype metadata, and (for sections) an ordered list of
children that paths can address.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

from record.src.datatypes import DvCodedText, DvText
from record.src.errors import StructuralValidityError, ValidityRule
from record.src.locatable import Locatable, Pathable

SECTION_TYPE = "SECTION"
ENTRY_TYPE = "ENTRY"


@dataclass(frozen=True)
class Entry(Pathable):
    """A leaf content item (an observation, evaluation, instruction...)."""

    base: Locatable

    def to_dict(self) -> dict[str, Any]:
        return {"_type": ENTRY_TYPE, **self.base.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entry:
        return cls(base=Locatable.from_dict(data))


@dataclass(frozen=True)
class Section(Pathable):
    """A heading-like grouping of further sections and entries.

    Attributes:
        base: Identity and archetype metadata.
        items: Ordered children. None when the section is empty; an
            empty sequence is rejected.
    """

    base: Locatable
    items: tuple[ContentItem, ...] | None = None

    def __post_init__(self) -> None:
        if self.items is not None:
            items = tuple(self.items)
            if not items:
                raise StructuralValidityError(
                    ValidityRule.EMPTY_ITEMS,
                    f"empty items in section {self.base.archetype_node_id}",
                )
            object.__setattr__(self, "items", items)

    def path_children(self) -> dict[str, tuple[Any, ...]]:
        return {"items": self.items or ()}

    def to_dict(self) -> dict[str, Any]:
        result = {"_type": SECTION_TYPE, **self.base.to_dict()}
        result["items"] = (
            [item.to_dict() for item in self.items] if self.items is not None else None
        )
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Section:
        items = data.get("items")
        return cls(
            base=Locatable.from_dict(data),
            items=(
                tuple(content_item_from_dict(item) for item in items)
                if items is not None
                else None
            ),
        )


ContentItem = Union[Section, Entry]


def content_item_from_dict(data: dict[str, Any]) -> ContentItem:
    """Rebuild a section or entry from its ``_type`` discriminator."""
    kind = data.get("_type", SECTION_TYPE)
    if kind == SECTION_TYPE:
        return Section.from_dict(data)
    if kind == ENTRY_TYPE:
        return Entry.from_dict(data)
    raise StructuralValidityError(
        ValidityRule.INVALID_VALUE, f"unknown content item type: {kind}", details=kind
    )


@dataclass(frozen=True)
class Participation:
    """Someone taking part in the clinical session, and in what role."""

    function: DvText
    performer: str
    mode: DvCodedText | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "function": self.function.to_dict(),
            "performer": self.performer,
            "mode": self.mode.to_dict() if self.mode else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Participation:
        return cls(
            function=DvText.from_dict(data["function"]),
            performer=data["performer"],
            mode=DvCodedText.from_dict(data["mode"]) if data.get("mode") else None,
        )


@dataclass(frozen=True)
class EventContext:
    """Time, place and participants of the event a composition records.

    Attributes:
        start_time: When the clinical session started.
        setting: Coded care setting (e.g. "primary medical care").
        end_time: When the session ended, if it has.
        location: Free text location within the facility.
        health_care_facility: Name of the facility.
        participations: People involved other than the composer.
    """

    start_time: datetime
    setting: DvCodedText
    end_time: datetime | None = None
    location: str | None = None
    health_care_facility: str | None = None
    participations: tuple[Participation, ...] | None = None

    def __post_init__(self) -> None:
        if self.setting is None:
            raise StructuralValidityError(ValidityRule.SETTING_REQUIRED, "setting is required")
        if self.end_time is not None and self.end_time < self.start_time:
            raise StructuralValidityError(
                ValidityRule.END_BEFORE_START,
                "end_time is before start_time",
                details=f"{self.start_time.isoformat()} > {self.end_time.isoformat()}",
            )
        if self.participations is not None:
            participations = tuple(self.participations)
            if not participations:
                raise StructuralValidityError(
                    ValidityRule.EMPTY_PARTICIPATIONS, "empty participations"
                )
            object.__setattr__(self, "participations", participations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_time": self.start_time.isoformat(),
            "setting": self.setting.to_dict(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "location": self.location,
            "health_care_facility": self.health_care_facility,
            "participations": (
                [p.to_dict() for p in self.participations]
                if self.participations is not None
                else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventContext:
        participations = data.get("participations")
        return cls(
            start_time=datetime.fromisoformat(data["start_time"]),
            setting=DvCodedText.from_dict(data["setting"]) if data.get("setting") else None,  # type: ignore[arg-type]
            end_time=datetime.fromisoformat(data["end_time"]) if data.get("end_time") else None,
            location=data.get("location"),
            health_care_facility=data.get("health_care_facility"),
            participations=(
                tuple(Participation.from_dict(p) for p in participations)
                if participations is not None
                else None
            ),
        )
