"""Configuration for composition validation.

Names the terminology groups and code sets looked up during validation
and decides which category codes count as persistent. Passed explicitly
to every construction; nothing is read from the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from record.src.datatypes import DvCodedText
from shared.hardening import InputValidator


@dataclass(frozen=True)
class RecordConfig:
    """Lookup names and persistence policy.

    Attributes:
        terminology_id: Terminology holding the category group.
        category_group: Group every category code must belong to.
        category_language: Language of *category_group*.
        territory_code_set: Code set every territory must belong to.
        persistent_categories: Category code strings that mark a
            composition as persistent. Empty means no category is.
    """

    terminology_id: str = "openehr"
    category_group: str = "composition category"
    category_language: str = "en"
    territory_code_set: str = "countries"
    persistent_categories: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "persistent_categories", frozenset(self.persistent_categories))

    def is_persistent(self, category: DvCodedText | None) -> bool:
        """True if *category* is one of the persistent categories."""
        if category is None:
            return False
        code = category.defining_code
        return (
            code.terminology_id == self.terminology_id
            and code.code_string in self.persistent_categories
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "terminology_id": self.terminology_id,
            "category_group": self.category_group,
            "category_language": self.category_language,
            "territory_code_set": self.territory_code_set,
            "persistent_categories": sorted(self.persistent_categories),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecordConfig:
        defaults = cls()
        return cls(
            terminology_id=data.get("terminology_id", defaults.terminology_id),
            category_group=data.get("category_group", defaults.category_group),
            category_language=data.get("category_language", defaults.category_language),
            territory_code_set=data.get("territory_code_set", defaults.territory_code_set),
            persistent_categories=frozenset(data.get("persistent_categories", [])),
        )

    @classmethod
    def from_json(cls, path: str | Path) -> RecordConfig:
        """Load configuration from a JSON object file.

        Raises:
            ValidationError: If the path is unsafe or the file is not a JSON object.
        """
        return cls.from_dict(InputValidator().validate_json_file(path))


DEFAULT_CONFIG = RecordConfig()
