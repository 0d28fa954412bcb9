"""Small value types used throughout the record model.

Identifiers, plain text, and coded terms. All are frozen dataclasses so
they can live inside immutable compositions and be used in sets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from record.src.errors import StructuralValidityError, ValidityRule


def _require_text(value: Any, field_name: str) -> None:
    if not isinstance(value, str) or not value:
        raise StructuralValidityError(
            ValidityRule.INVALID_VALUE,
            f"{field_name} must be a non-empty string",
            details=repr(value),
        )


@dataclass(frozen=True)
class ObjectID:
    """Globally unique identifier of a versioned object."""

    value: str

    def __post_init__(self) -> None:
        _require_text(self.value, "ObjectID.value")

    def __str__(self) -> str:
        return self.value

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ObjectID:
        return cls(value=data["value"])


@dataclass(frozen=True)
class DvText:
    """A piece of human-readable text."""

    value: str

    def __post_init__(self) -> None:
        _require_text(self.value, "DvText.value")

    def __str__(self) -> str:
        return self.value

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DvText:
        return cls(value=data["value"])


@dataclass(frozen=True)
class CodePhrase:
    """A code from a named terminology (e.g. ``ISO_3166-1::SE``)."""

    terminology_id: str
    code_string: str

    def __post_init__(self) -> None:
        _require_text(self.terminology_id, "CodePhrase.terminology_id")
        _require_text(self.code_string, "CodePhrase.code_string")

    def __str__(self) -> str:
        return f"{self.terminology_id}::{self.code_string}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "terminology_id": self.terminology_id,
            "code_string": self.code_string,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CodePhrase:
        return cls(
            terminology_id=data["terminology_id"],
            code_string=data["code_string"],
        )


@dataclass(frozen=True)
class DvCodedText:
    """Text whose meaning is fixed by a defining code.

    Attributes:
        value: Rubric shown to users (e.g. "event").
        defining_code: The code the rubric stands for.
    """

    value: str
    defining_code: CodePhrase

    def __post_init__(self) -> None:
        _require_text(self.value, "DvCodedText.value")
        if not isinstance(self.defining_code, CodePhrase):
            raise StructuralValidityError(
                ValidityRule.INVALID_VALUE,
                "DvCodedText.defining_code must be a CodePhrase",
                details=repr(self.defining_code),
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "defining_code": self.defining_code.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DvCodedText:
        return cls(
            value=data["value"],
            defining_code=CodePhrase.from_dict(data["defining_code"]),
        )
