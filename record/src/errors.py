"""Error types for the composition record core.

Two failure kinds exist: a value could not be constructed because one of
its invariants does not hold, or a path could not be resolved against a
tree. Both are raised at the point of failure and never retried.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ValidityRule(str, Enum):
    """Invariant that rejected a construction."""

    # Base item (Locatable)
    NODE_ID_REQUIRED = "node_id_required"
    NAME_REQUIRED = "name_required"
    DETAILS_REQUIRED = "archetype_details_required"
    EMPTY_LINKS = "empty_links"

    # Composition
    NOT_ARCHETYPE_ROOT = "not_archetype_root"
    EMPTY_CONTENT = "empty_content"
    PERSISTENT_WITH_CONTEXT = "persistent_with_context"
    CATEGORY_REQUIRED = "category_required"
    TERRITORY_REQUIRED = "territory_required"
    TERMINOLOGY_REQUIRED = "terminology_required"
    UNKNOWN_CATEGORY = "unknown_category"
    UNKNOWN_TERRITORY = "unknown_territory"

    # Content nodes and values
    EMPTY_ITEMS = "empty_items"
    SETTING_REQUIRED = "setting_required"
    END_BEFORE_START = "end_before_start"
    EMPTY_PARTICIPATIONS = "empty_participations"
    INVALID_VALUE = "invalid_value"


class StructuralValidityError(ValueError):
    """Raised when a value violates one of its construction invariants.

    Attributes:
        rule: The invariant that failed.
        details: Optional extra context (offending code, field name).
    """

    def __init__(self, rule: ValidityRule, message: str, details: str | None = None) -> None:
        self.rule = rule
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": str(self),
            "rule": self.rule.value,
            "details": self.details,
        }


class PathResolutionError(ValueError):
    """Raised when a path is malformed or addresses nothing.

    Attributes:
        path: The path (or item description) that failed.
        reason: Short explanation.
    """

    def __init__(self, path: Any, reason: str = "no item at path") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"invalid path: {path!r} ({reason})")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": str(self),
            "path": self.path if isinstance(self.path, str) else repr(self.path),
            "reason": self.reason,
        }
