"""Boundary hardening for the record core.

Provides user-friendly formatting of record errors and input validation
(path traversal prevention, JSON object loading) for files handed to the
library, such as terminology tables and configuration.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 1. Error Formatting
# ---------------------------------------------------------------------------


@dataclass
class UserFriendlyError:
    """A structured error designed for end-user consumption.

    Attributes:
        message: Clear description for the user.
        suggestion: Actionable guidance.
        component: Originating subsystem (composition, paths, terminology).
        error_code: Machine-readable identifier (e.g. "COMP_007").
        technical_detail: Debugging info for logs only -- never shown to users.
    """

    message: str
    suggestion: str
    component: str
    error_code: str
    technical_detail: str = ""

    def to_dict(self) -> dict[str, str]:
        """Serialize for display (excludes technical_detail).

        Returns:
            Dictionary safe for sending to end users.
        """
        return {
            "message": self.message,
            "suggestion": self.suggestion,
            "component": self.component,
            "error_code": self.error_code,
        }


# rule value -> (message, suggestion, code suffix)
_RULE_MESSAGES: dict[str, tuple[str, str, str]] = {
    "node_id_required": (
        "The document has no archetype node id.",
        "Set the archetype node id of the document root.",
        "001",
    ),
    "name_required": (
        "The document has no name.",
        "Give the document a display name.",
        "002",
    ),
    "archetype_details_required": (
        "The document has no archetype details.",
        "Attach the archetype metadata the document was built from.",
        "003",
    ),
    "empty_links": (
        "The document has an empty list of links.",
        "Leave links out entirely, or add at least one link.",
        "004",
    ),
    "not_archetype_root": (
        "The document is not the root of its archetype.",
        "Only an archetype root node can be stored as a document.",
        "005",
    ),
    "empty_content": (
        "The document has an empty content list.",
        "Leave content out entirely, or add at least one section.",
        "006",
    ),
    "persistent_with_context": (
        "A persistent document cannot have an event context.",
        "Remove the context or choose a non-persistent category.",
        "007",
    ),
    "category_required": (
        "The document has no category.",
        "Set a category such as 'event' or 'persistent'.",
        "008",
    ),
    "territory_required": (
        "The document has no territory.",
        "Set the country the document was written in.",
        "009",
    ),
    "terminology_required": (
        "No terminology service was available to check the document.",
        "Configure a terminology service before creating documents.",
        "010",
    ),
    "unknown_category": (
        "The document category is not a known composition category.",
        "Check the category code against the terminology.",
        "011",
    ),
    "unknown_territory": (
        "The document territory is not a known country code.",
        "Use an ISO 3166-1 country code.",
        "012",
    ),
    "empty_items": (
        "A section in the document has an empty list of items.",
        "Leave the items out entirely, or add at least one entry.",
        "013",
    ),
    "setting_required": (
        "The document's event context has no care setting.",
        "Set the care setting the session took place in.",
        "014",
    ),
    "end_before_start": (
        "The document's event context ends before it starts.",
        "Check the start and end times of the session.",
        "015",
    ),
    "empty_participations": (
        "The document's event context has an empty list of participants.",
        "Leave participants out entirely, or add at least one.",
        "016",
    ),
    "invalid_value": (
        "A value in the document has the wrong form.",
        "Check identifiers, names and codes against the expected format.",
        "017",
    ),
}


class ErrorFormatter:
    """Convert record errors to user-friendly messages.

    All methods return a ``UserFriendlyError`` and never expose internal
    paths, stack traces, or implementation details to the end user.
    """

    def format_validity_error(self, error: Exception) -> UserFriendlyError:
        """Format a document construction error.

        Args:
            error: The caught exception.

        Returns:
            User-friendly error with actionable suggestion.
        """
        return self._format(error, component="composition", code_prefix="COMP")

    def format_path_error(self, error: Exception) -> UserFriendlyError:
        """Format a path resolution error.

        Args:
            error: The caught exception.

        Returns:
            User-friendly error with actionable suggestion.
        """
        return self._format(error, component="paths", code_prefix="PATH")

    def format_terminology_error(self, error: Exception) -> UserFriendlyError:
        """Format an error raised while loading terminology data.

        Args:
            error: The caught exception.

        Returns:
            User-friendly error with actionable suggestion.
        """
        return self._format(error, component="terminology", code_prefix="TERM")

    # ------------------------------------------------------------------

    def _format(
        self,
        error: Exception,
        *,
        component: str,
        code_prefix: str,
    ) -> UserFriendlyError:
        """Shared formatting logic.

        Args:
            error: The caught exception.
            component: Subsystem name.
            code_prefix: Short prefix for error code.

        Returns:
            Structured error with safe user message.
        """
        message, suggestion, code_suffix = _classify_error(error)
        logger.debug("Formatting %s error: %r", component, error)
        return UserFriendlyError(
            message=message,
            suggestion=suggestion,
            component=component,
            error_code=f"{code_prefix}_{code_suffix}",
            technical_detail=repr(error),
        )


def _classify_error(error: Exception) -> tuple[str, str, str]:
    """Map an exception to (message, suggestion, code_suffix).

    Record errors are recognised by their attributes so this module does
    not import the record package.

    Args:
        error: The caught exception.

    Returns:
        Tuple of user message, suggestion text, and error code suffix.
    """
    rule = getattr(error, "rule", None)
    if rule is not None:
        known = _RULE_MESSAGES.get(getattr(rule, "value", rule))
        if known is not None:
            return known
        return (
            "A part of the document is not valid.",
            "Check the values of the reported item and try again.",
            "099",
        )
    if hasattr(error, "path") and hasattr(error, "reason"):
        if error.reason == "malformed path":  # type: ignore[attr-defined]
            return (
                "The path is not written correctly.",
                "Paths look like /content[at0001]/items[at0002].",
                "001",
            )
        return (
            "Nothing exists at the requested path.",
            "Check the path against the document structure.",
            "002",
        )
    if isinstance(error, ValidationError):
        return (
            "An input file was rejected.",
            "Check that the file exists and contains a JSON object.",
            "001",
        )
    if isinstance(error, FileNotFoundError):
        return (
            "A required file could not be found.",
            "Check that the file path is correct and the file exists.",
            "002",
        )
    if isinstance(error, (KeyError, TypeError, ValueError)):
        return (
            "Invalid input was provided.",
            "Check the input values and try again.",
            "005",
        )
    return (
        "An unexpected error occurred.",
        "If this keeps happening, please report the issue.",
        "999",
    )


# ---------------------------------------------------------------------------
# 2. Input Validation
# ---------------------------------------------------------------------------

# Characters that could be used for path traversal
_TRAVERSAL_PATTERN = re.compile(r"(\.\.[\\/]|[\\/]\.\.)")
# Null bytes in paths
_NULL_BYTE = re.compile(r"\x00")


class ValidationError(Exception):
    """Raised when input validation fails."""


class InputValidator:
    """Validate inputs at system boundaries.

    All methods raise ``ValidationError`` on failure.
    """

    def validate_file_path(
        self,
        path: str | Path,
        *,
        must_exist: bool = True,
        allowed_extensions: tuple[str, ...] | None = None,
        base_directory: Path | None = None,
    ) -> Path:
        """Validate a file path, preventing traversal attacks.

        Args:
            path: Raw path from user input.
            must_exist: Require the file to exist on disk.
            allowed_extensions: Restrict to these suffixes (e.g. (".json",)).
            base_directory: Confine resolved path under this directory.

        Returns:
            Resolved, validated Path.

        Raises:
            ValidationError: On any validation failure.
        """
        raw = str(path)
        self._check_traversal(raw)
        resolved = Path(raw).resolve()

        if base_directory is not None:
            base = base_directory.resolve()
            if not _is_subpath(resolved, base):
                raise ValidationError("Path is outside the allowed directory.")

        if allowed_extensions is not None:
            if resolved.suffix.lower() not in {e.lower() for e in allowed_extensions}:
                allowed = ", ".join(allowed_extensions)
                raise ValidationError(f"File type not allowed. Accepted types: {allowed}")

        if must_exist and not resolved.is_file():
            raise ValidationError("File does not exist.")

        return resolved

    def validate_json_file(
        self,
        path: str | Path,
        *,
        base_directory: Path | None = None,
    ) -> dict[str, Any]:
        """Read a JSON file that must hold a single object.

        Args:
            path: Path to the JSON file.
            base_directory: Confine resolved path under this directory.

        Returns:
            The parsed object.

        Raises:
            ValidationError: On path, encoding, or format errors.
        """
        validated_path = self.validate_file_path(
            path,
            must_exist=True,
            allowed_extensions=(".json",),
            base_directory=base_directory,
        )
        try:
            with open(validated_path, encoding="utf-8") as fh:
                data = json.load(fh)
        except UnicodeDecodeError as exc:
            raise ValidationError("File is not valid UTF-8 text.") from exc
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Invalid JSON on line {exc.lineno}.") from exc
        if not isinstance(data, dict):
            raise ValidationError("File does not contain a JSON object.")
        return data

    # ------------------------------------------------------------------

    @staticmethod
    def _check_traversal(raw: str) -> None:
        """Reject paths with traversal sequences or null bytes.

        Args:
            raw: Raw path string.

        Raises:
            ValidationError: On dangerous patterns.
        """
        if _NULL_BYTE.search(raw):
            raise ValidationError("Path contains null bytes.")
        if _TRAVERSAL_PATTERN.search(raw):
            raise ValidationError("Path traversal is not allowed.")


def _is_subpath(child: Path, parent: Path) -> bool:
    """Return True when *child* is under *parent*.

    Args:
        child: Resolved candidate path.
        parent: Resolved base directory.

    Returns:
        True if child is equal to or nested inside parent.
    """
    try:
        child.relative_to(parent)
        return True
    except ValueError:
        return False
