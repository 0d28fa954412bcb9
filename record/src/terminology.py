"""Terminology capability consumed by composition validation.

Only two questions are ever asked: is a code part of a named group of a
terminology, and is a code part of a named code set. The service is
owned elsewhere and only read from here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from record.src.datatypes import CodePhrase
from shared.hardening import InputValidator

logger = logging.getLogger(__name__)

OPENEHR = "openehr"


@runtime_checkable
class TerminologyService(Protocol):
    """Membership queries against terminologies and code sets."""

    def has_code_for_group_name(self, code: CodePhrase, group_name: str, language: str) -> bool:
        """Check whether *code* belongs to *group_name* in the given language.

        Args:
            code: The code to look up.
            group_name: Group name in the terminology (e.g. "composition category").
            language: Language the group name is expressed in (e.g. "en").

        Returns:
            True if the group contains the code.
        """
        ...

    def code_set_has(self, code_set_id: str, code: CodePhrase) -> bool:
        """Check whether the code set *code_set_id* contains *code*.

        Args:
            code_set_id: Code set identifier (e.g. "countries").
            code: The code to look up.

        Returns:
            True if the code set contains the code.
        """
        ...


class InMemoryTerminologyService:
    """Terminology service backed by plain dictionaries.

    Args:
        groups: ``{group_name: {language: [code_string, ...]}}`` for the
            terminology named *terminology_id*.
        code_sets: ``{code_set_id: [CodePhrase, ...]}``.
        terminology_id: Terminology the group codes belong to.

    Example::

        service = InMemoryTerminologyService(
            groups={"composition category": {"en": ["433"]}},
            code_sets={"countries": [CodePhrase("ISO_3166-1", "SE")]},
        )
        service.code_set_has("countries", CodePhrase("ISO_3166-1", "SE"))
    """

    def __init__(
        self,
        groups: Mapping[str, Mapping[str, Iterable[str]]] | None = None,
        code_sets: Mapping[str, Iterable[CodePhrase]] | None = None,
        terminology_id: str = OPENEHR,
    ) -> None:
        self.terminology_id = terminology_id
        self._groups: dict[tuple[str, str], frozenset[str]] = {}
        for group_name, by_language in (groups or {}).items():
            for language, codes in by_language.items():
                self._groups[(group_name, language)] = frozenset(codes)
        self._code_sets: dict[str, frozenset[CodePhrase]] = {
            code_set_id: frozenset(codes) for code_set_id, codes in (code_sets or {}).items()
        }

    def has_code_for_group_name(self, code: CodePhrase, group_name: str, language: str) -> bool:
        if code.terminology_id != self.terminology_id:
            return False
        return code.code_string in self._groups.get((group_name, language), frozenset())

    def code_set_has(self, code_set_id: str, code: CodePhrase) -> bool:
        return code in self._code_sets.get(code_set_id, frozenset())

    @property
    def group_names(self) -> list[tuple[str, str]]:
        """(group name, language) pairs this service knows about."""
        return sorted(self._groups)

    @property
    def code_set_ids(self) -> list[str]:
        return sorted(self._code_sets)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InMemoryTerminologyService:
        """Build from a mapping.

        Expected shape::

            {
                "terminology_id": "openehr",
                "groups": {"composition category": {"en": ["431", "433"]}},
                "code_sets": {
                    "countries": {"terminology_id": "ISO_3166-1", "codes": ["SE", "GB"]}
                }
            }
        """
        code_sets: dict[str, list[CodePhrase]] = {}
        for code_set_id, code_set in data.get("code_sets", {}).items():
            code_sets[code_set_id] = [
                CodePhrase(code_set["terminology_id"], code) for code in code_set.get("codes", [])
            ]
        return cls(
            groups=data.get("groups", {}),
            code_sets=code_sets,
            terminology_id=data.get("terminology_id", OPENEHR),
        )

    @classmethod
    def from_json(cls, path: str | Path) -> InMemoryTerminologyService:
        """Load a service from a JSON file in the :meth:`from_dict` shape.

        Raises:
            ValidationError: If the path is unsafe or the file is not a JSON object.
        """
        data = InputValidator().validate_json_file(path)
        service = cls.from_dict(data)
        logger.info(
            "Loaded terminology from %s: %d groups, %d code sets",
            path,
            len(service.group_names),
            len(service.code_set_ids),
        )
        return service
