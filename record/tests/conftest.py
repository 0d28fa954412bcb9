"""Shared fixtures for record tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from record.src.composition import Composition
from record.src.config import RecordConfig
from record.src.content import EventContext, Section
from record.src.datatypes import CodePhrase, DvCodedText, DvText
from record.src.locatable import Archetyped
from record.src.terminology import InMemoryTerminologyService
from record.tests.builders import (
    COMPOSITION_ARCHETYPE,
    ENTRY_ARCHETYPE,
    RecordingTerminology,
    make_entry,
    make_link,
    make_section,
)


@pytest.fixture
def terminology() -> InMemoryTerminologyService:
    """Terminology with the three openEHR composition categories and a few countries."""
    return InMemoryTerminologyService(
        groups={"composition category": {"en": ["431", "433", "451"]}},
        code_sets={
            "countries": [
                CodePhrase("ISO_3166-1", "SE"),
                CodePhrase("ISO_3166-1", "GB"),
                CodePhrase("ISO_3166-1", "NO"),
            ]
        },
    )


@pytest.fixture
def recording_terminology() -> RecordingTerminology:
    return RecordingTerminology(categories={"431", "433"}, countries={"SE"})


@pytest.fixture
def persistent_config() -> RecordConfig:
    """Config where openEHR code 431 marks a persistent composition."""
    return RecordConfig(persistent_categories=frozenset({"431"}))


@pytest.fixture
def event_category() -> DvCodedText:
    return DvCodedText("event", CodePhrase("openehr", "433"))


@pytest.fixture
def persistent_category() -> DvCodedText:
    return DvCodedText("persistent", CodePhrase("openehr", "431"))


@pytest.fixture
def territory() -> CodePhrase:
    return CodePhrase("ISO_3166-1", "SE")


@pytest.fixture
def event_context() -> EventContext:
    return EventContext(
        start_time=datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc),
        end_time=datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc),
        setting=DvCodedText("primary medical care", CodePhrase("openehr", "228")),
        health_care_facility="Karolinska",
    )


@pytest.fixture
def section_a() -> Section:
    return make_section(
        "at0001",
        "Vital signs",
        items=[make_entry(ENTRY_ARCHETYPE, "Blood pressure")],
    )


@pytest.fixture
def section_b() -> Section:
    return make_section("at0002", "Plan", links=[make_link("ehr://plan/1")])


@pytest.fixture
def composition_kwargs(
    event_category: DvCodedText,
    territory: CodePhrase,
    event_context: EventContext,
    section_a: Section,
    section_b: Section,
    terminology: InMemoryTerminologyService,
) -> dict[str, Any]:
    """Keyword arguments for a valid Composition.create call."""
    return {
        "archetype_node_id": COMPOSITION_ARCHETYPE,
        "name": DvText("Encounter"),
        "archetype_details": Archetyped(COMPOSITION_ARCHETYPE),
        "content": [section_a, section_b],
        "context": event_context,
        "category": event_category,
        "territory": territory,
        "terminology": terminology,
    }


@pytest.fixture
def composition(composition_kwargs: dict[str, Any]) -> Composition:
    return Composition.create(**composition_kwargs)
