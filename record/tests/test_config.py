"""Tests for RecordConfig."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from record.src.config import DEFAULT_CONFIG, RecordConfig
from record.src.datatypes import CodePhrase, DvCodedText
from shared.hardening import ValidationError


class TestRecordConfig:
    """Defaults, persistence policy and loading."""

    def test_defaults(self):
        assert DEFAULT_CONFIG.terminology_id == "openehr"
        assert DEFAULT_CONFIG.category_group == "composition category"
        assert DEFAULT_CONFIG.category_language == "en"
        assert DEFAULT_CONFIG.territory_code_set == "countries"
        assert DEFAULT_CONFIG.persistent_categories == frozenset()

    def test_nothing_persistent_by_default(self, persistent_category):
        assert DEFAULT_CONFIG.is_persistent(persistent_category) is False
        assert DEFAULT_CONFIG.is_persistent(None) is False

    def test_persistent_codes(self, persistent_config, persistent_category, event_category):
        assert persistent_config.is_persistent(persistent_category) is True
        assert persistent_config.is_persistent(event_category) is False

    def test_persistent_code_needs_matching_terminology(self, persistent_config):
        local = DvCodedText("persistent", CodePhrase("local", "431"))
        assert persistent_config.is_persistent(local) is False

    def test_codes_accept_any_iterable(self):
        config = RecordConfig(persistent_categories=["431"])  # type: ignore[arg-type]
        assert config.persistent_categories == frozenset({"431"})

    def test_dict_roundtrip(self, persistent_config):
        assert RecordConfig.from_dict(persistent_config.to_dict()) == persistent_config

    def test_from_dict_partial(self):
        config = RecordConfig.from_dict({"category_language": "sv"})
        assert config.category_language == "sv"
        assert config.territory_code_set == "countries"

    def test_from_json(self, tmp_path: Path):
        path = tmp_path / "record.json"
        path.write_text(json.dumps({"persistent_categories": ["431"]}), encoding="utf-8")
        assert RecordConfig.from_json(path).persistent_categories == frozenset({"431"})

    def test_from_json_rejects_traversal(self, tmp_path: Path):
        with pytest.raises(ValidationError):
            RecordConfig.from_json(f"{tmp_path}/../record.json")
