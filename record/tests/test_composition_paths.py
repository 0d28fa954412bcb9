"""Tests for path resolution and canonical paths on compositions."""

from __future__ import annotations

import pytest

from record.src.composition import Composition
from record.src.errors import PathResolutionError
from record.tests.builders import (
    COMPOSITION_ARCHETYPE,
    ENTRY_ARCHETYPE,
    make_entry,
    make_link,
    make_section,
)

WHOLE = f"/[{COMPOSITION_ARCHETYPE}]"


# ===================================================================
# item_at_path
# ===================================================================


class TestItemAtPath:
    """Resolution of paths to items."""

    def test_root_resolves_to_composition(self, composition):
        assert composition.item_at_path("/") is composition

    def test_own_prefix_resolves_to_composition(self, composition):
        assert composition.item_at_path(WHOLE) is composition

    def test_content_by_node_id(self, composition, section_a, section_b):
        assert composition.item_at_path("/content[at0001]") is section_a
        assert composition.item_at_path("/content[at0002]") is section_b

    def test_own_prefix_is_stripped(self, composition, section_b):
        assert composition.item_at_path(WHOLE + "/content[at0002]") is section_b

    def test_content_by_position(self, composition, section_b):
        assert composition.item_at_path("/content[2]") is section_b

    def test_content_by_node_id_and_name(self, composition, section_a):
        assert composition.item_at_path("/content[at0001, 'Vital signs']") is section_a

    def test_name_mismatch_misses(self, composition):
        with pytest.raises(PathResolutionError):
            composition.item_at_path("/content[at0001, 'Plan']")

    def test_nested_entry(self, composition, section_a):
        entry = composition.item_at_path(f"/content[at0001]/items[{ENTRY_ARCHETYPE}]")
        assert entry is section_a.items[0]

    def test_link_of_section(self, composition, section_b):
        link = composition.item_at_path("/content[at0002]/links[1]")
        assert link in section_b.links

    def test_link_of_composition(self, composition_kwargs):
        link = make_link("ehr://problem/7")
        composition_kwargs["links"] = [link]
        comp = Composition.create(**composition_kwargs)
        assert comp.item_at_path("/links[1]") == link
        assert comp.item_at_path(WHOLE + "/links[1]") == link

    def test_base_resolution_wins(self, composition_kwargs):
        link = make_link("ehr://problem/7")
        composition_kwargs["links"] = [link]
        comp = Composition.create(**composition_kwargs)
        assert comp.base.item_at_path("/links[1]") == link
        assert comp.item_at_path("/links[1]") is comp.base.item_at_path("/links[1]")

    def test_duplicate_node_ids_pick_first(self, composition_kwargs):
        first = make_section("at0001", "First")
        second = make_section("at0001", "Second")
        composition_kwargs["content"] = [first, second]
        comp = Composition.create(**composition_kwargs)
        assert comp.item_at_path("/content[at0001]") is first
        assert comp.item_at_path("/content[at0001, 2]") is second
        assert comp.item_at_path("/content[at0001, 'Second']") is second

    @pytest.mark.parametrize(
        "path",
        [
            "",
            "content[at0001]",
            "/content",
            "/content[at0003]",
            "/content[0]",
            "/content[3]",
            "/content[at0001]/",
            "/content[at0001",
            "/items[at0001]",
            "/context",
            "/content[at0001]/links[1]",
            "/content[at0002]/links[2]",
            "/content[at0002]/links[1]/items[at0001]",
            "/content[at0001]/items[at9999]",
            "//content[at0001]",
        ],
    )
    def test_invalid_paths_raise(self, composition, path):
        with pytest.raises(PathResolutionError):
            composition.item_at_path(path)

    def test_none_path_raises(self, composition):
        with pytest.raises(PathResolutionError):
            composition.item_at_path(None)  # type: ignore[arg-type]

    def test_no_content_only_root_resolves(self, composition_kwargs):
        composition_kwargs["content"] = None
        comp = Composition.create(**composition_kwargs)
        assert comp.item_at_path("/") is comp
        with pytest.raises(PathResolutionError):
            comp.item_at_path("/content[1]")


# ===================================================================
# valid_path
# ===================================================================


class TestValidPath:
    """valid_path agrees with item_at_path."""

    def test_matching_path(self, composition):
        assert composition.valid_path("/content[at0002]") is True

    def test_non_matching_path(self, composition):
        assert composition.valid_path("/content[at0404]") is False

    def test_malformed_path(self, composition):
        assert composition.valid_path("not a path") is False

    def test_root(self, composition):
        assert composition.valid_path("/") is True


# ===================================================================
# path_of_item
# ===================================================================


class TestPathOfItem:
    """Canonical paths of items in the tree."""

    def test_root_path(self, composition):
        assert composition.path_of_item(composition) == "/"

    def test_section_path(self, composition, section_b):
        path = composition.path_of_item(section_b)
        assert path == "/content[at0002]"
        assert composition.item_at_path(path) is section_b

    def test_entry_path(self, composition, section_a):
        entry = section_a.items[0]
        path = composition.path_of_item(entry)
        assert path == f"/content[at0001]/items[{ENTRY_ARCHETYPE}]"
        assert composition.item_at_path(path) is entry

    def test_link_path(self, composition, section_b):
        (link,) = section_b.links
        path = composition.path_of_item(link)
        assert path == "/content[at0002]/links[1]"
        assert composition.item_at_path(path) == link

    def test_siblings_with_same_node_id(self, composition_kwargs):
        first = make_section("at0001", "A")
        second = make_section("at0001", "B")
        third = make_section("at0001", "B")
        composition_kwargs["content"] = [first, second, third]
        comp = Composition.create(**composition_kwargs)

        assert comp.path_of_item(first) == "/content[at0001]"
        assert comp.path_of_item(second) == "/content[at0001, 'B']"
        assert comp.path_of_item(third) == "/content[at0001, 3]"
        for section in (first, second, third):
            assert comp.item_at_path(comp.path_of_item(section)) is section

    def test_name_with_quote_is_escaped(self, composition_kwargs):
        first = make_section("at0001", "General")
        quoted = make_section("at0001", "Patient's plan")
        composition_kwargs["content"] = [first, quoted]
        comp = Composition.create(**composition_kwargs)
        path = comp.path_of_item(quoted)
        assert path == "/content[at0001, 'Patient\\'s plan']"
        assert comp.item_at_path(path) is quoted

    @pytest.mark.parametrize(
        "node_id", ["at0001", "openEHR-EHR-SECTION.summary.v1", "aé_1", "A.b-c_9"]
    )
    def test_any_accepted_node_id_round_trips(self, composition_kwargs, node_id):
        child = make_section(node_id, "Child")
        composition_kwargs["content"] = [child]
        comp = Composition.create(**composition_kwargs)
        assert comp.path_of_item(child) == f"/content[{node_id}]"
        assert comp.item_at_path(comp.path_of_item(child)) is child

    def test_whitespace_inside_closing_bracket_is_malformed(self, composition):
        with pytest.raises(PathResolutionError) as excinfo:
            composition.item_at_path("/content[at0002 ]")
        assert excinfo.value.reason == "malformed path"

    def test_equal_value_found_by_equality(self, composition):
        copy = make_section("at0002", "Plan", links=[make_link("ehr://plan/1")])
        assert composition.path_of_item(copy) == "/content[at0002]"

    def test_item_outside_tree_raises(self, composition):
        with pytest.raises(PathResolutionError):
            composition.path_of_item(make_section("at0042", "Elsewhere"))

    def test_second_section_round_trips(self, composition, section_b):
        path = composition.path_of_item(section_b)
        assert isinstance(path, str)
        assert composition.item_at_path(path) is section_b


# ===================================================================
# walk
# ===================================================================


class TestWalk:
    """Enumeration of every addressable item."""

    def test_walk_order(self, composition, section_a, section_b):
        items = [item for _, item in composition.walk()]
        assert items[0] is section_a
        assert items[1] is section_a.items[0]
        assert items[2] is section_b
        assert len(items) == 4

    def test_every_walked_path_resolves(self, composition):
        for path, item in composition.walk():
            assert composition.item_at_path(path) == item
            assert composition.path_of_item(item) == path

    def test_deep_tree(self, composition_kwargs):
        leaf = make_entry(ENTRY_ARCHETYPE, "Pulse")
        inner = make_section("at0010", "Inner", items=[leaf])
        outer = make_section("at0001", "Outer", items=[inner])
        composition_kwargs["content"] = [outer]
        comp = Composition.create(**composition_kwargs)
        path = comp.path_of_item(leaf)
        assert path == f"/content[at0001]/items[at0010]/items[{ENTRY_ARCHETYPE}]"
        assert comp.item_at_path(path) is leaf
