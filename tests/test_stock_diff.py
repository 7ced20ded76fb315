"""
Unit tests for the stock diff engine.

These tests verify that:
1. Diffing is deterministic (same inputs → same entries, same order)
2. A missing baseline yields no changes unless REPORT_ALL is requested
3. Every differing (category, name) pair gets exactly one entry
4. Quantities are compared by strict equality
"""

import pytest

from stockwatch.diff.stock_diff import (
    diff,
    diff_category,
    build_lookup,
    item_key,
    quantities_equal,
    ChangeKind,
    ChangeEntry,
    ChangeSet,
    BaselinePolicy,
    EMPTY_CHANGE_SET,
)
from stockwatch.schema import CATEGORY_ORDER, CategoryConfigError
from stockwatch.snapshot import Item, Snapshot, normalize


# =============================================================================
# FIXTURES
# =============================================================================

def make_snapshot(**categories) -> Snapshot:
    """Helper to build snapshots from raw-style records, e.g. seeds=[("A", "1")]."""
    raw = {}
    for category, pairs in categories.items():
        raw[category] = [{"name": name, "value": value} for name, value in pairs]
    return normalize(raw)


@pytest.fixture
def mixed_pair():
    """Two snapshots touching several categories with every change kind."""
    previous = make_snapshot(
        seeds=[("Carrot", "5"), ("Tomato", "2"), ("Corn", "1")],
        gear=[("Trowel", "3")],
        eggs=[("Common Egg", "1")],
    )
    current = make_snapshot(
        seeds=[("Blueberry", "4"), ("Carrot", "7"), ("Corn", "1")],
        gear=[("Trowel", "3"), ("Sprinkler", "1")],
        cosmetics=[("Sign", "1")],
    )
    return previous, current


def signature(entry: ChangeEntry):
    return (entry.category, entry.item, entry.kind)


# =============================================================================
# CONCRETE SCENARIOS
# =============================================================================

class TestScenarios:
    """The canonical single-category and multi-category cases."""

    def test_unchanged_quantity(self):
        """Identical snapshots produce no entries."""
        previous = make_snapshot(seeds=[("Carrot", "5")])
        current = make_snapshot(seeds=[("Carrot", "5")])

        result = diff(previous, current)

        assert result.has_changes is False
        assert result.entries == ()

    def test_quantity_changed(self):
        """A different quantity for the same name is QUANTITY_CHANGED."""
        previous = make_snapshot(seeds=[("Carrot", "5")])
        current = make_snapshot(seeds=[("Carrot", "8")])

        result = diff(previous, current)

        assert len(result) == 1
        entry = result.entries[0]
        assert entry.kind == ChangeKind.QUANTITY_CHANGED
        assert entry.item == "Carrot"
        assert entry.old_value == "5"
        assert entry.new_value == "8"
        assert entry.category == "seeds"

    def test_item_added(self):
        """A name only in the current snapshot is ADDED."""
        previous = make_snapshot(seeds=[])
        current = make_snapshot(seeds=[("Tomato", "3")])

        result = diff(previous, current)

        assert len(result) == 1
        entry = result.entries[0]
        assert entry.kind == ChangeKind.ADDED
        assert entry.item == "Tomato"
        assert entry.value == "3"

    def test_item_removed(self):
        """A name only in the previous snapshot is REMOVED."""
        previous = make_snapshot(seeds=[("Tomato", "3")])
        current = make_snapshot(seeds=[])

        result = diff(previous, current)

        assert len(result) == 1
        entry = result.entries[0]
        assert entry.kind == ChangeKind.REMOVED
        assert entry.item == "Tomato"
        assert entry.value == "3"

    def test_no_baseline(self):
        """No previous snapshot means no diff by default."""
        current = make_snapshot(seeds=[("Tomato", "3")])

        result = diff(None, current)

        assert result.has_changes is False
        assert result.entries == ()
        assert result is EMPTY_CHANGE_SET

    def test_multi_category_only_changed_category_reports(self):
        """Only the category that changed produces an entry."""
        previous = make_snapshot(seeds=[("A", "1")], gear=[("X", "2")])
        current = make_snapshot(seeds=[("A", "1")], gear=[("X", "9")])

        result = diff(previous, current)

        assert len(result) == 1
        entry = result.entries[0]
        assert entry.category == "gear"
        assert entry.item == "X"
        assert entry.kind == ChangeKind.QUANTITY_CHANGED
        assert (entry.old_value, entry.new_value) == ("2", "9")


# =============================================================================
# PROPERTIES
# =============================================================================

class TestProperties:
    """Structural guarantees that hold for any pair of snapshots."""

    def test_deterministic(self, mixed_pair):
        """Diffing the same pair twice gives identical results."""
        previous, current = mixed_pair

        assert diff(previous, current) == diff(previous, current)
        assert diff(previous, current).to_dict() == diff(previous, current).to_dict()

    def test_self_diff_is_empty(self, mixed_pair):
        """A snapshot compared to itself never has changes."""
        previous, current = mixed_pair

        assert diff(previous, previous).has_changes is False
        assert diff(current, current).has_changes is False

    def test_no_baseline_for_any_snapshot(self, mixed_pair):
        for snapshot in mixed_pair:
            assert diff(None, snapshot).entries == ()

    def test_kinds_match_presence(self, mixed_pair):
        """ADDED/REMOVED/QUANTITY_CHANGED agree with where the name appears."""
        previous, current = mixed_pair

        for entry in diff(previous, current):
            old = build_lookup(previous.items(entry.category))
            new = build_lookup(current.items(entry.category))
            key = item_key(entry.item)
            if entry.kind == ChangeKind.ADDED:
                assert key not in old and key in new
            elif entry.kind == ChangeKind.REMOVED:
                assert key in old and key not in new
            else:
                assert key in old and key in new
                assert not quantities_equal(old[key].quantity, new[key].quantity)

    def test_completeness(self, mixed_pair):
        """Exactly the differing names produce entries, one each."""
        previous, current = mixed_pair

        expected = set()
        for category in CATEGORY_ORDER:
            old = build_lookup(previous.items(category))
            new = build_lookup(current.items(category))
            for key in set(old) | set(new):
                if key not in old or key not in new or old[key].quantity != new[key].quantity:
                    expected.add((category, key[1]))

        entries = diff(previous, current).entries
        actual = [(e.category, e.item) for e in entries]

        assert len(actual) == len(set(actual))
        assert set(actual) == expected

    def test_entry_order(self, mixed_pair):
        """Category order, then additions/changes in current order, then removals."""
        previous, current = mixed_pair

        result = diff(previous, current)

        assert [signature(e) for e in result] == [
            ("seeds", "Blueberry", ChangeKind.ADDED),
            ("seeds", "Carrot", ChangeKind.QUANTITY_CHANGED),
            ("seeds", "Tomato", ChangeKind.REMOVED),
            ("gear", "Sprinkler", ChangeKind.ADDED),
            ("eggs", "Common Egg", ChangeKind.REMOVED),
            ("cosmetics", "Sign", ChangeKind.ADDED),
        ]


# =============================================================================
# EDGE CASES
# =============================================================================

class TestEdgeCases:
    """Duplicate names, equality semantics, degenerate records."""

    def test_duplicate_names_last_write_wins(self):
        """The last quantity for a repeated name is the one compared."""
        previous = make_snapshot(seeds=[("Carrot", "1"), ("Carrot", "5")])
        current = make_snapshot(seeds=[("Carrot", "5")])

        assert diff(previous, current).has_changes is False

    def test_duplicate_names_emit_single_entry(self):
        previous = make_snapshot(seeds=[])
        current = make_snapshot(seeds=[("Carrot", "1"), ("Carrot", "2")])

        result = diff(previous, current)

        assert len(result) == 1
        assert result.entries[0].value == "2"

    def test_build_lookup_keeps_first_position(self):
        lookup = build_lookup([Item("A", 1), Item("B", 2), Item("A", 3)])

        assert [(item.name, item.quantity) for item in lookup.values()] == [("A", 3), ("B", 2)]

    def test_string_quantities_not_coerced(self):
        """"5" and "5.0" are different quantities."""
        previous = make_snapshot(seeds=[("Carrot", "5")])
        current = make_snapshot(seeds=[("Carrot", "5.0")])

        result = diff(previous, current)

        assert len(result) == 1
        assert result.entries[0].kind == ChangeKind.QUANTITY_CHANGED

    def test_string_and_number_differ(self):
        previous = make_snapshot(seeds=[("Carrot", "5")])
        current = make_snapshot(seeds=[("Carrot", 5)])

        assert diff(previous, current).has_changes is True

    def test_number_and_boolean_differ(self):
        """1 -> true is a change even though Python says 1 == True."""
        previous = make_snapshot(seeds=[("Carrot", 1)])
        current = make_snapshot(seeds=[("Carrot", True)])

        result = diff(previous, current)

        assert len(result) == 1
        assert result.entries[0].old_value == 1
        assert result.entries[0].new_value is True

    def test_int_and_float_are_same_number(self):
        """JSON has a single number type, so 5 and 5.0 are equal."""
        previous = make_snapshot(seeds=[("Carrot", 5)])
        current = make_snapshot(seeds=[("Carrot", 5.0)])

        assert diff(previous, current).has_changes is False

    def test_nan_quantity_self_diff_is_empty(self):
        snapshot = make_snapshot(seeds=[("Carrot", float("nan"))])

        assert diff(snapshot, snapshot).has_changes is False
        assert diff(snapshot, make_snapshot(seeds=[("Carrot", float("nan"))])).has_changes is False

    def test_nan_to_number_is_a_change(self):
        previous = make_snapshot(seeds=[("Carrot", float("nan"))])
        current = make_snapshot(seeds=[("Carrot", 3)])

        assert len(diff(previous, current)) == 1

    def test_numeric_and_boolean_names_stay_apart(self):
        """Names 1 and True are different items."""
        current = make_snapshot(seeds=[(1, "a"), (True, "b")])

        result = diff(Snapshot(), current)

        assert [(e.item, e.value) for e in result] == [(1, "a"), (True, "b")]
        assert result.entries[1].item is True

    def test_nested_quantities_compared_strictly(self):
        assert quantities_equal({"stock": [1, 2]}, {"stock": [1.0, 2]}) is True
        assert quantities_equal({"stock": [1, 2]}, {"stock": [True, 2]}) is False
        assert quantities_equal([1], [1, 1]) is False

    def test_item_key(self):
        assert item_key(1) != item_key(True)
        assert item_key(1) == item_key(1.0)
        assert item_key(float("nan")) == item_key(float("nan"))

    def test_missing_category_is_empty(self):
        """A category absent on both sides contributes nothing."""
        previous = normalize({"seedsStock": [{"name": "A", "value": "1"}]})
        current = normalize({"seedsStock": [{"name": "A", "value": "1"}], "eggStock": None})

        assert diff(previous, current).has_changes is False

    def test_empty_vs_absent_category(self):
        """An empty list and a missing key are the same thing."""
        previous = normalize({"gearStock": []})
        current = normalize({})

        assert diff(previous, current).has_changes is False

    def test_missing_name_is_a_regular_key(self):
        """Records without a name are keyed by None, not dropped."""
        previous = normalize({"seedsStock": [{"value": "1"}]})
        current = normalize({"seedsStock": [{"value": "2"}]})

        result = diff(previous, current)

        assert len(result) == 1
        assert result.entries[0].item is None
        assert result.entries[0].kind == ChangeKind.QUANTITY_CHANGED

    def test_diff_category_directly(self):
        entries = diff_category("eggs", [Item("Bug Egg", "1")], [])

        assert len(entries) == 1
        assert entries[0].category_name == "Eggs"
        assert entries[0].emoji == "🥚"

    def test_diff_category_unknown_category(self):
        with pytest.raises(CategoryConfigError):
            diff_category("plants", [], [Item("A", "1")])


# =============================================================================
# BASELINE POLICY
# =============================================================================

class TestBaselinePolicy:
    """No-baseline behavior is configurable."""

    def test_silent_is_default(self):
        current = make_snapshot(seeds=[("Tomato", "3")])

        assert diff(None, current, BaselinePolicy.SILENT).has_changes is False

    def test_report_all_lists_every_item_as_added(self):
        current = make_snapshot(
            seeds=[("Tomato", "3"), ("Carrot", "1")],
            eggs=[("Common Egg", "2")],
        )

        result = diff(None, current, BaselinePolicy.REPORT_ALL)

        assert [signature(e) for e in result] == [
            ("seeds", "Tomato", ChangeKind.ADDED),
            ("seeds", "Carrot", ChangeKind.ADDED),
            ("eggs", "Common Egg", ChangeKind.ADDED),
        ]

    def test_report_all_ignored_with_baseline(self):
        snapshot = make_snapshot(seeds=[("Tomato", "3")])

        assert diff(snapshot, snapshot, BaselinePolicy.REPORT_ALL).has_changes is False


# =============================================================================
# SERIALIZATION
# =============================================================================

class TestSerialization:
    """Change-log record shape."""

    def test_changed_entry_to_dict(self):
        previous = make_snapshot(seeds=[("Carrot", "5")])
        current = make_snapshot(seeds=[("Carrot", "8")])

        record = diff(previous, current).entries[0].to_dict()

        assert record == {
            "type": "changed",
            "category": "Seeds",
            "emoji": "🌱",
            "item": "Carrot",
            "oldValue": "5",
            "newValue": "8",
        }

    def test_added_entry_to_dict(self):
        current = make_snapshot(gear=[("Trowel", "2")])

        record = diff(Snapshot(), current).entries[0].to_dict()

        assert record == {
            "type": "added",
            "category": "Gear",
            "emoji": "⚙️",
            "item": "Trowel",
            "value": "2",
        }

    def test_from_dict_restores_entry(self):
        previous = make_snapshot(cosmetics=[("Sign", "1")])
        entry = diff(previous, Snapshot()).entries[0]

        assert ChangeEntry.from_dict(entry.to_dict()) == entry

    def test_from_dict_unknown_category(self):
        with pytest.raises(CategoryConfigError):
            ChangeEntry.from_dict({"type": "added", "category": "Plants", "item": "A", "value": 1})

    def test_change_set_to_dict(self):
        change_set = diff(make_snapshot(seeds=[("A", "1")]), make_snapshot())

        assert change_set.to_dict() == {
            "hasChanges": True,
            "changeCount": 1,
            "changes": [{
                "type": "removed",
                "category": "Seeds",
                "emoji": "🌱",
                "item": "A",
                "value": "1",
            }],
        }

    def test_empty_change_set(self):
        assert ChangeSet().has_changes is False
        assert ChangeSet().to_dict()["changeCount"] == 0
