"""
Tests for the LAST_DISSENTING_WINS scalar field merge.
"""

import pytest

from leveledresolver.records import EntityKey, LeveledItemFlag
from leveledresolver.resolver.fields import FieldMerger, last_dissenting

from conftest import MOD_A, MOD_B, MOD_C, PATCH, SKYRIM, version

GLOBAL_A = EntityKey(MOD_A, 0x900)
GLOBAL_B = EntityKey(MOD_B, 0x901)


class TestLastDissenting:
    """Test the bare policy function."""

    def test_all_equal_keeps_base(self):
        """Nothing differs from the base, the base value stays."""
        assert last_dissenting([5, 5, 5], 5) == 5

    def test_last_differing_wins(self):
        """The last value that differs from the base wins."""
        assert last_dissenting([10, 5, 20, 5], 5) == 20

    def test_empty_values_skipped_when_asked(self):
        """None and empty strings never win when skip_empty is set."""
        assert last_dissenting(["A", None, ""], "Base", skip_empty=True) == "A"
        assert last_dissenting(["A", None], "Base") is None


class TestFieldMerger:
    """Test merging whole record versions."""

    def test_chance_none(self):
        """The later dissenting chance wins over an earlier one."""
        base = version(SKYRIM, chance_none=0)
        merger = FieldMerger(base, [version(MOD_A, chance_none=25), version(MOD_B, chance_none=50)])
        assert merger.chance_none() == 50

    def test_reverting_to_base_does_not_win(self):
        """An extent carrying the base value cannot undo another's change."""
        base = version(SKYRIM, chance_none=0)
        merger = FieldMerger(base, [version(MOD_A, chance_none=25), version(MOD_B, chance_none=0)])
        assert merger.chance_none() == 25

    def test_global_link(self):
        """A nullable link merges like any other value."""
        base = version(SKYRIM)
        merger = FieldMerger(base, [version(MOD_A, global_link=GLOBAL_A), version(MOD_B)])
        assert merger.global_link() == GLOBAL_A

    def test_global_link_none_means_null(self):
        """Passing None as a link stores the null link."""
        assert version(SKYRIM, global_link=None).global_link.is_null

    def test_flags(self):
        """Flag sets are compared as whole values."""
        base = version(SKYRIM, flags=LeveledItemFlag.CALCULATE_FROM_ALL_LEVELS_LE_PC_LEVEL)
        use_all = LeveledItemFlag.CALCULATE_FROM_ALL_LEVELS_LE_PC_LEVEL | LeveledItemFlag.USE_ALL
        merger = FieldMerger(base, [version(MOD_A, flags=use_all), version(MOD_B, flags=base.flags)])
        assert merger.flags() == use_all
        assert isinstance(merger.flags(), LeveledItemFlag)

    def test_unknown_field_rejected(self):
        """Only scalar policy fields can be merged here."""
        merger = FieldMerger(version(SKYRIM), [version(MOD_A)])
        with pytest.raises(ValueError):
            merger.merge_field("entries")


class TestEditorId:
    """Test editor id merging."""

    def test_renamed_by_extent(self):
        """A renamed editor id wins over the base."""
        merger = FieldMerger(version(SKYRIM, editor_id="LItem"), [version(MOD_A, editor_id="LItemNew")])
        assert merger.editor_id() == "LItemNew"

    def test_comparison_is_case_sensitive(self):
        """A case-only change counts as a difference."""
        merger = FieldMerger(version(SKYRIM, editor_id="LItem"), [version(MOD_A, editor_id="litem")])
        assert merger.editor_id() == "litem"

    def test_empty_extent_ids_ignored(self):
        """Missing ids on extents do not erase the base id."""
        base = version(SKYRIM, editor_id="LItem")
        merger = FieldMerger(base, [version(MOD_A, editor_id=None), version(MOD_B, editor_id="")])
        assert merger.editor_id() == "LItem"

    def test_missing_everywhere_generates_id(self):
        """With no id anywhere a fresh unique id is generated."""
        base = version(SKYRIM, editor_id=None)
        merger = FieldMerger(base, [version(MOD_A, editor_id=None)])
        first, second = merger.editor_id(), merger.editor_id()
        assert first and second
        assert first != second

    def test_base_missing_extent_named(self):
        """An extent may name a list the base left unnamed."""
        merger = FieldMerger(version(SKYRIM, editor_id=None), [version(MOD_A, editor_id="Named")])
        assert merger.editor_id() == "Named"


class TestIdempotence:
    """Merging a merged result again changes nothing."""

    def test_merge_all_is_idempotent(self):
        """The merged fields survive a second single-source merge."""
        base = version(SKYRIM, chance_none=0)
        extents = [
            version(MOD_A, editor_id="LItemA", chance_none=10, global_link=GLOBAL_A),
            version(MOD_B, chance_none=0, flags=LeveledItemFlag.USE_ALL),
            version(MOD_C, global_link=GLOBAL_B),
        ]
        merged = FieldMerger(base, extents).merge_all()
        assert merged == {
            "editor_id": "LItemA",
            "chance_none": 10,
            "global_link": GLOBAL_B,
            "flags": LeveledItemFlag.USE_ALL,
        }

        as_record = version(PATCH, **merged)
        assert FieldMerger(as_record, [as_record]).merge_all() == merged

