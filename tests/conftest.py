"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from leveledresolver.records import EntityKey, LeveledEntry, RecordVersion, SourceId
from leveledresolver.sources import InMemoryLoadOrder, InMemoryRecordIndex


# =============================================================================
# PLUGIN FIXTURES
# =============================================================================

SKYRIM = SourceId("Skyrim.esm")
MOD_A = SourceId("ModA.esp")
MOD_B = SourceId("ModB.esp")
MOD_C = SourceId("ModC.esp")
PATCH = SourceId("Synthesis.esp")

# The leveled list every test resolves unless it says otherwise
LIST_KEY = EntityKey(SKYRIM, 0x10E0)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def item(local_id: int, level: int = 1, count: int = 1, origin: SourceId = SKYRIM) -> LeveledEntry:
    """An entry pointing at a (non leveled list) item record."""
    return LeveledEntry(level=level, count=count, reference=EntityKey(origin, local_id))


def version(source: SourceId, entries=None, key: EntityKey = LIST_KEY, **fields) -> RecordVersion:
    """A version of the test leveled list authored by ``source``."""
    fields.setdefault("editor_id", "LItemTest")
    return RecordVersion(
        entity_key=key,
        source=source,
        entries=tuple(entries) if entries is not None else None,
        **fields
    )


def make_load_order(*plugins) -> InMemoryLoadOrder:
    """Load order from (plugin, [masters]) pairs."""
    return InMemoryLoadOrder(plugins)


# =============================================================================
# SHARED FIXTURES
# =============================================================================

@pytest.fixture
def x():
    return item(0x1)


@pytest.fixture
def y():
    return item(0x2)


@pytest.fixture
def z():
    return item(0x3)


@pytest.fixture
def linear_load_order():
    """Skyrim.esm <- ModA.esp <- ModB.esp, plus the patch."""
    return make_load_order(
        (SKYRIM, []),
        (MOD_A, [SKYRIM]),
        (MOD_B, [SKYRIM, MOD_A]),
        (PATCH, [SKYRIM, MOD_A, MOD_B]),
    )


@pytest.fixture
def diamond_load_order():
    """ModA and ModB both build on Skyrim.esm; ModC builds on both."""
    return make_load_order(
        (SKYRIM, []),
        (MOD_A, [SKYRIM]),
        (MOD_B, [SKYRIM]),
        (MOD_C, [SKYRIM, MOD_A, MOD_B]),
        (PATCH, [SKYRIM, MOD_A, MOD_B, MOD_C]),
    )


@pytest.fixture
def empty_index(diamond_load_order):
    return InMemoryRecordIndex(diamond_load_order)
