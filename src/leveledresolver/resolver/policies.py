"""
Merge Policies for Leveled Item Fields

Defines how each field of a leveled item record is combined across the
extent versions of that record.
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Dict, Optional


class MergePolicy(Enum):
    """The merge policies applied to leveled item fields."""

    # Last extent value that differs from the base wins, else the base value
    LAST_DISSENTING_WINS = auto()

    # Union of additions + intersection of base entries, then sublist split
    ENTRY_UNION = auto()


@dataclass(frozen=True)
class FieldPolicyConfig:
    """How one record field is merged."""

    # Attribute name on RecordVersion
    attribute: str

    # Merge strategy
    policy: MergePolicy

    # Empty values (None, "") never win and are skipped before comparing
    skip_empty: bool = False

    # Human-readable description
    description: str = ""


FIELD_POLICIES: Dict[str, FieldPolicyConfig] = {
    "editor_id": FieldPolicyConfig(
        attribute="editor_id",
        policy=MergePolicy.LAST_DISSENTING_WINS,
        skip_empty=True,
        description="Editor id - last differing non-empty id wins, exact comparison"
    ),

    "chance_none": FieldPolicyConfig(
        attribute="chance_none",
        policy=MergePolicy.LAST_DISSENTING_WINS,
        description="Chance none - last differing byte wins"
    ),

    "global_link": FieldPolicyConfig(
        attribute="global_link",
        policy=MergePolicy.LAST_DISSENTING_WINS,
        description="Use global - last differing link wins"
    ),

    "flags": FieldPolicyConfig(
        attribute="flags",
        policy=MergePolicy.LAST_DISSENTING_WINS,
        description="Flags - last differing flag set wins"
    ),

    "entries": FieldPolicyConfig(
        attribute="entries",
        policy=MergePolicy.ENTRY_UNION,
        description="Entries - additions unioned, removals honored, split above the cap"
    ),
}


def get_field_policy(field_name: str) -> Optional[FieldPolicyConfig]:
    """Get the merge configuration for a record field."""
    return FIELD_POLICIES.get(field_name)


def scalar_fields() -> Dict[str, FieldPolicyConfig]:
    """Fields merged with LAST_DISSENTING_WINS, in declaration order."""
    return {
        name: config for name, config in FIELD_POLICIES.items()
        if config.policy == MergePolicy.LAST_DISSENTING_WINS
    }
