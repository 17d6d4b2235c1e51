"""
Scalar Field Merge

Merges the single-valued fields of a leveled item (editor id, chance none,
global, flags) with the LAST_DISSENTING_WINS policy: the last extent value
that differs from the base wins, otherwise the base value is kept.
"""

import uuid
from typing import Any, Dict, Sequence

from leveledresolver.records import EntityKey, LeveledItemFlag, RecordVersion
from leveledresolver.resolver.policies import FieldPolicyConfig, MergePolicy, get_field_policy, scalar_fields


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def last_dissenting(values: Sequence[Any], base_value: Any, skip_empty: bool = False) -> Any:
    """
    Return the last value that differs from ``base_value``, else ``base_value``.

    Comparison is plain equality: strings compare exactly (case-sensitive,
    no locale folding).
    """
    result = base_value
    for value in values:
        if skip_empty and _is_empty(value):
            continue
        if value != base_value:
            result = value
    return result


class FieldMerger:
    """
    Merges scalar fields across extent versions.

    Usage:
        merger = FieldMerger(base, extents)
        merger.chance_none()
        merger.merge_all()
    """

    def __init__(self, base: RecordVersion, extents: Sequence[RecordVersion]):
        self.base = base
        self.extents = list(extents)

    def merge_field(self, field_name: str) -> Any:
        config = get_field_policy(field_name)
        if config is None or config.policy != MergePolicy.LAST_DISSENTING_WINS:
            raise ValueError(f"{field_name} is not a scalar field")
        return self._merge(config)

    def _merge(self, config: FieldPolicyConfig) -> Any:
        values = [getattr(version, config.attribute) for version in self.extents]
        return last_dissenting(values, getattr(self.base, config.attribute), config.skip_empty)

    def editor_id(self) -> str:
        """Merged editor id, or a fresh unique id when no version has one."""
        value = self.merge_field("editor_id")
        if _is_empty(value):
            return uuid.uuid4().hex
        return value

    def chance_none(self) -> int:
        return self.merge_field("chance_none")

    def global_link(self) -> EntityKey:
        return self.merge_field("global_link")

    def flags(self) -> LeveledItemFlag:
        return LeveledItemFlag(self.merge_field("flags"))

    def merge_all(self) -> Dict[str, Any]:
        """Every scalar field keyed by attribute name."""
        merged = {config.attribute: self._merge(config) for config in scalar_fields().values()}
        if _is_empty(merged["editor_id"]):
            merged["editor_id"] = uuid.uuid4().hex
        merged["flags"] = LeveledItemFlag(merged["flags"])
        return merged
