"""
Resolver Errors

Exceptions raised while building graphs and merging leveled lists.
"""

from typing import Sequence


class ResolverError(Exception):
    """Base class for all resolver failures."""


class RecordNotFoundError(ResolverError):
    """No source provides a version of the requested record."""
    def __init__(self, entity_key):
        self.entity_key = entity_key
        super().__init__(f"No record versions found for {entity_key}")


class InvariantViolationError(ResolverError):
    """The master relation among sources is not a DAG."""
    def __init__(self, message: str, cycle: Sequence = ()):
        self.cycle = tuple(cycle)
        if self.cycle:
            message = f"{message}: {' -> '.join(str(s) for s in self.cycle)}"
        super().__init__(message)
