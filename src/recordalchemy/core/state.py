# src/recordalchemy/core/state.py
"""
RecordAlchemy Relationship State

Per-record, per-relationship runtime state: the ordered member set and its
load status. States are mutated only by the RelationshipGraphEngine and the
MaterializationController.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple
import asyncio
import weakref

from recordalchemy.core.descriptors import RelationshipDescriptor


class LoadStatus(str, Enum):
    """Materialization status of a relationship."""

    EMPTY = "empty"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"


class RelationshipState:
    """
    Membership of one relationship on one record.

    The owner is held through a weak reference: the record owns its states,
    never the other way around.
    """

    def __init__(
        self,
        owner: Any,
        descriptor: RelationshipDescriptor,
        status: LoadStatus = LoadStatus.EMPTY
    ):
        self._owner_ref = weakref.ref(owner)
        self.owner_type: str = owner.type_name()
        self.descriptor = descriptor
        self.status = status
        self.is_dirty = False
        self.pending: Optional[asyncio.Future] = None
        # (pending, unwrapped) pair handed out by to-one readers
        self.pending_first: Optional[Tuple[asyncio.Future, asyncio.Future]] = None
        self.last_error: Optional[BaseException] = None

        # dict as an insertion-ordered set
        self._members: Dict[Any, None] = {}

    @property
    def owner(self) -> Any:
        owner = self._owner_ref()
        if owner is None:
            raise ReferenceError(f"Owner of relationship '{self.key}' no longer exists")
        return owner

    @property
    def key(self) -> str:
        return self.descriptor.key

    @property
    def is_loaded(self) -> bool:
        """True once the relationship holds complete data."""
        return self.status is LoadStatus.LOADED

    @property
    def is_loading(self) -> bool:
        return self.status is LoadStatus.LOADING

    def records(self) -> List[Any]:
        """Snapshot of the members in order."""
        return list(self._members)

    def contains(self, record: Any) -> bool:
        return record in self._members

    def __contains__(self, record: Any) -> bool:
        return record in self._members

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._members))

    def __len__(self) -> int:
        return len(self._members)

    # =============================================================================
    # ENGINE-ONLY MUTATION
    # =============================================================================

    def _insert(self, record: Any) -> bool:
        if record in self._members:
            return False
        self._members[record] = None
        return True

    def _discard(self, record: Any) -> bool:
        if record not in self._members:
            return False
        del self._members[record]
        return True

    def _reorder(self, records: List[Any]) -> bool:
        """Reorder to match ``records`` (same membership). Returns True if the order changed."""
        if list(self._members) == records:
            return False
        self._members = dict.fromkeys(records)
        return True

    def __repr__(self) -> str:
        return (
            f"RelationshipState({self.owner_type}.{self.key}, "
            f"{len(self._members)} members, {self.status.value}"
            f"{', dirty' if self.is_dirty else ''})"
        )
