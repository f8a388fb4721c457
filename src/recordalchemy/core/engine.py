# src/recordalchemy/core/engine.py
"""
RecordAlchemy Relationship Graph Engine

Applies membership mutations to a relationship and its inverse so that every
edge is mirrored on both sides exactly once:

    R2 in R1.r1  <=>  R1 in R2.r2

All validation happens before the first edge changes, and change
notifications are delivered only after the whole mutation has been applied.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional
import logging

from recordalchemy.core.inverse import InverseResolver
from recordalchemy.core.notifier import ChangeNotifier, NullNotifier
from recordalchemy.core.state import LoadStatus, RelationshipState
from recordalchemy.exceptions import InvalidCardinality, RecordTypeMismatch

logger = logging.getLogger(__name__)

StateLookup = Callable[[Any, str], RelationshipState]


class _ChangeSet:
    """States touched by one engine call, in first-touch order."""

    def __init__(self):
        self._states: Dict[int, RelationshipState] = {}

    def touch(self, state: RelationshipState) -> None:
        state.is_dirty = True
        self._states.setdefault(id(state), state)

    def __iter__(self):
        return iter(list(self._states.values()))

    def __len__(self) -> int:
        return len(self._states)


class RelationshipGraphEngine:
    """
    Orchestrates add/remove/clear/set across paired relationship states.

    Args:
        resolver: Inverse resolver for the session's schema
        state_for: Returns (lazily creating) the state of ``record.key``
        notifier: Receives one ``notify(record, key)`` per changed state
    """

    def __init__(
        self,
        resolver: InverseResolver,
        state_for: StateLookup,
        notifier: Optional[ChangeNotifier] = None
    ):
        self.resolver = resolver
        self.state_for = state_for
        self.notifier = notifier or NullNotifier()

    # =============================================================================
    # PUBLIC MUTATIONS
    # =============================================================================

    def add_records(self, state: RelationshipState, records: Iterable[Any]) -> None:
        """
        Add records to a relationship and mirror the owner on each inverse.

        Re-adding a member is a no-op on this side but still repairs a missing
        inverse edge.

        Raises:
            InvalidCardinality: more than one record for a belongs-to relationship
            RecordTypeMismatch: a record is not of the related type
        """
        records = self._prepare(state, records)
        self._check_cardinality(state, records)

        changes = _ChangeSet()
        for record in records:
            self._link(state, record, changes)
        self._commit("add", state, changes)

    def remove_records(self, state: RelationshipState, records: Iterable[Any]) -> None:
        """Remove records symmetrically. Absent records are ignored."""
        records = self._prepare(state, records)

        changes = _ChangeSet()
        for record in records:
            self._unlink(state, record, changes)
        self._commit("remove", state, changes)

    def clear(self, state: RelationshipState) -> None:
        """Remove every member symmetrically."""
        self.remove_records(state, state.records())

    def set(self, state: RelationshipState, records: Iterable[Any]) -> None:
        """
        Replace the membership of a relationship.

        Only records that actually enter or leave trigger notifications; a
        has-many relationship given its current members in a new order is
        reordered and notifies its owner alone.
        """
        records = self._prepare(state, records)
        self._check_cardinality(state, records)
        self._apply_set(state, records, "set")

    def mark_loaded(self, state: RelationshipState, records: Iterable[Any]) -> None:
        """
        Populate a relationship with server-confirmed members.

        Same diff semantics as ``set``; afterwards the state is LOADED and clean.
        """
        records = self._prepare(state, records)
        self._check_cardinality(state, records)
        self._apply_set(state, records, "load")
        state.status = LoadStatus.LOADED
        state.is_dirty = False
        state.last_error = None

    # =============================================================================
    # EDGE PRIMITIVES
    # =============================================================================

    def _apply_set(self, state: RelationshipState, records: List[Any], action: str) -> None:
        wanted = set(records)
        changes = _ChangeSet()

        for record in state.records():
            if record not in wanted:
                self._unlink(state, record, changes)
        for record in records:
            self._link(state, record, changes)

        if state.descriptor.is_to_many and state._reorder(records):
            changes.touch(state)

        self._commit(action, state, changes)

    def _link(self, state: RelationshipState, record: Any, changes: _ChangeSet) -> None:
        self._insert(state, record, changes)
        inverse = self._inverse_state(state, record)
        if inverse is not None:
            self._insert(inverse, state.owner, changes)

    def _unlink(self, state: RelationshipState, record: Any, changes: _ChangeSet) -> None:
        if state._discard(record):
            changes.touch(state)
        inverse = self._inverse_state(state, record)
        if inverse is not None and inverse._discard(state.owner):
            changes.touch(inverse)

    def _insert(self, state: RelationshipState, record: Any, changes: _ChangeSet) -> None:
        if state.contains(record):
            return
        if state.descriptor.is_to_one:
            # Previous occupant leaves both sides before the new one enters
            for occupant in state.records():
                self._unlink(state, occupant, changes)
        state._insert(record)
        changes.touch(state)

    def _inverse_state(self, state: RelationshipState, record: Any) -> Optional[RelationshipState]:
        inverse = self.resolver.resolve(state.owner_type, state.key)
        if inverse is None:
            return None
        return self.state_for(record, inverse.key)

    # =============================================================================
    # VALIDATION AND NOTIFICATION
    # =============================================================================

    def _prepare(self, state: RelationshipState, records: Iterable[Any]) -> List[Any]:
        """Deduplicate, type-check and resolve the inverse before any mutation."""
        prepared = list(dict.fromkeys(records))
        expected = state.descriptor.related_type

        for record in prepared:
            type_name = getattr(record, 'type_name', None)
            if type_name is None or type_name() != expected:
                raise RecordTypeMismatch(
                    f"Relationship '{state.owner_type}.{state.key}' expects '{expected}' "
                    f"records, got {record!r}"
                )

        self.resolver.resolve(state.owner_type, state.key)
        return prepared

    @staticmethod
    def _check_cardinality(state: RelationshipState, records: List[Any]) -> None:
        if state.descriptor.is_to_one and len(records) > 1:
            raise InvalidCardinality(
                f"Relationship '{state.owner_type}.{state.key}' is belongs-to and "
                f"cannot hold {len(records)} records"
            )

    def _commit(self, action: str, state: RelationshipState, changes: _ChangeSet) -> None:
        if not changes:
            return

        logger.debug(
            "%s on %s.%s changed %d relationship(s)",
            action, state.owner_type, state.key, len(changes)
        )
        for changed in changes:
            self.notifier.notify(changed.owner, changed.key)
