# src/recordalchemy/core/materialization.py
"""
RecordAlchemy Materialization

Read path of a relationship. Resident data is returned immediately; an
unloaded async relationship is requested from the external loader and a
pending handle (an ``asyncio.Future``) is returned instead. Concurrent reads
share one handle, so the loader runs once per in-flight request.

State machine per relationship:

    EMPTY -> LOADING -> LOADED          (initial materialization)
    LOADED -> LOADED                    (local mutations)
    LOADED -> LOADING -> LOADED         (reload)
    LOADING -> LOAD_FAILED -> LOADING   (retry on next read)
"""

from __future__ import annotations

from typing import Any, List, Optional, Protocol, Sequence, Union
import asyncio
import logging

from recordalchemy.core.engine import RelationshipGraphEngine
from recordalchemy.core.state import LoadStatus, RelationshipState
from recordalchemy.exceptions import LoadFailure, SynchronousRelationshipNotLoaded

logger = logging.getLogger(__name__)


class RecordLoader(Protocol):
    """External collaborator fetching the members of a relationship."""

    async def load(self, owner: Any, key: str) -> Sequence[Any]:
        ...


class MaterializationController:
    """
    Decides whether a read is served from memory or from the loader.

    Args:
        engine: Engine used to populate loaded members symmetrically
        loader: External loader; optional for purely synchronous schemas
    """

    def __init__(self, engine: RelationshipGraphEngine, loader: Optional[RecordLoader] = None):
        self.engine = engine
        self.loader = loader

    def get_records(self, state: RelationshipState) -> Union[List[Any], asyncio.Future]:
        """
        Read the members of a relationship.

        Returns:
            The ordered members when loaded, otherwise a pending handle
            resolving to them (async relationships only)

        Raises:
            SynchronousRelationshipNotLoaded: sync relationship without data
        """
        if state.is_loaded:
            return state.records()

        # Also covers a synchronous relationship being reloaded
        if state.is_loading and state.pending is not None:
            return state.pending

        if not state.descriptor.is_async:
            raise SynchronousRelationshipNotLoaded(
                f"Relationship '{state.owner_type}.{state.key}' is synchronous but its "
                f"records are not loaded. Load them with the owning record or declare "
                f"it with async_=True."
            )

        return self._request(state)

    async def fetch(self, state: RelationshipState) -> List[Any]:
        """Read the members, awaiting materialization when needed."""
        value = self.get_records(state)
        if isinstance(value, list):
            return value
        return await value

    def reload(self, state: RelationshipState) -> asyncio.Future:
        """Request a fresh load; shares the in-flight handle if there is one."""
        return self._request(state)

    # =============================================================================
    # LOADING
    # =============================================================================

    def _request(self, state: RelationshipState) -> asyncio.Future:
        if state.is_loading and state.pending is not None:
            return state.pending

        if self.loader is None:
            raise LoadFailure(
                f"No loader configured to materialize '{state.owner_type}.{state.key}'",
                record=state.owner, key=state.key
            )

        loop = asyncio.get_running_loop()
        state.status = LoadStatus.LOADING
        state.pending = loop.create_task(self._load(state))
        logger.debug("Loading %s.%s", state.owner_type, state.key)
        return state.pending

    async def _load(self, state: RelationshipState) -> List[Any]:
        owner = state.owner
        try:
            loaded = list(await self.loader.load(owner, state.key))
            self.engine.mark_loaded(state, self._merge(state, loaded))
        except Exception as e:
            state.status = LoadStatus.LOAD_FAILED
            state.last_error = e
            logger.warning("Loading %s.%s failed: %s", state.owner_type, state.key, e)
            raise LoadFailure(
                f"Failed to load '{state.owner_type}.{state.key}': {e}",
                record=owner, key=state.key, cause=e
            ) from e
        finally:
            state.pending = None

        logger.debug("Loaded %s.%s (%d records)", state.owner_type, state.key, len(state))
        return state.records()

    @staticmethod
    def _merge(state: RelationshipState, loaded: List[Any]) -> List[Any]:
        """Keep unconfirmed local additions after the loaded records."""
        if not state.is_dirty:
            return loaded
        if state.descriptor.is_to_one:
            return state.records() or loaded
        confirmed = set(loaded)
        extras = [record for record in state.records() if record not in confirmed]
        return loaded + extras
