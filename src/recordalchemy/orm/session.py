# src/recordalchemy/orm/session.py
"""
RecordAlchemy Data Session

A DataSession wires the relationship core to its collaborators: the schema,
the identity map, the external loader and the change notifier. Nothing is
global; two sessions never share records or relationship state.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, TypeVar, Union
import asyncio
import logging

from recordalchemy.core.engine import RelationshipGraphEngine
from recordalchemy.core.inverse import InverseResolver
from recordalchemy.core.materialization import MaterializationController, RecordLoader
from recordalchemy.core.notifier import ChangeNotifier, RecordChangeNotifier
from recordalchemy.core.state import LoadStatus, RelationshipState
from recordalchemy.orm.config import SessionConfig
from recordalchemy.orm.identity_map import IdentityMap
from recordalchemy.orm.records import Record
from recordalchemy.orm.schema import Schema

logger = logging.getLogger(__name__)

RecordType = TypeVar('RecordType', bound=Record)


class DataSession:
    """
    Unit holding records and their relationships.

    Args:
        loader: External loader used to materialize async relationships
        notifier: Receives membership change signals; defaults to forwarding
            them to the records' own observers
        config: Session configuration; keyword overrides are applied on top

    Example:
        ```python
        session = DataSession(loader=api_loader, default_async=False)
        session.register(Post, Comment)

        post = session.push("post", 1, {"title": "Hello"}, {"comments": [10, 11]})
        [c.id for c in post.comments.get()]  # ["10", "11"]
        ```
    """

    def __init__(
        self,
        loader: Optional[RecordLoader] = None,
        notifier: Optional[ChangeNotifier] = None,
        config: Optional[SessionConfig] = None,
        **config_overrides: Any
    ):
        config = config or SessionConfig()
        if config_overrides:
            config = SessionConfig(**{**config.model_dump(), **config_overrides})
        self.config = config

        self.schema = Schema(self.config)
        self.identity_map = IdentityMap(self)
        self.resolver = InverseResolver(self.schema)
        self.notifier = notifier or RecordChangeNotifier()
        self.engine = RelationshipGraphEngine(self.resolver, self._state_for, self.notifier)
        self.materializer = MaterializationController(self.engine, loader)

    @property
    def loader(self) -> Optional[RecordLoader]:
        return self.materializer.loader

    # =============================================================================
    # SCHEMA AND RECORDS
    # =============================================================================

    def register(self, *record_classes: Type[Record]) -> None:
        """Register record classes with this session."""
        self.schema.register(*record_classes)
        self.resolver.clear_cache()
        if self.config.validate_on_register:
            self.schema.validate(self.resolver)

    def attach(self, record: Record) -> Record:
        """Bind a record to this session."""
        if record._session is not None and record._session is not self:
            raise ValueError(f"{record!r} already belongs to another session")
        self.schema.record_class(record.type_name())
        record._session = self
        return record

    def create(self, record_cls: Type[RecordType], **data: Any) -> RecordType:
        """
        Create a new local record.

        Relationships of new records start out loaded and empty: the remote
        side has nothing to add yet.
        """
        record = record_cls(**data)
        self.attach(record)
        if record.id is not None:
            self.identity_map.add(record)
        return record

    def push(
        self,
        type_name: str,
        identifier: Any,
        attributes: Optional[Mapping[str, Any]] = None,
        relationships: Optional[Mapping[str, Any]] = None
    ) -> Record:
        """
        Upsert a persisted record from already decoded data.

        Args:
            type_name: Record type
            identifier: Remote identifier
            attributes: Field values to assign
            relationships: Relationship key -> identifier(s) or record(s);
                these memberships are server-confirmed

        Returns:
            The identity-mapped record
        """
        record = self.identity_map.resolve(type_name, identifier)
        record._is_persisted = True

        for name, value in (attributes or {}).items():
            setattr(record, name, value)

        for key, value in (relationships or {}).items():
            descriptor = self.schema.descriptor(record.type_name(), key)
            if descriptor.is_to_one:
                values = [] if value is None else [value]
            else:
                values = list(value or [])
            related = [self._resolve_member(descriptor.related_type, v) for v in values]
            self.engine.mark_loaded(self.state_for(record, key), related)

        logger.debug("Pushed %r (%d relationships)", record, len(relationships or {}))
        return record

    def _resolve_member(self, type_name: str, value: Any) -> Record:
        if isinstance(value, Record):
            return value
        return self.identity_map.resolve(type_name, value)

    # =============================================================================
    # RELATIONSHIP STATE
    # =============================================================================

    def state_for(self, record: Record, key: str) -> RelationshipState:
        """Relationship state of ``record.key``, created on first access."""
        self._ensure_validated()
        return self._state_for(record, key)

    def _state_for(self, record: Record, key: str) -> RelationshipState:
        states: Dict[str, RelationshipState] = record._relationship_states
        state = states.get(key)
        if state is None:
            descriptor = self.schema.descriptor(record.type_name(), key)
            status = LoadStatus.EMPTY if record._is_persisted else LoadStatus.LOADED
            state = RelationshipState(record, descriptor, status)
            states[key] = state
        return state

    def _ensure_validated(self) -> None:
        if not self.schema.is_validated:
            self.schema.validate(self.resolver)

    # =============================================================================
    # RELATIONSHIP OPERATIONS
    # =============================================================================

    def get_records(self, record: Record, key: str) -> Union[List[Record], asyncio.Future]:
        return self.materializer.get_records(self.state_for(record, key))

    async def fetch(self, record: Record, key: str) -> List[Record]:
        return await self.materializer.fetch(self.state_for(record, key))

    def reload(self, record: Record, key: str) -> asyncio.Future:
        return self.materializer.reload(self.state_for(record, key))

    def add(self, record: Record, key: str, records: Iterable[Record]) -> None:
        self.engine.add_records(self.state_for(record, key), records)

    def remove(self, record: Record, key: str, records: Iterable[Record]) -> None:
        self.engine.remove_records(self.state_for(record, key), records)

    def clear(self, record: Record, key: str) -> None:
        self.engine.clear(self.state_for(record, key))

    def set(self, record: Record, key: str, records: Iterable[Record]) -> None:
        self.engine.set(self.state_for(record, key), records)
