# src/recordalchemy/orm/identity_map.py
"""
RecordAlchemy Identity Map

Guarantees a single in-memory instance per (type, identifier) within a
data session. Relationships hold references to records; only the identity
map decides which instance represents a remote row.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple, TYPE_CHECKING
import logging
import weakref

from recordalchemy.core.descriptors import normalize_type_name

if TYPE_CHECKING:
    from recordalchemy.orm.records import Record
    from recordalchemy.orm.session import DataSession

logger = logging.getLogger(__name__)


class IdentityMap:
    """Weak-valued (type, id) -> record cache of a session."""

    def __init__(self, session: 'DataSession'):
        self.session = session
        self._records: weakref.WeakValueDictionary[Tuple[str, str], Record] = weakref.WeakValueDictionary()

    def resolve(self, type_name: str, identifier: Any) -> 'Record':
        """
        Get the record for a remote identity, creating a placeholder if needed.

        Placeholders are built without validation; their attributes are
        filled in when the record itself is pushed.
        """
        key = self._key(type_name, identifier)
        record = self._records.get(key)
        if record is not None:
            return record

        record_cls = self.session.schema.record_class(key[0])
        record = record_cls.model_construct(id=key[1])
        record._is_persisted = True
        self.session.attach(record)
        self._records[key] = record

        logger.debug("Created placeholder %s", record)
        return record

    def get(self, type_name: str, identifier: Any) -> Optional['Record']:
        return self._records.get(self._key(type_name, identifier))

    def add(self, record: 'Record') -> None:
        """
        Register a record under its identity.

        Raises:
            ValueError: record has no id, or another instance owns the identity
        """
        if record.id is None:
            raise ValueError(f"Cannot add {record!r} to the identity map without an id")

        key = self._key(record.type_name(), record.id)
        existing = self._records.get(key)
        if existing is not None and existing is not record:
            raise ValueError(f"Identity {key} is already mapped to {existing!r}")
        self._records[key] = record

    def remove(self, record: 'Record') -> bool:
        if record.id is None:
            return False
        key = self._key(record.type_name(), record.id)
        if self._records.get(key) is record:
            del self._records[key]
            return True
        return False

    @staticmethod
    def _key(type_name: str, identifier: Any) -> Tuple[str, str]:
        return normalize_type_name(type_name), str(identifier)

    def __contains__(self, record: Any) -> bool:
        key = self._key(record.type_name(), record.id)
        return self._records.get(key) is record

    def __len__(self) -> int:
        return len(self._records)
