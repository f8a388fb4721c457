# src/recordalchemy/orm/schema.py
"""
RecordAlchemy Schema Registry

Record classes and their relationship descriptors, scoped to one data
session. Registration is the single place where declarations are checked:
implicit ``async`` modes are reported there, and ``validate`` resolves every
inverse so that schema mistakes surface before the first mutation.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Type, TYPE_CHECKING
import logging

from recordalchemy.core.descriptors import RelationshipDescriptor, normalize_type_name
from recordalchemy.exceptions import UnknownRecordType, UnknownRelationship
from recordalchemy.orm.config import SessionConfig

if TYPE_CHECKING:
    from recordalchemy.core.inverse import InverseResolver
    from recordalchemy.orm.records import Record

logger = logging.getLogger(__name__)


class Schema:
    """Registered record types of a data session."""

    def __init__(self, config: SessionConfig):
        self.config = config
        self._classes: Dict[str, Type['Record']] = {}
        self._relationships: Dict[str, Dict[str, RelationshipDescriptor]] = {}
        self._validated = False

    def register(self, *record_classes: Type['Record']) -> None:
        """
        Register record classes.

        Raises:
            ValueError: a different class is already registered under the same type name
        """
        for record_cls in record_classes:
            type_name = record_cls.type_name()
            existing = self._classes.get(type_name)
            if existing is record_cls:
                continue
            if existing is not None:
                raise ValueError(
                    f"Type name '{type_name}' is already registered for {existing.__name__}"
                )

            self._classes[type_name] = record_cls
            self._relationships[type_name] = {
                key: self._effective(type_name, accessor.descriptor)
                for key, accessor in record_cls.declared_relationships().items()
            }
            logger.debug(
                "Registered record type '%s' with relationships %s",
                type_name, sorted(self._relationships[type_name])
            )

        self._validated = False

    def validate(self, resolver: 'InverseResolver') -> None:
        """
        Check every relationship of every registered type.

        Raises:
            UnknownRecordType: a relationship names an unregistered type
            UnknownInverse / AmbiguousInverse: inverse resolution failed
        """
        for type_name, relationships in self._relationships.items():
            for key, descriptor in relationships.items():
                if descriptor.related_type not in self._classes:
                    raise UnknownRecordType(
                        f"Relationship '{type_name}.{key}' names unregistered type "
                        f"'{descriptor.related_type}'"
                    )
                resolver.resolve(type_name, key)
        self._validated = True

    @property
    def is_validated(self) -> bool:
        return self._validated

    # =============================================================================
    # LOOKUPS
    # =============================================================================

    def relationships_for(self, type_name: str) -> Mapping[str, RelationshipDescriptor]:
        type_name = normalize_type_name(type_name)
        if type_name not in self._relationships:
            raise UnknownRecordType(f"No record type registered as '{type_name}'")
        return self._relationships[type_name]

    def descriptor(self, type_name: str, key: str) -> RelationshipDescriptor:
        relationships = self.relationships_for(type_name)
        if key not in relationships:
            raise UnknownRelationship(f"Record type '{type_name}' has no relationship '{key}'")
        return relationships[key]

    def record_class(self, type_name: str) -> Type['Record']:
        type_name = normalize_type_name(type_name)
        if type_name not in self._classes:
            raise UnknownRecordType(f"No record type registered as '{type_name}'")
        return self._classes[type_name]

    def type_names(self) -> List[str]:
        return list(self._classes)

    def __contains__(self, type_name: str) -> bool:
        return normalize_type_name(type_name) in self._classes

    def _effective(self, type_name: str, descriptor: RelationshipDescriptor) -> RelationshipDescriptor:
        """Apply the session default to relationships without a declared mode."""
        if descriptor.async_declared:
            return descriptor

        if self.config.warn_implicit_async:
            logger.warning(
                "Relationship '%s.%s' does not declare `async`; using async=%s. "
                "Pass async_=%s explicitly to silence this warning.",
                type_name, descriptor.key, self.config.default_async, self.config.default_async
            )
        return descriptor.model_copy(update={'is_async': self.config.default_async})
