# src/recordalchemy/core/inverse.py
"""
RecordAlchemy Inverse Resolution

Determines which relationship on the related type mirrors a given
relationship. Schemas are static after registration, so every resolution
(including "no inverse") is cached per (type, key).
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Protocol, Tuple
import logging

from recordalchemy.core.descriptors import RelationshipDescriptor
from recordalchemy.exceptions import AmbiguousInverse, UnknownInverse

logger = logging.getLogger(__name__)


class SchemaView(Protocol):
    """Read-only view of the registered relationship declarations."""

    def relationships_for(self, type_name: str) -> Mapping[str, RelationshipDescriptor]:
        ...


class InverseResolver:
    """
    Resolves and caches inverse relationships.

    Example:
        ```python
        resolver = InverseResolver(schema)
        inverse = resolver.resolve("post", "comments")
        inverse.key  # "post" (declared on the comment type)
        ```
    """

    def __init__(self, schema: SchemaView):
        self.schema = schema
        self._cache: Dict[Tuple[str, str], Optional[RelationshipDescriptor]] = {}

    def resolve(self, type_name: str, key: str) -> Optional[RelationshipDescriptor]:
        """
        Get the inverse descriptor of ``type_name.key``.

        Returns:
            Descriptor declared on the related type, or None when the
            relationship is one-sided

        Raises:
            UnknownInverse: explicit inverse missing or not pointing back
            AmbiguousInverse: several candidates and none explicit
        """
        cache_key = (type_name, key)
        if cache_key in self._cache:
            return self._cache[cache_key]

        descriptor = self.schema.relationships_for(type_name)[key]
        inverse = self._resolve(type_name, descriptor)
        self._cache[cache_key] = inverse

        logger.debug(
            "Resolved inverse of %s.%s -> %s",
            type_name, key,
            f"{descriptor.related_type}.{inverse.key}" if inverse else None
        )
        return inverse

    def clear_cache(self) -> None:
        """Forget every cached resolution."""
        self._cache.clear()

    # =============================================================================
    # RESOLUTION RULES
    # =============================================================================

    def _resolve(self, type_name: str, descriptor: RelationshipDescriptor) -> Optional[RelationshipDescriptor]:
        if descriptor.inverse_disabled:
            return None

        related = self.schema.relationships_for(descriptor.related_type)

        if descriptor.explicit_inverse is not None:
            return self._resolve_explicit(type_name, descriptor, related)

        candidates = self._eligible(related, type_name, descriptor.key)
        if not candidates:
            return None

        # A candidate naming this relationship explicitly is always the pair
        explicit = [c for c in candidates if c.explicit_inverse == descriptor.key]
        if len(explicit) == 1:
            return explicit[0]

        if len(candidates) > 1:
            raise AmbiguousInverse(
                f"Relationship '{descriptor.key}' on '{type_name}' has several possible "
                f"inverses on '{descriptor.related_type}': "
                f"{sorted(c.key for c in candidates)}. Declare `inverse` explicitly."
            )

        candidate = candidates[0]

        # The pairing must be unique from the other side as well
        own = self.schema.relationships_for(type_name)
        rivals = self._eligible(own, descriptor.related_type, candidate.key)
        if len(rivals) > 1:
            raise AmbiguousInverse(
                f"Relationship '{candidate.key}' on '{descriptor.related_type}' could be the "
                f"inverse of any of {sorted(r.key for r in rivals)} on '{type_name}'. "
                f"Declare `inverse` explicitly."
            )

        return candidate

    def _resolve_explicit(
        self,
        type_name: str,
        descriptor: RelationshipDescriptor,
        related: Mapping[str, RelationshipDescriptor]
    ) -> RelationshipDescriptor:
        name = descriptor.explicit_inverse
        target = related.get(name)

        if target is None:
            raise UnknownInverse(
                f"Relationship '{descriptor.key}' on '{type_name}' declares inverse '{name}', "
                f"but '{descriptor.related_type}' has no such relationship"
            )
        if target.related_type != type_name:
            raise UnknownInverse(
                f"Inverse '{descriptor.related_type}.{name}' of '{type_name}.{descriptor.key}' "
                f"points to '{target.related_type}', not '{type_name}'"
            )
        if target.inverse_disabled or (
            target.explicit_inverse is not None and target.explicit_inverse != descriptor.key
        ):
            raise UnknownInverse(
                f"Inverse '{descriptor.related_type}.{name}' of '{type_name}.{descriptor.key}' "
                f"does not point back to '{descriptor.key}'"
            )
        return target

    @staticmethod
    def _eligible(
        relationships: Mapping[str, RelationshipDescriptor],
        type_name: str,
        key: str
    ) -> List[RelationshipDescriptor]:
        """Relationships naming ``type_name`` that may pair with ``key``."""
        return [
            candidate for candidate in relationships.values()
            if candidate.related_type == type_name
            and not candidate.inverse_disabled
            and candidate.explicit_inverse in (None, key)
        ]
