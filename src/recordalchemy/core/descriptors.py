# src/recordalchemy/core/descriptors.py
"""
RecordAlchemy Relationship Descriptors

Immutable metadata describing one declared relationship. Descriptors are
created once per relationship on a record type and shared by every
RelationshipState of that relationship.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RelationshipKind(str, Enum):
    """Cardinality of a relationship."""

    HAS_MANY = "hasMany"
    BELONGS_TO = "belongsTo"


class RelationshipDescriptor(BaseModel):
    """
    Metadata for a declared relationship.

    ``is_async`` is the effective mode. ``async_declared`` records whether the
    declaring code chose it explicitly, so that schema registration can report
    relationships relying on the default.
    """

    key: str = Field(..., min_length=1, description="Relationship name on the owning type")
    related_type: str = Field(..., min_length=1, description="Normalized related type name")
    kind: RelationshipKind
    is_async: bool = True
    async_declared: bool = True
    explicit_inverse: Optional[str] = None
    inverse_disabled: bool = False

    model_config = ConfigDict(frozen=True, extra='forbid')

    @field_validator('related_type', mode='before')
    @classmethod
    def normalize_related_type(cls, v):
        """Related types are always stored normalized."""
        return normalize_type_name(str(v))

    @property
    def is_to_one(self) -> bool:
        return self.kind is RelationshipKind.BELONGS_TO

    @property
    def is_to_many(self) -> bool:
        return self.kind is RelationshipKind.HAS_MANY

    def __repr__(self) -> str:
        mode = "async" if self.is_async else "sync"
        return f"RelationshipDescriptor({self.kind.value} '{self.key}' -> '{self.related_type}', {mode})"


# =============================================================================
# TYPE NAMES
# =============================================================================

def normalize_type_name(name: str) -> str:
    """
    Normalize a record type name to its dasherized form.

    ``BlogPost``, ``blogPost`` and ``blog_post`` all become ``blog-post``.
    """
    s1 = re.sub('(.)([A-Z][a-z]+)', r'\1-\2', name.strip())
    s2 = re.sub('([a-z0-9])([A-Z])', r'\1-\2', s1)
    return s2.replace('_', '-').lower()


def singularize(word: str) -> str:
    """Naive English singularization for relationship keys."""
    if word.endswith('ies') and len(word) > 3:
        return word[:-3] + 'y'
    if re.search('(s|x|z|ch|sh)es$', word):
        return word[:-2]
    if word.endswith('s') and not word.endswith('ss'):
        return word[:-1]
    return word


def infer_type_name(key: str, kind: RelationshipKind) -> str:
    """Infer the related type from a relationship key (``tags`` -> ``tag``)."""
    name = normalize_type_name(key)
    if kind is RelationshipKind.HAS_MANY:
        head, _, last = name.rpartition('-')
        last = singularize(last)
        name = f"{head}-{last}" if head else last
    return name


# =============================================================================
# OPTIONS
# =============================================================================

_UNSET: Any = object()


def build_descriptor(
    key: str,
    kind: RelationshipKind,
    type_name: Optional[str] = None,
    options: Optional[Mapping[str, Any]] = None,
    *,
    async_: Any = _UNSET,
    inverse: Any = _UNSET,
    default_async: bool = True
) -> RelationshipDescriptor:
    """
    Build a descriptor from declaration arguments.

    Args:
        key: Relationship name on the owning type
        kind: Relationship cardinality
        type_name: Related type; inferred from ``key`` when omitted
        options: Mapping with optional ``async`` and ``inverse`` entries
        async_: Keyword form of ``options['async']``
        inverse: Keyword form of ``options['inverse']``; ``None`` disables the inverse
        default_async: Mode used when no ``async`` value is declared

    Returns:
        Immutable relationship descriptor
    """
    options = dict(options or {})
    unknown = set(options) - {'async', 'inverse'}
    if unknown:
        raise ValueError(f"Unknown relationship options for '{key}': {sorted(unknown)}")

    if async_ is _UNSET:
        async_ = options.get('async', _UNSET)
    if inverse is _UNSET:
        inverse = options.get('inverse', _UNSET)

    async_declared = async_ is not _UNSET and async_ is not None
    is_async = bool(async_) if async_declared else default_async

    inverse_disabled = inverse is None
    explicit_inverse = None if inverse in (None, _UNSET) else str(inverse)

    return RelationshipDescriptor(
        key=key,
        related_type=type_name or infer_type_name(key, kind),
        kind=kind,
        is_async=is_async,
        async_declared=async_declared,
        explicit_inverse=explicit_inverse,
        inverse_disabled=inverse_disabled,
    )
