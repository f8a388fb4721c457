# src/recordalchemy/exceptions.py
"""
RecordAlchemy Exceptions

Structural errors (cardinality, inverse resolution, unknown schema entries)
signal programming mistakes and are raised immediately. ``LoadFailure`` is
the only recoverable error: the failed relationship can be read again.
"""

from __future__ import annotations

from typing import Any, Optional


class RecordAlchemyError(Exception):
    """Base class for all RecordAlchemy errors."""


class RelationshipError(RecordAlchemyError):
    """Base class for relationship errors."""


class InvalidCardinality(RelationshipError):
    """More than one member was given to a belongs-to relationship."""


class InverseResolutionError(RelationshipError):
    """The inverse of a relationship could not be determined."""


class UnknownInverse(InverseResolutionError):
    """An explicit inverse does not exist or does not point back."""


class AmbiguousInverse(InverseResolutionError):
    """Several relationships qualify as the inverse and none is explicit."""


class SynchronousRelationshipNotLoaded(RelationshipError):
    """A synchronous relationship was read before it was materialized."""


class RecordTypeMismatch(RelationshipError):
    """A record of the wrong type was given to a relationship."""


class UnknownRelationship(RelationshipError):
    """The record type declares no relationship with the given key."""


class UnknownRecordType(RecordAlchemyError):
    """No record class is registered under the given type name."""


class DetachedRecordError(RecordAlchemyError):
    """The record is not attached to a data session."""


class LoadFailure(RelationshipError):
    """
    The external loader failed to materialize a relationship.

    The original loader error is available as ``cause`` (and as
    ``__cause__`` when raised with ``from``).
    """

    def __init__(self, message: str, *, record: Any = None, key: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.record = record
        self.key = key
        self.cause = cause
