# src/recordalchemy/orm/__init__.py
"""
RecordAlchemy ORM Module

Record base class, declarative relationship accessors, schema registry,
identity map and the data session tying them to the relationship core.
"""

from recordalchemy.orm.accessors import (
    BelongsToReference,
    HasManyReference,
    belongs_to,
    has_many,
)
from recordalchemy.orm.records import Record, record_type
from recordalchemy.orm.config import SessionConfig
from recordalchemy.orm.schema import Schema
from recordalchemy.orm.identity_map import IdentityMap
from recordalchemy.orm.session import DataSession

__all__ = [
    # Declarations
    "Record",
    "record_type",
    "has_many",
    "belongs_to",
    "HasManyReference",
    "BelongsToReference",

    # Session
    "DataSession",
    "SessionConfig",
    "Schema",
    "IdentityMap",
]
