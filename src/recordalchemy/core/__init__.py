"""
RecordAlchemy Core Module

The relationship graph engine: descriptors, inverse resolution, per-record
relationship state, membership mutation, materialization and change
notification. Nothing here knows about concrete record classes.
"""

from recordalchemy.core.descriptors import (
    RelationshipDescriptor,
    RelationshipKind,
    normalize_type_name,
)
from recordalchemy.core.inverse import InverseResolver
from recordalchemy.core.state import LoadStatus, RelationshipState
from recordalchemy.core.engine import RelationshipGraphEngine
from recordalchemy.core.materialization import MaterializationController, RecordLoader
from recordalchemy.core.notifier import (
    CallbackNotifier,
    ChangeNotifier,
    CompositeNotifier,
    NullNotifier,
    RecordChangeNotifier,
    SupportsChangeNotification,
)

__all__ = [
    "RelationshipDescriptor",
    "RelationshipKind",
    "normalize_type_name",
    "InverseResolver",
    "LoadStatus",
    "RelationshipState",
    "RelationshipGraphEngine",
    "MaterializationController",
    "RecordLoader",
    "CallbackNotifier",
    "ChangeNotifier",
    "CompositeNotifier",
    "NullNotifier",
    "RecordChangeNotifier",
    "SupportsChangeNotification",
]
