# src/recordalchemy/__init__.py
r"""
RecordAlchemy - Relationship Layer for Record-Mapping Clients

RecordAlchemy keeps in-memory records that mirror remote rows connected:
- Declarative has-many / belongs-to relationships on Pydantic V2 records
- Automatic inverse discovery with explicit overrides
- Bidirectional consistency under add/remove/clear/set from either side
- Lazy asynchronous materialization with shared pending loads
- Change notification for whatever reactivity layer observes records

Example:
    ```python
    from recordalchemy import DataSession, Record, belongs_to, has_many

    class Post(Record):
        title: str
        comments = has_many("comment", async_=True)

    class Comment(Record):
        body: str
        post = belongs_to("post", async_=False)

    class ApiLoader:
        async def load(self, owner, key):
            rows = await api.fetch_related(owner.type_name(), owner.id, key)
            return [session.push("comment", row["id"], {"body": row["body"]}) for row in rows]

    session = DataSession(loader=ApiLoader())
    session.register(Post, Comment)

    post = session.push("post", 1, {"title": "Hello"})
    comments = await post.comments.load()     # loader runs once
    comments[0].post.get() is post            # True, inverse kept in sync
    ```
"""

from recordalchemy.core import (
    InverseResolver,
    LoadStatus,
    MaterializationController,
    RelationshipDescriptor,
    RelationshipGraphEngine,
    RelationshipKind,
    RelationshipState,
)
from recordalchemy.core.notifier import (
    CallbackNotifier,
    CompositeNotifier,
    NullNotifier,
    RecordChangeNotifier,
)
from recordalchemy.orm import (
    DataSession,
    Record,
    SessionConfig,
    belongs_to,
    has_many,
    record_type,
)
from recordalchemy.exceptions import (
    AmbiguousInverse,
    DetachedRecordError,
    InvalidCardinality,
    LoadFailure,
    RecordAlchemyError,
    RecordTypeMismatch,
    RelationshipError,
    SynchronousRelationshipNotLoaded,
    UnknownInverse,
    UnknownRecordType,
    UnknownRelationship,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "InverseResolver",
    "LoadStatus",
    "MaterializationController",
    "RelationshipDescriptor",
    "RelationshipGraphEngine",
    "RelationshipKind",
    "RelationshipState",

    # Notification
    "CallbackNotifier",
    "CompositeNotifier",
    "NullNotifier",
    "RecordChangeNotifier",

    # ORM
    "DataSession",
    "Record",
    "SessionConfig",
    "belongs_to",
    "has_many",
    "record_type",

    # Errors
    "AmbiguousInverse",
    "DetachedRecordError",
    "InvalidCardinality",
    "LoadFailure",
    "RecordAlchemyError",
    "RecordTypeMismatch",
    "RelationshipError",
    "SynchronousRelationshipNotLoaded",
    "UnknownInverse",
    "UnknownRecordType",
    "UnknownRelationship",

    # Version
    "__version__",
]
