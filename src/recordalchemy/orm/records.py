# src/recordalchemy/orm/records.py
"""
RecordAlchemy Record - Pydantic V2 Record Base Class

Records mirror rows of a remote data source. They are identity-mapped: one
instance per (type, id) inside a data session, so equality is identity.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, List, Optional, Type, TypeVar, Union, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from recordalchemy.core.descriptors import normalize_type_name
from recordalchemy.core.state import RelationshipState
from recordalchemy.orm.accessors import RelationshipAccessor

if TYPE_CHECKING:
    from recordalchemy.orm.session import DataSession

RecordType = TypeVar('RecordType', bound='Record')

Observer = Callable[['Record', str], None]


class Record(BaseModel):
    """
    Base class for records with declarative relationships.

    Example:
        ```python
        class Post(Record):
            title: str = Field(min_length=1)
            comments = has_many("comment", async_=True)

        class Comment(Record):
            body: str
            post = belongs_to("post", async_=False)

        session = DataSession(loader=api_loader)
        session.register(Post, Comment)

        post = session.create(Post, title="Hello")
        comment = session.create(Comment, body="First!")
        post.comments.add(comment)
        assert comment.post.get() is post
        ```
    """

    id: Optional[str] = Field(default=None, description="Remote identifier; None until persisted")

    model_config = ConfigDict(
        validate_assignment=True,
        extra='forbid',
        arbitrary_types_allowed=True,
        ignored_types=(RelationshipAccessor,),
    )

    _type_name: ClassVar[Optional[str]] = None

    _session: Any = PrivateAttr(default=None)
    _is_persisted: bool = PrivateAttr(default=False)
    _relationship_states: Dict[str, RelationshipState] = PrivateAttr(default_factory=dict)
    _observers: Dict[str, List[Observer]] = PrivateAttr(default_factory=dict)

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id_to_string(cls, v):
        """Identifiers are always strings."""
        return None if v is None else str(v)

    # Identity-mapped: one instance per remote row
    def __eq__(self, other: Any) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)

    @classmethod
    def type_name(cls) -> str:
        """Normalized type name of this record class."""
        return cls.__dict__.get('_type_name') or normalize_type_name(cls.__name__)

    @classmethod
    def declared_relationships(cls) -> Dict[str, RelationshipAccessor]:
        """Relationship accessors declared on this class and its bases."""
        declared: Dict[str, RelationshipAccessor] = {}
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if isinstance(value, RelationshipAccessor):
                    declared[name] = value
        return declared

    @property
    def session(self) -> Optional['DataSession']:
        return self._session

    @property
    def is_new(self) -> bool:
        """True until the record is known to the remote data source."""
        return not self._is_persisted

    # =============================================================================
    # CHANGE NOTIFICATION
    # =============================================================================

    def add_observer(self, key: str, callback: Observer) -> None:
        """Call ``callback(record, key)`` whenever ``key`` changes."""
        self._observers.setdefault(key, []).append(callback)

    def remove_observer(self, key: str, callback: Observer) -> None:
        callbacks = self._observers.get(key, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def notify_property_change(self, key: str) -> None:
        for callback in list(self._observers.get(key, [])):
            callback(self, key)

    def __repr__(self) -> str:
        status = "persisted" if self._is_persisted else "new"
        return f"{self.__class__.__name__}(id={self.id!r} ({status}))"


# =============================================================================
# DECORATOR FUNCTION
# =============================================================================

def record_type(
    cls: Optional[Type] = None,
    *,
    name: Optional[str] = None
) -> Union[Type[Record], Callable[[Type], Type]]:
    """
    Override the type name of a record class.

    Example:
        ```python
        @record_type(name="blog-entry")
        class Post(Record):
            title: str
        ```
    """
    def decorator(target_cls: Type) -> Type:
        if not issubclass(target_cls, Record):
            raise TypeError("@record_type can only be applied to Record subclasses")
        target_cls._type_name = normalize_type_name(name) if name else None
        return target_cls

    if cls is None:
        return decorator
    else:
        return decorator(cls)
