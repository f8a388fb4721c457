# src/recordalchemy/orm/accessors.py
"""
RecordAlchemy Relationship Accessors

Declarative relationship attributes for record classes:

    class Post(Record):
        title: str
        comments = has_many("comment", async_=True)

    class Comment(Record):
        body: str
        post = belongs_to("post", async_=False)

Accessing ``post.comments`` on an instance returns a reference bound to that
record; every read and mutation goes through the record's data session.
"""

from __future__ import annotations

from typing import Any, ClassVar, Iterable, Iterator, List, Mapping, Optional, Type, Union, TYPE_CHECKING
import asyncio

from recordalchemy.core.descriptors import (
    RelationshipDescriptor,
    RelationshipKind,
    _UNSET,
    build_descriptor,
)
from recordalchemy.core.state import RelationshipState
from recordalchemy.exceptions import DetachedRecordError

if TYPE_CHECKING:
    from recordalchemy.orm.records import Record
    from recordalchemy.orm.session import DataSession


class RelationshipReference:
    """Relationship of one record instance."""

    def __init__(self, record: 'Record', key: str):
        self.record = record
        self.key = key

    @property
    def session(self) -> 'DataSession':
        session = self.record._session
        if session is None:
            raise DetachedRecordError(
                f"{self.record!r} is not attached to a DataSession; "
                f"create it with session.create() or session.push()"
            )
        return session

    @property
    def state(self) -> RelationshipState:
        return self.session.state_for(self.record, self.key)

    @property
    def descriptor(self) -> RelationshipDescriptor:
        return self.state.descriptor

    @property
    def is_loaded(self) -> bool:
        return self.state.is_loaded

    def reload(self) -> asyncio.Future:
        """Reload members from the external loader."""
        return self.session.reload(self.record, self.key)

    def clear(self) -> None:
        self.session.clear(self.record, self.key)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.record!r}.{self.key}>"


class HasManyReference(RelationshipReference):
    """To-many relationship of one record."""

    def get(self) -> Union[List[Any], asyncio.Future]:
        """
        Current members.

        Returns:
            A list when the members are resident, a pending handle otherwise
        """
        return self.session.get_records(self.record, self.key)

    async def load(self) -> List[Any]:
        """Members, loading them first when needed."""
        return await self.session.fetch(self.record, self.key)

    def set(self, records: Iterable[Any]) -> None:
        self.session.set(self.record, self.key, records)

    def add(self, *records: Any) -> None:
        self.session.add(self.record, self.key, records)

    def remove(self, *records: Any) -> None:
        self.session.remove(self.record, self.key, records)

    # Resident members only; these never trigger a load
    def __iter__(self) -> Iterator[Any]:
        return iter(self.state.records())

    def __len__(self) -> int:
        return len(self.state)

    def __contains__(self, record: Any) -> bool:
        return self.state.contains(record)


class BelongsToReference(RelationshipReference):
    """To-one relationship of one record."""

    def get(self) -> Union[Any, None, asyncio.Future]:
        """
        Current related record.

        Returns:
            The record (or None) when resident, a pending handle resolving
            to it otherwise
        """
        state = self.state
        value = self.session.materializer.get_records(state)
        if isinstance(value, list):
            return value[0] if value else None

        # One unwrapped handle per in-flight load
        if state.pending_first is None or state.pending_first[0] is not value:
            state.pending_first = (value, asyncio.ensure_future(_first(value)))
        return state.pending_first[1]

    async def load(self) -> Optional[Any]:
        records = await self.session.fetch(self.record, self.key)
        return records[0] if records else None

    def set(self, record: Optional[Any]) -> None:
        self.session.set(self.record, self.key, [] if record is None else [record])


async def _first(pending: asyncio.Future) -> Optional[Any]:
    records = await pending
    return records[0] if records else None


# =============================================================================
# DECLARATIONS
# =============================================================================

class RelationshipAccessor:
    """
    Class attribute declaring a relationship.

    The descriptor is built when the attribute is bound to its class, so the
    key is always the attribute name.
    """

    kind: ClassVar[RelationshipKind]
    reference_class: ClassVar[Type[RelationshipReference]]

    def __init__(
        self,
        type_name: Union[str, Mapping[str, Any], None] = None,
        options: Optional[Mapping[str, Any]] = None,
        *,
        async_: Any = _UNSET,
        inverse: Any = _UNSET
    ):
        if isinstance(type_name, Mapping):
            options, type_name = type_name, None
        if type_name is not None and not isinstance(type_name, str):
            raise TypeError(
                f"The related type of a relationship must be a type name string, "
                f"not {type_name!r}. E.g. has_many('comment')"
            )

        self.type_name = type_name
        self.options = dict(options or {})
        self._async = async_
        self._inverse = inverse
        self.key: Optional[str] = None
        self.descriptor: Optional[RelationshipDescriptor] = None

    def __set_name__(self, owner, name):
        self.key = name
        self.descriptor = build_descriptor(
            name,
            self.kind,
            self.type_name,
            self.options,
            async_=self._async,
            inverse=self._inverse,
        )

    def __get__(self, instance, owner):
        if instance is None:
            return self
        return self.reference_class(instance, self.key)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.descriptor!r})"


class HasManyAccessor(RelationshipAccessor):
    kind = RelationshipKind.HAS_MANY
    reference_class = HasManyReference


class BelongsToAccessor(RelationshipAccessor):
    kind = RelationshipKind.BELONGS_TO
    reference_class = BelongsToReference


def has_many(
    type_name: Union[str, Mapping[str, Any], None] = None,
    options: Optional[Mapping[str, Any]] = None,
    *,
    async_: Any = _UNSET,
    inverse: Any = _UNSET
) -> HasManyAccessor:
    """
    Declare a one-to-many or many-to-many relationship.

    Args:
        type_name: Related record type; inferred from the attribute name
            (singularized) when omitted
        options: ``{"async": bool, "inverse": str | None}``
        async_: Keyword form of ``options["async"]``
        inverse: Relationship on the related type mirroring this one;
            ``None`` declares a one-sided relationship

    Example:
        ```python
        class Post(Record):
            comments = has_many("comment", async_=False)
            tags = has_many(async_=True)          # related type "tag"
            watchers = has_many("user", inverse="watched")
        ```
    """
    return HasManyAccessor(type_name, options, async_=async_, inverse=inverse)


def belongs_to(
    type_name: Union[str, Mapping[str, Any], None] = None,
    options: Optional[Mapping[str, Any]] = None,
    *,
    async_: Any = _UNSET,
    inverse: Any = _UNSET
) -> BelongsToAccessor:
    """Declare a to-one relationship. Arguments as for ``has_many``."""
    return BelongsToAccessor(type_name, options, async_=async_, inverse=inverse)
