# tests/conftest.py
"""
Shared fixtures for the relationship core tests.

The core only needs records exposing ``type_name()``; ``Node`` is the
smallest such record, and ``DictSchema`` the smallest schema view.
"""

from typing import Any, Dict, List, Mapping, Tuple

import pytest

from recordalchemy.core.descriptors import RelationshipDescriptor, RelationshipKind, build_descriptor
from recordalchemy.core.engine import RelationshipGraphEngine
from recordalchemy.core.inverse import InverseResolver
from recordalchemy.core.state import LoadStatus, RelationshipState


HAS_MANY = RelationshipKind.HAS_MANY
BELONGS_TO = RelationshipKind.BELONGS_TO


class Node:
    """Minimal record for core tests."""

    def __init__(self, kind: str, name: str):
        self._kind = kind
        self.name = name

    def type_name(self) -> str:
        return self._kind

    def __repr__(self) -> str:
        return f"{self._kind}:{self.name}"


class DictSchema:
    """Schema view built from ``{type: {key: descriptor}}``."""

    def __init__(self, types: Mapping[str, Mapping[str, RelationshipDescriptor]]):
        self.types = {name: dict(relationships) for name, relationships in types.items()}

    def relationships_for(self, type_name: str) -> Mapping[str, RelationshipDescriptor]:
        return self.types[type_name]


def rel(key: str, kind: RelationshipKind, type_name: str, **options: Any) -> RelationshipDescriptor:
    return build_descriptor(key, kind, type_name, options)


class RecordingNotifier:
    """Collects (record, key) notifications."""

    def __init__(self):
        self.calls: List[Tuple[Any, str]] = []

    def notify(self, record: Any, key: str) -> None:
        self.calls.append((record, key))

    def reset(self) -> None:
        self.calls.clear()


class Graph:
    """Engine plus the state storage it needs, for core tests."""

    def __init__(self, schema: DictSchema, status: LoadStatus = LoadStatus.LOADED):
        self.schema = schema
        self.status = status
        self.resolver = InverseResolver(schema)
        self.notifier = RecordingNotifier()
        self._states: Dict[Tuple[int, str], RelationshipState] = {}
        self._owners: List[Node] = []
        self.engine = RelationshipGraphEngine(self.resolver, self.state, self.notifier)

    def state(self, record: Node, key: str) -> RelationshipState:
        state_key = (id(record), key)
        if state_key not in self._states:
            descriptor = self.schema.relationships_for(record.type_name())[key]
            self._states[state_key] = RelationshipState(record, descriptor, self.status)
            self._owners.append(record)
        return self._states[state_key]

    def members(self, record: Node, key: str) -> List[Node]:
        return self.state(record, key).records()


@pytest.fixture
def blog_schema():
    """post.comments <-> comment.post, post.tags <-> tag.posts, user.friends (self)."""
    return DictSchema({
        "post": {
            "comments": rel("comments", HAS_MANY, "comment", **{"async": False}),
            "tags": rel("tags", HAS_MANY, "tag", **{"async": True}),
        },
        "comment": {
            "post": rel("post", BELONGS_TO, "post", **{"async": False}),
        },
        "tag": {
            "posts": rel("posts", HAS_MANY, "post", **{"async": True}),
        },
        "user": {
            "friends": rel("friends", HAS_MANY, "user", **{"async": False}),
            "profile": rel("profile", BELONGS_TO, "profile", **{"async": False}),
            "bookmarks": rel("bookmarks", HAS_MANY, "post", **{"async": False, "inverse": None}),
        },
        "profile": {
            "user": rel("user", BELONGS_TO, "user", **{"async": False}),
        },
    })


@pytest.fixture
def graph(blog_schema):
    return Graph(blog_schema)
