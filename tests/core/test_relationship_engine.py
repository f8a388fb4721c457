# tests/core/test_relationship_engine.py
"""
Tests for the RelationshipGraphEngine.

Covers:
- Symmetric add/remove/clear/set for one-to-many, many-to-many, one-to-one
- Idempotence and inverse repair
- Belongs-to replacement of the previous occupant
- Diff-based notifications
- Atomic failure on invalid input
- Self-relationships and one-sided relationships
"""

import random

import pytest

from conftest import Graph, Node
from recordalchemy.core.state import LoadStatus
from recordalchemy.exceptions import InvalidCardinality, RecordTypeMismatch


def assert_mirrored(graph, owners, key, related, inverse_key):
    """R2 in R1.key  <=>  R1 in R2.inverse_key for every pair."""
    for owner in owners:
        for other in related:
            forward = other in graph.state(owner, key)
            backward = owner in graph.state(other, inverse_key)
            assert forward == backward, f"{owner}.{key} / {other}.{inverse_key} out of sync"


# =============================================================================
# ADD
# =============================================================================

class TestAddRecords:
    """Adding members mirrors the owner on every inverse."""

    def test_add_has_many_updates_belongs_to(self, graph):
        post = Node("post", "p1")
        c1, c2 = Node("comment", "c1"), Node("comment", "c2")

        graph.engine.add_records(graph.state(post, "comments"), [c1, c2])

        assert graph.members(post, "comments") == [c1, c2]
        assert graph.members(c1, "post") == [post]
        assert graph.members(c2, "post") == [post]

    def test_add_belongs_to_updates_has_many(self, graph):
        post = Node("post", "p1")
        comment = Node("comment", "c1")

        graph.engine.add_records(graph.state(comment, "post"), [post])

        assert graph.members(post, "comments") == [comment]

    def test_add_preserves_insertion_order(self, graph):
        post = Node("post", "p1")
        comments = [Node("comment", f"c{i}") for i in range(5)]

        graph.engine.add_records(graph.state(post, "comments"), comments[3:])
        graph.engine.add_records(graph.state(post, "comments"), comments[:3])

        assert graph.members(post, "comments") == comments[3:] + comments[:3]

    def test_add_twice_is_idempotent(self, graph):
        post = Node("post", "p1")
        comment = Node("comment", "c1")
        state = graph.state(post, "comments")

        graph.engine.add_records(state, [comment])
        graph.notifier.reset()
        graph.engine.add_records(state, [comment])

        assert graph.members(post, "comments") == [comment]
        assert graph.members(comment, "post") == [post]
        assert graph.notifier.calls == []

    def test_duplicates_in_one_call_count_once(self, graph):
        post = Node("post", "p1")
        comment = Node("comment", "c1")

        graph.engine.add_records(graph.state(post, "comments"), [comment, comment])

        assert graph.members(post, "comments") == [comment]
        assert len(graph.notifier.calls) == 2

    def test_readd_repairs_missing_inverse(self, graph):
        post = Node("post", "p1")
        comment = Node("comment", "c1")
        state = graph.state(post, "comments")
        state._insert(comment)  # corrupt: forward edge only

        graph.engine.add_records(state, [comment])

        assert graph.members(comment, "post") == [post]
        assert graph.notifier.calls == [(comment, "post")]

    def test_add_notifies_each_changed_record_once(self, graph):
        post = Node("post", "p1")
        c1, c2 = Node("comment", "c1"), Node("comment", "c2")

        graph.engine.add_records(graph.state(post, "comments"), [c1, c2])

        assert graph.notifier.calls == [(post, "comments"), (c1, "post"), (c2, "post")]

    def test_add_marks_both_sides_dirty(self, graph):
        post = Node("post", "p1")
        comment = Node("comment", "c1")

        graph.engine.add_records(graph.state(post, "comments"), [comment])

        assert graph.state(post, "comments").is_dirty
        assert graph.state(comment, "post").is_dirty
        assert graph.state(post, "comments").status is LoadStatus.LOADED


# =============================================================================
# REMOVE AND CLEAR
# =============================================================================

class TestRemoveAndClear:
    """Removal is symmetric; absent members are ignored."""

    def test_remove_is_symmetric(self, graph):
        post = Node("post", "p1")
        c1, c2 = Node("comment", "c1"), Node("comment", "c2")
        graph.engine.add_records(graph.state(post, "comments"), [c1, c2])

        graph.engine.remove_records(graph.state(post, "comments"), [c1])

        assert graph.members(post, "comments") == [c2]
        assert graph.members(c1, "post") == []
        assert graph.members(c2, "post") == [post]

    def test_remove_from_belongs_to_side(self, graph):
        post = Node("post", "p1")
        comment = Node("comment", "c1")
        graph.engine.add_records(graph.state(post, "comments"), [comment])

        graph.engine.remove_records(graph.state(comment, "post"), [post])

        assert graph.members(post, "comments") == []

    def test_remove_absent_is_noop(self, graph):
        post = Node("post", "p1")
        c1, c2 = Node("comment", "c1"), Node("comment", "c2")
        graph.engine.add_records(graph.state(post, "comments"), [c1])
        graph.notifier.reset()

        graph.engine.remove_records(graph.state(post, "comments"), [c2])

        assert graph.members(post, "comments") == [c1]
        assert graph.notifier.calls == []

    def test_clear_removes_everything_symmetrically(self, graph):
        post = Node("post", "p1")
        comments = [Node("comment", f"c{i}") for i in range(3)]
        graph.engine.add_records(graph.state(post, "comments"), comments)
        graph.notifier.reset()

        graph.engine.clear(graph.state(post, "comments"))

        assert graph.members(post, "comments") == []
        for comment in comments:
            assert graph.members(comment, "post") == []
        assert len(graph.notifier.calls) == 4

    def test_clear_empty_does_not_notify(self, graph):
        graph.engine.clear(graph.state(Node("post", "p1"), "comments"))
        assert graph.notifier.calls == []


# =============================================================================
# BELONGS-TO REPLACEMENT
# =============================================================================

class TestToOneReplacement:
    """A new to-one value detaches the previous occupant on both sides."""

    def test_set_belongs_to_detaches_previous_post(self, graph):
        p1, p2 = Node("post", "p1"), Node("post", "p2")
        comment = Node("comment", "c1")
        graph.engine.set(graph.state(comment, "post"), [p1])
        graph.notifier.reset()

        graph.engine.set(graph.state(comment, "post"), [p2])

        assert graph.members(comment, "post") == [p2]
        assert graph.members(p1, "comments") == []
        assert graph.members(p2, "comments") == [comment]
        assert sorted(key for _, key in graph.notifier.calls) == ["comments", "comments", "post"]

    def test_adding_single_record_replaces_occupant(self, graph):
        p1, p2 = Node("post", "p1"), Node("post", "p2")
        comment = Node("comment", "c1")
        graph.engine.add_records(graph.state(comment, "post"), [p1])

        graph.engine.add_records(graph.state(comment, "post"), [p2])

        assert graph.members(comment, "post") == [p2]
        assert comment not in graph.state(p1, "comments")

    def test_moving_comment_between_posts_from_has_many_side(self, graph):
        p1, p2 = Node("post", "p1"), Node("post", "p2")
        comment = Node("comment", "c1")
        graph.engine.add_records(graph.state(p1, "comments"), [comment])

        graph.engine.add_records(graph.state(p2, "comments"), [comment])

        assert graph.members(p1, "comments") == []
        assert graph.members(p2, "comments") == [comment]
        assert graph.members(comment, "post") == [p2]

    def test_one_to_one_reassignment(self, graph):
        alice, bob = Node("user", "alice"), Node("user", "bob")
        profile_a, profile_b = Node("profile", "a"), Node("profile", "b")
        graph.engine.set(graph.state(alice, "profile"), [profile_a])
        graph.engine.set(graph.state(bob, "profile"), [profile_b])

        graph.engine.set(graph.state(alice, "profile"), [profile_b])

        assert graph.members(alice, "profile") == [profile_b]
        assert graph.members(profile_b, "user") == [alice]
        assert graph.members(bob, "profile") == []
        assert graph.members(profile_a, "user") == []

    def test_set_belongs_to_to_nothing(self, graph):
        post = Node("post", "p1")
        comment = Node("comment", "c1")
        graph.engine.set(graph.state(comment, "post"), [post])

        graph.engine.set(graph.state(comment, "post"), [])

        assert graph.members(comment, "post") == []
        assert graph.members(post, "comments") == []


# =============================================================================
# SET
# =============================================================================

class TestSetRecords:
    """Set replaces membership and notifies only real changes."""

    def test_set_unchanged_members_triggers_no_notifications(self, graph):
        post = Node("post", "p1")
        comments = [Node("comment", f"c{i}") for i in range(3)]
        state = graph.state(post, "comments")
        graph.engine.set(state, comments)
        graph.notifier.reset()

        graph.engine.set(state, list(comments))

        assert graph.notifier.calls == []

    def test_set_with_one_new_member_notifies_owner_and_new_member(self, graph):
        post = Node("post", "p1")
        comments = [Node("comment", f"c{i}") for i in range(3)]
        new_one = Node("comment", "new")
        state = graph.state(post, "comments")
        graph.engine.set(state, comments)
        graph.notifier.reset()

        graph.engine.set(state, comments + [new_one])

        assert graph.notifier.calls == [(post, "comments"), (new_one, "post")]
        assert graph.members(post, "comments") == comments + [new_one]

    def test_set_removes_dropped_members(self, graph):
        post = Node("post", "p1")
        c1, c2, c3 = (Node("comment", n) for n in ("c1", "c2", "c3"))
        state = graph.state(post, "comments")
        graph.engine.set(state, [c1, c2])
        graph.notifier.reset()

        graph.engine.set(state, [c2, c3])

        assert graph.members(post, "comments") == [c2, c3]
        assert graph.members(c1, "post") == []
        assert graph.members(c3, "post") == [post]
        assert set(graph.notifier.calls) == {(post, "comments"), (c1, "post"), (c3, "post")}

    def test_set_reorder_notifies_owner_only(self, graph):
        post = Node("post", "p1")
        c1, c2 = Node("comment", "c1"), Node("comment", "c2")
        state = graph.state(post, "comments")
        graph.engine.set(state, [c1, c2])
        graph.notifier.reset()

        graph.engine.set(state, [c2, c1])

        assert graph.members(post, "comments") == [c2, c1]
        assert graph.notifier.calls == [(post, "comments")]

    def test_set_steals_member_from_other_post(self, graph):
        p1, p2 = Node("post", "p1"), Node("post", "p2")
        comment = Node("comment", "c1")
        graph.engine.set(graph.state(p1, "comments"), [comment])

        graph.engine.set(graph.state(p2, "comments"), [comment])

        assert graph.members(p1, "comments") == []
        assert graph.members(p2, "comments") == [comment]


# =============================================================================
# ATOMIC FAILURES
# =============================================================================

class TestAtomicFailures:
    """Invalid input fails before any edge changes."""

    def test_multiple_records_on_belongs_to_fail(self, graph):
        p1, p2 = Node("post", "p1"), Node("post", "p2")
        comment = Node("comment", "c1")

        with pytest.raises(InvalidCardinality):
            graph.engine.add_records(graph.state(comment, "post"), [p1, p2])

        assert graph.members(comment, "post") == []
        assert graph.members(p1, "comments") == []
        assert graph.notifier.calls == []

    def test_set_multiple_on_belongs_to_keeps_previous_value(self, graph):
        p1, p2, p3 = (Node("post", n) for n in ("p1", "p2", "p3"))
        comment = Node("comment", "c1")
        graph.engine.set(graph.state(comment, "post"), [p1])

        with pytest.raises(InvalidCardinality):
            graph.engine.set(graph.state(comment, "post"), [p2, p3])

        assert graph.members(comment, "post") == [p1]
        assert graph.members(p1, "comments") == [comment]

    def test_wrong_record_type_fails_without_partial_mutation(self, graph):
        post = Node("post", "p1")
        comment = Node("comment", "c1")
        tag = Node("tag", "t1")

        with pytest.raises(RecordTypeMismatch):
            graph.engine.add_records(graph.state(post, "comments"), [comment, tag])

        assert graph.members(post, "comments") == []
        assert graph.members(comment, "post") == []

    def test_none_is_rejected(self, graph):
        with pytest.raises(RecordTypeMismatch):
            graph.engine.set(graph.state(Node("comment", "c1"), "post"), [None])


# =============================================================================
# SELF AND ONE-SIDED RELATIONSHIPS
# =============================================================================

class TestSpecialRelationships:

    def test_record_added_to_its_own_self_relationship(self, graph):
        alice = Node("user", "alice")

        graph.engine.add_records(graph.state(alice, "friends"), [alice])

        assert graph.members(alice, "friends") == [alice]
        assert graph.notifier.calls == [(alice, "friends")]

    def test_removing_self_member(self, graph):
        alice = Node("user", "alice")
        graph.engine.add_records(graph.state(alice, "friends"), [alice])
        graph.notifier.reset()

        graph.engine.remove_records(graph.state(alice, "friends"), [alice])

        assert graph.members(alice, "friends") == []
        assert graph.notifier.calls == [(alice, "friends")]

    def test_self_relationship_between_two_records_is_mirrored(self, graph):
        alice, bob = Node("user", "alice"), Node("user", "bob")

        graph.engine.add_records(graph.state(alice, "friends"), [bob])

        assert graph.members(bob, "friends") == [alice]

    def test_one_sided_relationship_touches_only_owner(self, graph):
        alice = Node("user", "alice")
        post = Node("post", "p1")

        graph.engine.add_records(graph.state(alice, "bookmarks"), [post])

        assert graph.members(alice, "bookmarks") == [post]
        assert graph.notifier.calls == [(alice, "bookmarks")]


# =============================================================================
# INVARIANT AND NOTIFICATION ORDERING
# =============================================================================

class TestBidirectionalInvariant:

    def test_random_many_to_many_operations_keep_sides_in_sync(self, graph):
        rng = random.Random(1234)
        posts = [Node("post", f"p{i}") for i in range(4)]
        tags = [Node("tag", f"t{i}") for i in range(4)]

        for _ in range(200):
            if rng.random() < 0.5:
                owner, key, pool = rng.choice(posts), "tags", tags
            else:
                owner, key, pool = rng.choice(tags), "posts", posts
            state = graph.state(owner, key)
            sample = rng.sample(pool, rng.randint(0, len(pool)))

            operation = rng.choice(["add", "remove", "set", "clear"])
            if operation == "add":
                graph.engine.add_records(state, sample)
            elif operation == "remove":
                graph.engine.remove_records(state, sample)
            elif operation == "set":
                graph.engine.set(state, sample)
            else:
                graph.engine.clear(state)

            assert_mirrored(graph, posts, "tags", tags, "posts")

    def test_random_one_to_many_operations_keep_sides_in_sync(self, graph):
        rng = random.Random(99)
        posts = [Node("post", f"p{i}") for i in range(3)]
        comments = [Node("comment", f"c{i}") for i in range(6)]

        for _ in range(200):
            if rng.random() < 0.5:
                owner = rng.choice(posts)
                graph.engine.set(graph.state(owner, "comments"), rng.sample(comments, rng.randint(0, 3)))
            else:
                comment = rng.choice(comments)
                target = rng.choice(posts + [None])
                graph.engine.set(graph.state(comment, "post"), [] if target is None else [target])

            assert_mirrored(graph, posts, "comments", comments, "post")
            for comment in comments:
                assert len(graph.state(comment, "post")) <= 1

    def test_notifications_see_completed_mutation(self, graph):
        post = Node("post", "p1")
        comments = [Node("comment", f"c{i}") for i in range(3)]
        seen = []

        def check(record, key):
            seen.append(key)
            assert_mirrored(graph, [post], "comments", comments, "post")

        graph.notifier.notify = check
        graph.engine.add_records(graph.state(post, "comments"), comments)

        assert len(seen) == 4


# =============================================================================
# SERVER-CONFIRMED LOADS
# =============================================================================

class TestMarkLoaded:

    def test_mark_loaded_populates_and_cleans(self, blog_schema):
        graph = Graph(blog_schema, status=LoadStatus.EMPTY)
        post = Node("post", "p1")
        c1, c2 = Node("comment", "c1"), Node("comment", "c2")
        state = graph.state(post, "comments")

        graph.engine.mark_loaded(state, [c1, c2])

        assert state.status is LoadStatus.LOADED
        assert not state.is_dirty
        assert state.records() == [c1, c2]
        assert graph.members(c1, "post") == [post]

    def test_mark_loaded_rejects_several_records_for_belongs_to(self, blog_schema):
        graph = Graph(blog_schema, status=LoadStatus.EMPTY)
        comment = Node("comment", "c1")
        p1, p2 = Node("post", "p1"), Node("post", "p2")
        state = graph.state(comment, "post")

        with pytest.raises(InvalidCardinality):
            graph.engine.mark_loaded(state, [p1, p2])

        assert state.status is LoadStatus.EMPTY
        assert state.records() == []
        assert graph.members(p1, "comments") == []
