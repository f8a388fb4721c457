#!/usr/bin/env python3
"""
RecordAlchemy Relationship Example

This example walks through a small blog client:
- Declarative has-many / belongs-to relationships on Pydantic V2 records
- Records pushed from already decoded API payloads
- Lazy async loading with a shared pending handle
- Bidirectional updates from either side of a relationship
- Observers reacting to membership changes
"""

import asyncio
import logging
from typing import Dict, List, Tuple

from pydantic import Field

from recordalchemy import DataSession, Record, belongs_to, has_many


# =============================================================================
# DEFINE RECORDS
# =============================================================================

class Post(Record):
    """Blog post."""
    title: str = Field(default="", max_length=200)
    comments = has_many("comment", async_=True)
    author = belongs_to("user", async_=False)


class Comment(Record):
    """Comment on a post."""
    body: str = Field(default="", max_length=2000)
    post = belongs_to("post", async_=False)


class User(Record):
    """Author of posts."""
    name: str = Field(default="", max_length=100)
    posts = has_many("post", async_=True)


# =============================================================================
# FAKE BACKEND
# =============================================================================

COMMENT_ROWS: Dict[str, List[Tuple[str, str]]] = {
    "1": [("10", "Great post!"), ("11", "Thanks for sharing")],
}


class BlogApiLoader:
    """Pretends to call a REST API and pushes the decoded rows into the session."""

    def __init__(self):
        self.session = None
        self.requests = 0

    async def load(self, owner, key):
        self.requests += 1
        print(f"  -> GET /{owner.type_name()}s/{owner.id}/{key}")
        await asyncio.sleep(0.05)

        if (owner.type_name(), key) != ("post", "comments"):
            return []
        return [
            self.session.push("comment", comment_id, {"body": body}, {"post": owner})
            for comment_id, body in COMMENT_ROWS.get(owner.id, [])
        ]


async def main():
    logging.basicConfig(level=logging.INFO)

    loader = BlogApiLoader()
    session = DataSession(loader=loader)
    loader.session = session
    session.register(Post, Comment, User)

    print("\n1. Pushing records from a payload")
    alice = session.push("user", "u1", {"name": "Alice"})
    post = session.push("post", "1", {"title": "Hello RecordAlchemy"}, {"author": "u1"})
    print(f"   {post.title!r} by {post.author.get().name}")
    print(f"   alice.posts resident: {[p.title for p in alice.posts]}")

    print("\n2. Observing changes")
    post.add_observer("comments", lambda record, key: print(f"   * {record!r}.{key} changed"))

    print("\n3. Lazy async loading (two reads, one request)")
    first = post.comments.get()
    second = post.comments.get()
    print(f"   same pending handle: {first is second}")
    comments = await first
    print(f"   loaded: {[c.body for c in comments]} (requests: {loader.requests})")

    print("\n4. Inverse kept in sync")
    print(f"   comments[0].post is post: {comments[0].post.get() is post}")

    print("\n5. Mutating from the other side")
    reply = session.create(Comment, body="Me too")
    reply.post.set(post)
    print(f"   post.comments now: {[c.body for c in post.comments.get()]}")

    print("\n6. Moving a comment to another post")
    draft = session.create(Post, title="Draft")
    draft.comments.add(comments[0])
    print(f"   post.comments: {[c.body for c in post.comments.get()]}")
    print(f"   draft.comments: {[c.body for c in draft.comments.get()]}")


if __name__ == "__main__":
    asyncio.run(main())
