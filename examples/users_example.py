"""
Example demonstrating docrecord models against a document store.

This example shows how to:
1. Declare models sharing one registry
2. Save, reload, update and delete records
3. Page through records with finders
4. Audit every query with a custom hook

Runs against the in-memory store by default. Set DOCRECORD_MONGO_URI to
run against a real MongoDB server instead.
"""

import asyncio
import logging
import os

from docrecord import Attribute, InMemoryClient, Model, Registry, Store, StoreConfig


class QueryAudit:
    """Collects every query the models of one registry run."""

    def __init__(self):
        self.entries = []

    def record(self, query):
        self.entries.append(query)
        kind = query["type"] if query else "no-op"
        print(f"[AUDIT] {kind}")


audit = QueryAudit()
registry = Registry(query_log=audit.record)


class User(Model, registry=registry):
    """User account."""
    username = Attribute(str, required=True)
    role = Attribute(str, default="member")


class Post(Model, registry=registry):
    """Blog post written by a user."""
    author_id = Attribute(str, required=True)
    title = Attribute(str, required=True)


async def example_1_save_and_reload():
    """Insert a record, then read it back by identifier."""
    print("\n" + "=" * 60)
    print("Example 1: Save and reload")
    print("=" * 60)

    user = await User(username="Billy").save()
    print(f"   Saved {user!r}")

    again = await User.one(user.id)
    print(f"   Reloaded username: {again.username}")


async def example_2_update_and_delete():
    """Change a stored record, then remove it."""
    print("\n" + "=" * 60)
    print("Example 2: Update and delete")
    print("=" * 60)

    user = await User(username="wutwut").save()
    user.role = "admin"
    print(f"   Pending changes: {user.dirty}")
    await user.save()
    print(f"   Pending after save: {user.dirty}")

    # Saving without changes never reaches the store
    await user.save()

    print(f"   Deleted: {await user.delete()}")
    print(f"   Deleted again: {await user.delete()}")


async def example_3_finders():
    """Page through records."""
    print("\n" + "=" * 60)
    print("Example 3: Finders")
    print("=" * 60)

    author = await User(username="phobosman").save()
    await Post.insert_many([
        {"author_id": str(author.id), "title": title}
        for title in ["Hello", "Again", "Finally"]
    ])

    posts = await Post.all(sort="title", order="DESC", limit=2)
    print(f"   Last two titles: {[post.title for post in posts]}")
    print(f"   Posts by author: {await Post.count({'author_id': str(author.id)})}")

    first = await Post.first(sort="title")
    print(f"   First title: {first.title}")


async def main():
    """Run all examples."""
    logging.basicConfig(level=logging.INFO)

    print("\n" + "#" * 60)
    print("# docrecord - Model Examples")
    print("#" * 60)

    if os.environ.get("DOCRECORD_MONGO_URI"):
        store = Store()
        config = StoreConfig.from_env()
    else:
        store = Store(client_factory=InMemoryClient)
        config = StoreConfig(uri="mongodb://localhost/docrecord_example")

    handle = await store.init(config)
    await registry.bind(handle)

    try:
        await example_1_save_and_reload()
        await example_2_update_and_delete()
        await example_3_finders()

        print("\n" + "=" * 60)
        print(f"All examples completed! {len(audit.entries)} queries audited.")
        print("=" * 60)

    finally:
        # Cleanup
        await User.drop()
        await Post.drop()
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
