"""
Tests for basic CRUD operations across stores.

This test file uses the multi-store testing pattern: the same tests run
against the in-memory store and, when configured, a real MongoDB server.
"""

import pytest
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError

from docrecord import Attribute, DuplicateKeyError, Model, Registry
from docrecord.testing import MultiStoreTestBase

pytestmark = pytest.mark.anyio

registry = Registry()


# Test models
class User(Model, registry=registry):
    """Simple user model for testing."""
    email = Attribute(str, required=True)
    name = Attribute(str)
    age = Attribute(int, default=0)


class TodoItem(Model, registry=registry):
    """Todo item for testing."""
    user_id = Attribute(str, required=True)
    title = Attribute(str, required=True)
    completed = Attribute(bool, default=False)


@pytest.fixture(autouse=True)
async def bound(store, anyio_backend):
    """Bind every model of the registry to this test's store."""
    await registry.bind(store)
    return store


class TestCRUDOperations(MultiStoreTestBase):
    """Test basic CRUD operations across all stores."""

    async def test_create_user(self):
        """Test creating a user record."""
        user = await User(email="alice@example.com", name="Alice", age=30).save()

        assert user.id is not None
        assert user.email == "alice@example.com"
        assert user.name == "Alice"
        assert user.age == 30
        assert user.get("updated_at") is not None

    async def test_create_duplicate_raises_error(self):
        """Test that reusing an identifier is reported by the store."""
        user = await User(email="alice@example.com").save()

        with pytest.raises((DuplicateKeyError, MongoDuplicateKeyError)):
            await User.run_query({"type": "insert", "where": {"_id": user.id, "email": "other@example.com"}})

    async def test_get_user(self):
        """Test retrieving a user by identifier."""
        created = await User(email="bob@example.com", name="Bob").save()

        user = await User.one(created.id)
        assert user is not None
        assert user.id == created.id
        assert user.name == "Bob"

    async def test_get_nonexistent_returns_none(self):
        """Test that a missing identifier yields None."""
        assert await User.one(Model.ObjectId()) is None

    async def test_update_user(self):
        """Test updating a stored user."""
        user = await User(email="charlie@example.com", name="Charlie", age=25).save()

        user.name = "Charles"
        user.age = 26
        await user.save()

        reloaded = await User.one(user.id)
        assert reloaded.name == "Charles"
        assert reloaded.age == 26
        assert reloaded.email == "charlie@example.com"
        assert await User.count() == 1

    async def test_delete_user(self):
        """Test deleting a user."""
        user = await User(email="dave@example.com").save()
        user_id = user.id

        assert await user.delete() is True
        assert await User.one(user_id) is None
        assert await user.delete() is False

    async def test_find_by_field(self):
        """Test filtering by field equality."""
        await User(email="alice@example.com", age=30).save()
        await User(email="bob@example.com", age=25).save()
        await User(email="carol@example.com", age=30).save()

        thirty = await User.find({"age": 30}, sort="email")
        assert [user.email for user in thirty] == ["alice@example.com", "carol@example.com"]
        assert await User.count({"age": 30}) == 2

    async def test_paging(self):
        """Test sort, skip and limit together."""
        for age in [40, 10, 30, 20]:
            await User(email=f"user{age}@example.com", age=age).save()

        page = await User.all(sort="age", order="DESC", skip=1, limit=2)
        assert [user.age for user in page] == [30, 20]

    async def test_first_and_last(self):
        """Test single-row finders."""
        for age in [40, 10, 30]:
            await User(email=f"user{age}@example.com", age=age).save()

        assert (await User.first(sort="age")).age == 10
        assert (await User.last(sort="age")).age == 40
        assert await User.first({"age": 99}) is None

    async def test_models_use_separate_collections(self):
        """Test that each model reads only its own collection."""
        user = await User(email="alice@example.com").save()
        await TodoItem(user_id=str(user.id), title="Write tests").save()
        await TodoItem(user_id=str(user.id), title="Ship it").save()

        assert await User.count() == 1
        assert await TodoItem.count({"user_id": str(user.id)}) == 2

    async def test_insert_many_and_drop(self):
        """Test bulk insert followed by dropping the collection."""
        todos = await TodoItem.insert_many([
            {"user_id": "u1", "title": "one"},
            {"user_id": "u1", "title": "two"},
        ])
        assert len(todos) == 2
        assert await TodoItem.count() == 2

        await TodoItem.drop()
        assert await TodoItem.count() == 0
