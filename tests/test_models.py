"""
Tests for docrecord models.

Covers dirty tracking, attribute accessors, serialization and the
persistence operations against the in-memory store.
"""

from datetime import datetime, timedelta, timezone

import pytest

from docrecord import Attribute, InvalidArgument, Model, Registry


@pytest.fixture
def registry(query_log):
    """Fresh registry per test, recording every audited query."""
    return Registry(query_log=query_log)


@pytest.fixture
def User(registry):
    class User(Model, registry=registry):
        """Simple user model."""
        username = Attribute(str, required=True)
        role = Attribute(str, default="member")

    return User


@pytest.fixture
async def BoundUser(User, memory_store, anyio_backend):
    """User bound to an in-memory store."""
    await User.init(memory_store.handle)
    return User


class TestModelDefinition:
    """Test model class configuration."""

    def test_collection_name_is_pluralized_class_name(self, registry):
        class Widget(Model, registry=registry):
            pass

        class Person(Model, registry=registry):
            pass

        assert Widget.get_collection_name() == "widgets"
        assert Person.get_collection_name() == "people"
        assert Widget().collection_name == "widgets"

    def test_subclass_named_model(self, registry):
        model_class = type("Model", (Model,), {}, registry=registry)
        assert model_class().collection_name == "models"

    def test_explicit_collection_name(self, registry):
        class Account(Model, registry=registry):
            __collection__ = "ledger_accounts"

        assert Account().collection_name == "ledger_accounts"

    def test_instances_are_models(self, User):
        assert isinstance(User(), Model)

    def test_object_id_wrapper(self):
        from bson import ObjectId
        assert Model.ObjectId is ObjectId


class TestDirtyTracking:
    """Test the canonical/dirty split."""

    def test_new_payload_is_dirty(self, User):
        user = User({"username": "Billy"})
        assert user.dirty == {"username": "Billy"}
        assert user.canonical == {}
        assert not user.is_persisted

    def test_payload_with_identifier_is_canonical(self, User):
        user = User({"_id": "abc", "username": "Billy"})
        assert user.canonical == {"_id": "abc", "username": "Billy"}
        assert user.dirty == {}
        assert user.is_persisted

    def test_keyword_payload(self, User):
        user = User({"username": "Billy"}, role="admin")
        assert user.dirty == {"username": "Billy", "role": "admin"}

    def test_accessor_writes_are_dirty(self, User):
        user = User()
        user.username = "wutwut"
        assert user.to_object() == {"username": "wutwut"}
        assert user.dirty == {"username": "wutwut"}

    def test_get_prefers_dirty(self, User):
        user = User({"_id": "abc", "username": "Billy"})
        user.username = "Bill"
        assert user.username == "Bill"
        assert user.canonical["username"] == "Billy"

    def test_falsy_dirty_value_is_honoured(self, User):
        user = User({"_id": "abc", "active": True})
        user.set("active", False)
        assert user.get("active") is False

    def test_get_falls_back_and_defaults(self, User):
        user = User({"_id": "abc", "username": "Billy"})
        assert user.get("username") == "Billy"
        assert user.get("missing") is None
        assert user.get("missing", "x") == "x"

    def test_id_aliases_identifier(self, User):
        user = User({"_id": "abc"})
        assert user.get("id") == "abc"
        assert user.id == "abc"

    def test_set_id_aliases_identifier(self, User):
        user = User()
        user.set("id", "chosen")
        assert user.dirty == {"_id": "chosen"}

    def test_to_object_dirty_wins(self, User):
        user = User({"_id": "abc", "username": "Billy", "role": "member"})
        user.role = "admin"
        user.set("email", "b@example.com")
        assert user.to_object() == {
            "_id": "abc",
            "username": "Billy",
            "role": "admin",
            "email": "b@example.com",
        }

    def test_views_are_copies(self, User):
        user = User({"username": "Billy"})
        user.dirty["username"] = "changed"
        assert user.username == "Billy"


class TestAttributes:
    """Test attribute declaration and accessors."""

    def test_declared_attribute_gets_accessor(self, User):
        User.attribute("email", type=str)
        user = User()
        user.email = "billy@example.com"
        assert user.dirty == {"email": "billy@example.com"}

    def test_attribute_requires_name(self, User):
        with pytest.raises(InvalidArgument):
            User.attribute("", type=str)

    def test_attribute_cannot_shadow_model_members(self, User):
        with pytest.raises(InvalidArgument):
            User.attribute("save", type=str)

    def test_unknown_property_raises(self, User):
        with pytest.raises(InvalidArgument):
            User.attribute("email", kind=str)

    def test_accessor_on_class_is_attribute(self, User):
        assert isinstance(User.username, Attribute)
        assert User.username.name == "username"


class TestNoOpPersistence:
    """Test saves and deletes that never reach the store."""

    pytestmark = pytest.mark.anyio

    async def test_save_without_changes_is_noop(self, User, queries):
        """No store is bound, so any store access would raise."""
        user = User({"_id": "abc", "username": "Billy"})
        assert await user.save() is user
        assert queries == [None]

    async def test_delete_unsaved_is_noop(self, User, queries):
        user = User({"username": "Billy"})
        assert await user.delete() is False
        assert queries == [None]

    def test_one_without_identifier_raises_synchronously(self, User):
        """The error comes from the call itself, not from awaiting it."""
        with pytest.raises(InvalidArgument):
            User.one()


class TestPersistence:
    """Test save/delete/finders against the in-memory store."""

    pytestmark = pytest.mark.anyio

    async def test_save_inserts_new_record(self, BoundUser, queries):
        user = BoundUser({"username": "Billy"})
        assert await user.save() is user

        assert user.is_persisted
        assert user.id is not None
        assert user.dirty == {}
        assert user.canonical["username"] == "Billy"
        assert isinstance(user.canonical["updated_at"], datetime)
        assert queries[-1]["type"] == "insert"
        assert queries[-1]["where"]["username"] == "Billy"

    async def test_round_trip(self, BoundUser):
        user = BoundUser({"username": "Billy", "role": "admin"})
        await user.save()

        loaded = await BoundUser.one(user.id)
        assert isinstance(loaded, BoundUser)
        assert loaded.username == "Billy"
        assert loaded.role == "admin"
        assert loaded.id == user.id

    async def test_second_save_updates(self, BoundUser, queries):
        user = BoundUser({"username": "Billy"})
        await user.save()
        user.username = "Bill"
        await user.save()

        assert [query["type"] for query in queries] == ["insert", "update"]
        assert queries[-1]["where"] == {"_id": user.id}
        assert set(queries[-1]["changes"]) == {"username", "updated_at"}
        assert await BoundUser.count() == 1
        assert (await BoundUser.one(user.id)).username == "Bill"

    async def test_timestamp_is_taken_per_write(self, BoundUser, monkeypatch):
        start = datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)
        ticks = iter([start, start + timedelta(seconds=5)])
        monkeypatch.setattr("docrecord.models.base.utcnow", lambda: next(ticks))

        user = BoundUser({"username": "Billy"})
        await user.save()
        assert user.get("updated_at") == start

        user.role = "admin"
        await user.save()
        assert user.get("updated_at") == start + timedelta(seconds=5)

    async def test_delete(self, BoundUser):
        user = BoundUser({"username": "Billy"})
        await user.save()
        user_id = user.id

        assert await user.delete() is True
        assert await BoundUser.one(user_id) is None

    async def test_delete_twice_reports_no_removal(self, BoundUser):
        user = BoundUser({"username": "Billy"})
        await user.save()

        assert await user.delete() is True
        assert await user.delete() is False

    async def test_deleted_record_becomes_new(self, BoundUser):
        user = BoundUser({"username": "Billy", "role": "admin"})
        await user.save()
        await user.delete()

        assert not user.is_persisted
        assert user.id is None
        assert user.canonical == {}
        assert user.dirty["username"] == "Billy"

    async def test_save_after_delete_inserts_again(self, BoundUser, queries):
        """Changes made after a delete are written, not lost."""
        user = BoundUser({"username": "Billy"})
        await user.save()
        first_id = user.id
        await user.delete()

        user.role = "admin"
        await user.save()

        assert queries[-1]["type"] == "insert"
        assert user.is_persisted
        assert user.dirty == {}
        assert user.id != first_id
        assert await BoundUser.count() == 1
        stored = await BoundUser.one(user.id)
        assert stored.username == "Billy"
        assert stored.role == "admin"

    async def test_unmatched_update_keeps_changes_pending(self, BoundUser):
        """An update that reaches no document leaves the record out of sync."""
        user = BoundUser({"username": "Billy"})
        await user.save()
        await BoundUser.run_query({"type": "delete", "where": {"_id": user.id}})

        user.username = "Bill"
        assert await user.save() is user
        assert user.dirty == {"username": "Bill"}
        assert user.canonical["username"] == "Billy"

    async def test_all_returns_list(self, BoundUser):
        for name in ["carol", "alice", "bob"]:
            await BoundUser({"username": name}).save()

        users = await BoundUser.all()
        assert [user.username for user in users] == ["carol", "alice", "bob"]

        users = await BoundUser.all(sort="username", order="DESC", limit=2)
        assert [user.username for user in users] == ["carol", "bob"]

    async def test_find_and_count(self, BoundUser):
        await BoundUser({"username": "alice", "role": "admin"}).save()
        await BoundUser({"username": "bob"}).save()

        admins = await BoundUser.find({"role": "admin"})
        assert [user.username for user in admins] == ["alice"]
        assert await BoundUser.count({"role": "admin"}) == 1
        assert await BoundUser.count() == 2

    async def test_first_and_last(self, BoundUser):
        for name in ["carol", "alice", "bob"]:
            await BoundUser({"username": name}).save()

        assert (await BoundUser.first(sort="username")).username == "alice"
        assert (await BoundUser.last(sort="username")).username == "carol"
        assert await BoundUser.first({"username": "nobody"}) is None

    async def test_lean_finder(self, BoundUser):
        await BoundUser({"username": "alice"}).save()
        rows = await BoundUser.all(lean=True)
        assert rows[0]["username"] == "alice"

    async def test_insert_many(self, BoundUser):
        rows = await BoundUser.insert_many([{"username": "a"}, {"username": "b"}])
        assert [row.username for row in rows] == ["a", "b"]
        assert all(row.is_persisted for row in rows)
        assert all("updated_at" in row.canonical for row in rows)

    async def test_drop(self, BoundUser):
        await BoundUser({"username": "alice"}).save()
        await BoundUser.drop()
        assert await BoundUser.count() == 0

    async def test_run_query_with_mapping(self, BoundUser):
        await BoundUser({"username": "alice"}).save()
        assert await BoundUser.run_query({"type": "count", "where": {"username": "alice"}}) == 1
