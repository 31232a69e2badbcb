"""
Collection gateway tests.
"""

import mongomock
import pytest
from bson import ObjectId

from database import BistroStore, by_id, serialize_doc
from schemas import CartItem


@pytest.fixture
def store():
    return BistroStore.from_client(mongomock.MongoClient(), "Bistro")


def test_collection_names(store):
    assert [c.name for c in (store.users, store.menu, store.reviews, store.carts)] == [
        "Users", "menu", "reviews", "Carts",
    ]


def test_insert_and_find(store):
    result = store.carts.insert_one({"email": "a@bistro.test", "name": "Soup"})
    assert result["acknowledged"] is True
    assert ObjectId.is_valid(result["insertedId"])

    found = store.carts.find_one(by_id(result["insertedId"]))
    assert found == {"_id": result["insertedId"], "email": "a@bistro.test", "name": "Soup"}


def test_insert_model_keeps_only_sent_fields(store):
    store.carts.insert_one(CartItem(email="a@bistro.test", quantity=2))
    doc = store.carts.find_one({"email": "a@bistro.test"})
    assert doc["quantity"] == 2
    assert "price" not in doc


def test_find_filters_on_equality(store):
    store.carts.insert_one({"email": "a@bistro.test"})
    store.carts.insert_one({"email": "b@bistro.test"})
    assert [d["email"] for d in store.carts.find({"email": "b@bistro.test"})] == ["b@bistro.test"]
    assert len(store.carts.find_all()) == 2


def test_find_one_missing(store):
    assert store.users.find_one({"email": "nobody@bistro.test"}) is None


def test_update_one_sets_fields(store):
    user_id = store.users.insert_one({"email": "a@bistro.test", "name": "A"})["insertedId"]

    result = store.users.update_one(by_id(user_id), {"role": "@Admin"})

    assert result == {
        "acknowledged": True,
        "matchedCount": 1,
        "modifiedCount": 1,
        "upsertedCount": 0,
        "upsertedId": None,
    }
    assert store.users.find_one(by_id(user_id)) == {
        "_id": user_id, "email": "a@bistro.test", "name": "A", "role": "@Admin",
    }


def test_delete_one(store):
    item_id = store.menu.insert_one({"name": "Pie"})["insertedId"]
    assert store.menu.delete_one(by_id(item_id)) == {"acknowledged": True, "deletedCount": 1}
    assert store.menu.delete_one(by_id(item_id)) == {"acknowledged": True, "deletedCount": 0}


def test_by_id():
    oid = ObjectId()
    assert by_id(str(oid)) == {"_id": oid}
    assert by_id("salad-7") == {"_id": "salad-7"}


def test_serialize_doc():
    oid = ObjectId()
    assert serialize_doc({"_id": oid, "name": "x"}) == {"_id": str(oid), "name": "x"}
    assert serialize_doc(None) is None
