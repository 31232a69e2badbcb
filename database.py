"""
Database Helper Functions

Thin gateway over the Bistro MongoDB collections. Route handlers receive a
BistroStore and call these methods instead of touching pymongo directly.
Write results are returned in the camelCase shape the web client reads
(insertedId, modifiedCount, deletedCount, ...).
"""

from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.server_api import ServerApi

USERS = "Users"
MENU = "menu"
REVIEWS = "reviews"
CARTS = "Carts"


def connect(database_url: str) -> MongoClient:
    return MongoClient(
        database_url,
        server_api=ServerApi("1", strict=True, deprecation_errors=True),
    )


def _to_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    return dict(data)


def by_id(_id: str) -> dict:
    """Equality filter on _id. Non-ObjectId strings are matched as-is."""
    if ObjectId.is_valid(_id):
        return {"_id": ObjectId(_id)}
    return {"_id": _id}


class Collection:
    def __init__(self, collection):
        self._collection = collection

    @property
    def name(self) -> str:
        return self._collection.name

    def find_all(self) -> List[dict]:
        return self.find({})

    def find(self, filter_dict: Optional[dict] = None) -> List[dict]:
        return [serialize_doc(doc) for doc in self._collection.find(filter_dict or {})]

    def find_one(self, filter_dict: dict) -> Optional[dict]:
        return serialize_doc(self._collection.find_one(filter_dict))

    def insert_one(self, data: Union[BaseModel, dict]) -> Dict[str, Any]:
        result = self._collection.insert_one(_to_dict(data))
        return {
            "acknowledged": result.acknowledged,
            "insertedId": str(result.inserted_id),
        }

    def update_one(self, filter_dict: dict, patch: Union[BaseModel, dict]) -> Dict[str, Any]:
        result = self._collection.update_one(filter_dict, {"$set": _to_dict(patch)})
        upserted_id = result.upserted_id
        return {
            "acknowledged": result.acknowledged,
            "matchedCount": result.matched_count,
            "modifiedCount": result.modified_count,
            "upsertedCount": 0 if upserted_id is None else 1,
            "upsertedId": None if upserted_id is None else str(upserted_id),
        }

    def delete_one(self, filter_dict: dict) -> Dict[str, Any]:
        result = self._collection.delete_one(filter_dict)
        return {
            "acknowledged": result.acknowledged,
            "deletedCount": result.deleted_count,
        }


class BistroStore:
    """The four collections of one Bistro database."""

    def __init__(self, db: Database):
        self.db = db
        self.users = Collection(db[USERS])
        self.menu = Collection(db[MENU])
        self.reviews = Collection(db[REVIEWS])
        self.carts = Collection(db[CARTS])

    @classmethod
    def from_client(cls, client: MongoClient, database_name: str) -> "BistroStore":
        return cls(client[database_name])

    def ping(self) -> None:
        self.db.client.admin.command("ping")


# Utility

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    d = dict(doc)
    if "_id" in d:
        d["_id"] = str(d["_id"])  # convert ObjectId to string
    return d
