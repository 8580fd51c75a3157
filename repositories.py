"""
Storage access for products and users.

Repositories only talk to MongoDB: no validation, no envelopes.  The
services own those concerns.
"""

from typing import Any, Dict, List, Optional, Tuple

from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from database import PRODUCTS_COLLECTION, USERS_COLLECTION
from query_builder import QueryOptions


class MongoRepository:
    """Thin wrapper over one collection.

    ``projection`` is applied to every read so hidden fields (the storage
    ``_id``, password hashes) never leave the repository by accident.
    """

    projection: Optional[Dict[str, int]] = None

    def __init__(self, collection: Collection):
        self.collection = collection

    def find_many(self, filt: Dict[str, Any], sort: Optional[List[Tuple[str, int]]], skip: int, limit: int) -> List[Dict[str, Any]]:
        cursor = self.collection.find(filt, self.projection)
        if sort:
            cursor = cursor.sort(sort)
        return list(cursor.skip(skip).limit(limit))

    def sample_random(self, filt: Dict[str, Any], size: int) -> List[Dict[str, Any]]:
        pipeline: List[Dict[str, Any]] = [
            {"$match": filt},
            {"$sample": {"size": size}},
        ]
        if self.projection:
            pipeline.append({"$project": self.projection})
        return list(self.collection.aggregate(pipeline))

    def find_one(self, predicate: Dict[str, Any], projection: Optional[Dict[str, int]] = None) -> Optional[Dict[str, Any]]:
        return self.collection.find_one(predicate, projection or self.projection)

    def insert(self, doc: Dict[str, Any]) -> Any:
        return self.collection.insert_one(dict(doc)).inserted_id

    def update_in_place(self, predicate: Dict[str, Any], patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.collection.find_one_and_update(
            predicate,
            {"$set": patch},
            projection=self.projection,
            return_document=ReturnDocument.AFTER,
        )

    def delete_one(self, predicate: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.collection.find_one_and_delete(predicate, projection=self.projection)

    def max_value_of(self, field: str) -> Any:
        result = list(self.collection.aggregate([
            {"$group": {"_id": None, "maxValue": {"$max": f"${field}"}}},
        ]))
        return result[0]["maxValue"] if result else None


class ProductRepository(MongoRepository):
    projection = {"_id": 0}

    @classmethod
    def from_database(cls, db: Database) -> "ProductRepository":
        return cls(db[PRODUCTS_COLLECTION])

    def find_with_pagination(self, filt: Dict[str, Any], options: QueryOptions) -> List[Dict[str, Any]]:
        if options.random:
            return self.sample_random(filt, options.limit)
        return self.find_many(filt, options.sort, options.skip, options.limit)

    def find_by_id(self, product_id: int) -> Optional[Dict[str, Any]]:
        return self.find_one({"id": product_id})

    def get_last_id(self) -> int:
        last_id = self.max_value_of("id")
        return int(last_id) if last_id is not None else 0

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.insert(data)
        return self.find_by_id(data["id"])

    def update(self, product_id: int, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.update_in_place({"id": product_id}, patch)

    def delete_by_id(self, product_id: int) -> Optional[Dict[str, Any]]:
        return self.delete_one({"id": product_id})


class UserRepository(MongoRepository):
    projection = {"password": 0}

    @classmethod
    def from_database(cls, db: Database) -> "UserRepository":
        return cls(db[USERS_COLLECTION])

    def find_by_email(self, email: str, include_password: bool = False) -> Optional[Dict[str, Any]]:
        # Emails are stored lowercased, so lowering the probe makes the
        # lookup case-insensitive.
        predicate = {"email": email.strip().lower()}
        if include_password:
            return self.collection.find_one(predicate)
        return self.find_one(predicate)

    def create(self, data: Dict[str, Any]) -> Any:
        return self.insert(data)
