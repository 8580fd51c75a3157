"""
MongoDB connection helpers.

The client is created from ``Settings`` in ``main.create_app``; pymongo
connects lazily, so building the client never blocks.  Indexes are
created on application startup.
"""

import logging

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)

PRODUCTS_COLLECTION = "Products"
USERS_COLLECTION = "Users"


def create_client(settings: Settings) -> MongoClient:
    return MongoClient(
        settings.database_url,
        serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
    )


def get_database(client: MongoClient, settings: Settings) -> Database:
    return client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    """Create the unique indexes the services rely on."""
    db[PRODUCTS_COLLECTION].create_index([("id", ASCENDING)], unique=True, name="product_id_unique")
    db[USERS_COLLECTION].create_index([("email", ASCENDING)], unique=True, name="user_email_unique")
    logger.info("Indexes ensured on %s", db.name)


def database_status(db: Database) -> dict:
    response = {
        "database": "❌ Not Available",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["database_name"] = db.name
        response["collections"] = db.list_collection_names()
        response["database"] = "✅ Available"
        response["connection_status"] = "Connected"
    except Exception as e:
        logger.warning("Database status check failed: %s", e)
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response
