"""
Document store access.

The connection is opened once in the application lifespan and stored on
``app.state.db``; handlers receive it through the ``get_db`` dependency.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from bson import ObjectId
from fastapi import HTTPException, Request
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError

import config
from errors import StoreConnectionError, ValidationError

logger = logging.getLogger(__name__)

PRODUCTS = "products"
ORDERS = "orders"
USERS = "users"
COUPONS = "coupons"
COUPON_CODES = "couponCodes"
SLIDES = "slides"


def connect(url: str = None, name: str = None):
    """Open a client, ping the server and return ``(client, db)``."""
    url = url or config.DATABASE_URL
    name = name or config.DATABASE_NAME
    client = MongoClient(url, serverSelectionTimeoutMS=config.MONGO_TIMEOUT_MS)
    try:
        client.admin.command("ping")
    except PyMongoError as e:
        client.close()
        raise StoreConnectionError(f"MongoDB connection failed: {e}") from e
    logger.info("Connected to MongoDB database %s", name)
    return client, client[name]


def ensure_indexes(db):
    # the unique index on couponCodes.code is what makes code claims atomic
    db[COUPON_CODES].create_index([("code", ASCENDING)], unique=True)
    db[COUPONS].create_index([("code", ASCENDING)])
    db[USERS].create_index([("email", ASCENDING)])
    db[ORDERS].create_index([("createdAt", DESCENDING)])


def get_db(request: Request):
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    if getattr(request.app.state, "indexed_db", None) is not db:
        ensure_indexes(db)
        request.app.state.indexed_db = db
    return db


def parse_object_id(value: str) -> ObjectId:
    if not ObjectId.is_valid(value):
        raise ValidationError("Invalid ID")
    return ObjectId(value)


def to_dict(doc):
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def create_document(db, collection: str, data: Dict[str, Any]) -> str:
    doc = dict(data)
    doc.setdefault("createdAt", datetime.utcnow())
    res = db[collection].insert_one(doc)
    return str(res.inserted_id)
