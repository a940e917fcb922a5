"""
Coupon lifecycle and order placement.

A coupon code is claimed once in the ``couponCodes`` registry (unique index)
and may then be carried by one document (single user or global) or by one
document per user (broadcast). Each document flips ``used`` from false to
true at most once, through a conditional update, and only as part of
placing an order, and only by the user it is bound to (any buyer for a
global coupon). If the flip does not happen the order is removed again,
so a coupon is used if and only if an order referencing it is stored.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from database import COUPON_CODES, COUPONS, ORDERS, USERS, parse_object_id, to_dict
from errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from schemas import Coupon, CreateCouponRequest, Order

logger = logging.getLogger(__name__)

INVALID_COUPON = "Invalid coupon"
ALREADY_USED = "Coupon already used!"
EXPIRED = "Coupon expired"


def _not_expired(now: datetime) -> Dict[str, Any]:
    # {"expiryDate": None} also matches documents without the field
    return {"$or": [{"expiryDate": None}, {"expiryDate": {"$gt": now}}]}


def _owner_scopes(user_email: Optional[str], any_owner: bool = False) -> List[Dict[str, Any]]:
    """Filters for the documents ``user_email`` may use, own copy first.

    A document bound to another email is never in scope. Without an email
    only global coupons are, unless ``any_owner`` is set (a plain code check).
    """
    if user_email:
        return [{"userEmail": user_email}, {"userEmail": None}]
    if any_owner:
        return [{}]
    return [{"userEmail": None}]


def _coupon_status(db, code: str, scopes: List[Dict[str, Any]]):
    """Return ``(document, None)`` for a usable coupon, else ``(None, message)``."""
    live = {"code": code, "used": False, **_not_expired(datetime.utcnow())}
    for scope in scopes:
        doc = db[COUPONS].find_one({**live, **scope})
        if doc:
            return doc, None
    if any(db[COUPONS].find_one({"code": code, "used": False, **scope}) for scope in scopes):
        return None, EXPIRED
    if any(db[COUPONS].find_one({"code": code, **scope}) for scope in scopes):
        return None, ALREADY_USED
    return None, INVALID_COUPON


def verify_coupon(db, code: str, user_email: Optional[str] = None) -> Dict[str, Any]:
    doc, message = _coupon_status(db, code, _owner_scopes(user_email, any_owner=True))
    if doc is None:
        return {"valid": False, "message": message}
    return {"valid": True, "discountAmount": doc.get("discount")}


def _claim_code(db, code: str):
    try:
        db[COUPON_CODES].insert_one({"code": code, "createdAt": datetime.utcnow()})
    except DuplicateKeyError:
        raise ConflictError("Coupon code already exists")


def _release_code(db, code: str):
    db[COUPON_CODES].delete_one({"code": code})


def create_coupon(db, payload: CreateCouponRequest) -> Dict[str, Any]:
    if payload.for_all:
        emails = [u["email"] for u in db[USERS].find({}, {"email": 1}) if u.get("email")]
        if not emails:
            raise NotFoundError("No users found")
    elif payload.user_email:
        emails = [payload.user_email]
    else:
        raise ValidationError("userEmail is required unless forAll is set")

    _claim_code(db, payload.code)

    now = datetime.utcnow()
    docs = [
        Coupon(
            code=payload.code,
            discount=payload.discount,
            user_email=email,
            created_at=now,
            expiry_date=payload.expiry_date,
            description=payload.description,
        ).to_document()
        for email in emails
    ]
    try:
        res = db[COUPONS].insert_many(docs)
    except PyMongoError:
        _release_code(db, payload.code)
        raise

    for doc, _id in zip(docs, res.inserted_ids):
        doc["_id"] = _id
    logger.info("Coupon %s created for %d user(s)", payload.code, len(docs))

    coupons = [to_dict(d) for d in docs]
    if payload.for_all:
        return {"success": True, "insertedCount": len(coupons), "coupons": coupons}
    return {"success": True, "coupon": coupons[0]}


def redeem_coupon(db, code: str, user_email: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Atomically mark one unused, unexpired document for ``code`` as used.

    Only the buyer's own copy or a global coupon can be flipped. Returns the
    updated document, or None when nothing could be flipped.
    """
    now = datetime.utcnow()
    base = {"code": code, "used": False, **_not_expired(now)}
    update = {"$set": {"used": True, "usedAt": now}}

    for scope in _owner_scopes(user_email):
        doc = db[COUPONS].find_one_and_update({**base, **scope}, update, return_document=ReturnDocument.AFTER)
        if doc:
            return doc
    return None


def place_order(db, order: Order) -> str:
    data = order.model_dump(by_alias=True, exclude_none=True)
    data.setdefault("createdAt", datetime.utcnow())

    order_id = db[ORDERS].insert_one(data).inserted_id
    code = order.coupon_applied
    if not code:
        logger.info("Order %s placed", order_id)
        return str(order_id)

    email = order.customer_email()
    try:
        redeemed = redeem_coupon(db, code, email)
    except PyMongoError:
        logger.exception("Redeeming coupon %s failed, removing order %s", code, order_id)
        _remove_order(db, order_id)
        raise UpstreamError("Coupon redemption failed")

    if redeemed is None:
        _remove_order(db, order_id)
        _, reason = _coupon_status(db, code, _owner_scopes(email))
        reason = reason or ALREADY_USED
        logger.info("Order rejected, coupon %s not redeemable: %s", code, reason)
        if reason == INVALID_COUPON:
            raise ValidationError(reason)
        raise ConflictError(reason)

    logger.info("Order %s placed, coupon %s redeemed (%s)", order_id, code, redeemed["_id"])
    return str(order_id)


def _remove_order(db, order_id):
    try:
        db[ORDERS].delete_one({"_id": order_id})
    except PyMongoError:
        logger.exception("Could not remove order %s after failed redemption", order_id)


def list_coupons(db) -> List[Dict[str, Any]]:
    return [to_dict(c) for c in db[COUPONS].find().sort("createdAt", DESCENDING)]


def delete_coupon(db, coupon_id: str):
    oid = parse_object_id(coupon_id)
    doc = db[COUPONS].find_one_and_delete({"_id": oid})
    if not doc:
        raise NotFoundError("Coupon not found")
    code = doc.get("code")
    if code and db[COUPONS].find_one({"code": code}) is None:
        _release_code(db, code)
    logger.info("Coupon %s (%s) deleted", coupon_id, code)
