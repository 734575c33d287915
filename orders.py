"""
Order intake and order store.

``owner`` arguments scope a lookup to one user's orders; None means the
caller is an administrator and sees every order. Role checks happen in the
route layer.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

import products
from database import create_document, get_documents, serialize, to_object_id
from errors import InsufficientStockError, InvalidReferenceError, NotFoundError
from schemas import Order, OrderUpdate

logger = logging.getLogger(__name__)

COLLECTION = "order"


def _populate_user(db: Database, ref) -> Optional[dict]:
    user = db["user"].find_one({"_id": ref}, {"name": 1, "email": 1}) if ref is not None else None
    if not user:
        return None
    return {"id": str(user["_id"]), "name": user.get("name"), "email": user["email"]}


def _populate_product(db: Database, ref) -> Optional[dict]:
    product = db[products.COLLECTION].find_one({"_id": ref}, {"name": 1, "price": 1, "images": 1})
    if not product:
        return None
    return {
        "id": str(product["_id"]),
        "name": product["name"],
        "price": product["price"],
        "images": product.get("images", []),
    }


def _out(db: Database, doc: dict) -> dict:
    d = serialize(doc)
    d["user"] = _populate_user(db, d.get("user"))
    d["items"] = [
        {**item, "product": _populate_product(db, item["product"])}
        for item in d.get("items", [])
    ]
    return d


def _user_ref(user_id) -> ObjectId:
    oid = to_object_id(user_id)
    if oid is None:
        raise InvalidReferenceError("Invalid user id")
    return oid


def _scoped(order_id, owner: Optional[str]) -> dict:
    oid = to_object_id(order_id)
    if oid is None:
        raise NotFoundError("Order")
    query = {"_id": oid}
    if owner is not None:
        query["user"] = _user_ref(owner)
    return query


def create(db: Database, payload: Order, user_id: str) -> dict:
    """Turn a cart into an order, taking the ordered quantities out of stock.

    Every line is checked against current stock before anything is written.
    Stock is then taken line by line and the order is written. If anything
    fails on the way, the lines already taken for this order are put back.
    """
    user = _user_ref(user_id)

    computed_total = 0.0
    for item in payload.items:
        product = products.get_by_id(db, item.product)
        if product["stock"] < item.quantity:
            raise InsufficientStockError(product["name"])
        computed_total += product["price"] * item.quantity

    data = payload.model_dump()
    data["user"] = user
    data["items"] = [
        {"product": ObjectId(item.product), "quantity": item.quantity, "price": item.price}
        for item in payload.items
    ]
    data["computed_total"] = round(computed_total, 2)

    taken = []
    try:
        for item in payload.items:
            products.update_stock(db, item.product, item.quantity)
            taken.append(item)
        order_id = create_document(db, COLLECTION, data)
    except Exception:
        for item in taken:
            products.release_stock(db, item.product, item.quantity)
        logger.warning("Order for user %s aborted, released stock for %d line(s)", user_id, len(taken))
        raise

    logger.info("Order %s created for user %s (total %.2f)", order_id, user_id, payload.total_amount)
    return get(db, order_id)


def find_all(db: Database, owner: Optional[str] = None) -> List[dict]:
    query = {} if owner is None else {"user": _user_ref(owner)}
    return [_out(db, d) for d in get_documents(db, COLLECTION, query, sort=[("created_at", -1)])]


def get(db: Database, order_id, owner: Optional[str] = None) -> dict:
    doc = db[COLLECTION].find_one(_scoped(order_id, owner))
    if not doc:
        raise NotFoundError("Order")
    return _out(db, doc)


def update(db: Database, order_id: str, changes: OrderUpdate, owner: Optional[str] = None) -> dict:
    # Any status may follow any other.
    data = changes.model_dump(exclude_unset=True, exclude_none=True)
    data["updated_at"] = datetime.now(timezone.utc)
    doc = db[COLLECTION].find_one_and_update(
        _scoped(order_id, owner),
        {"$set": data},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise NotFoundError("Order")
    return _out(db, doc)


def delete(db: Database, order_id: str, owner: Optional[str] = None) -> None:
    res = db[COLLECTION].delete_one(_scoped(order_id, owner))
    if res.deleted_count == 0:
        raise NotFoundError("Order")


def stats(db: Database) -> dict:
    collection = db[COLLECTION]
    revenue = list(collection.aggregate([
        {"$group": {"_id": None, "total": {"$sum": "$total_amount"}}},
    ]))
    by_status = collection.aggregate([
        {"$group": {"_id": "$status", "count": {"$sum": 1}}},
    ])
    return {
        "total_orders": collection.count_documents({}),
        "total_revenue": revenue[0]["total"] if revenue else 0,
        "orders_by_status": {row["_id"]: row["count"] for row in by_status},
    }
