"""
Product store and catalogue queries.

Products always hang off a sub-category. Listing by a main category fans out
over its sub-categories; stock only ever moves through :func:`update_stock`
and :func:`release_stock`.
"""
import re
from datetime import datetime, timezone
from typing import List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

import categories
from database import CATALOGUE_SORT, create_document, get_documents, serialize, to_object_id
from errors import InsufficientStockError, InvalidReferenceError, NotFoundError
from schemas import Product, ProductUpdate

COLLECTION = "product"


def _populate_sub_category(db: Database, ref) -> Optional[dict]:
    oid = to_object_id(ref) if ref is not None else None
    if oid is None:
        return None
    doc = db[categories.COLLECTION].find_one({"_id": oid}, {"name": 1, "parent_category": 1})
    if not doc:
        return None
    return {
        "id": str(doc["_id"]),
        "name": doc["name"],
        "parent_category": categories.populate_parent(db, doc.get("parent_category")),
    }


def _out(db: Database, doc: dict) -> dict:
    d = serialize(doc)
    d["sub_category"] = _populate_sub_category(db, d.get("sub_category"))
    return d


def _find(db: Database, query: dict) -> List[dict]:
    return [_out(db, d) for d in get_documents(db, COLLECTION, query, sort=CATALOGUE_SORT)]


def list_all(db: Database, active_only: bool = True) -> List[dict]:
    return _find(db, {"is_active": True} if active_only else {})


def list_by_sub_category(db: Database, sub_category_id: str, active_only: bool = True) -> List[dict]:
    oid = to_object_id(sub_category_id)
    if oid is None:
        return []
    query = {"sub_category": oid}
    if active_only:
        query["is_active"] = True
    return _find(db, query)


def list_by_category(db: Database, category_id: str, active_only: bool = True) -> List[dict]:
    # Never falls back to treating category_id as a sub-category id.
    sub_categories = categories.match_parent(db, category_id, projection={"_id": 1})
    sub_category_ids = [sc["_id"] for sc in sub_categories]
    if not sub_category_ids:
        return []

    query = {"sub_category": {"$in": sub_category_ids}}
    if active_only:
        query["is_active"] = True
    return _find(db, query)


def search(db: Database, text: str) -> List[dict]:
    """Active products whose name, description or any tag contains ``text``."""
    pattern = {"$regex": re.escape(text), "$options": "i"}
    return _find(db, {
        "is_active": True,
        "$or": [
            {"name": pattern},
            {"description": pattern},
            {"tags": pattern},
        ],
    })


def _oid_or_404(product_id) -> ObjectId:
    oid = to_object_id(product_id)
    if oid is None:
        raise NotFoundError("Product")
    return oid


def get_by_id(db: Database, product_id) -> dict:
    doc = db[COLLECTION].find_one({"_id": _oid_or_404(product_id)})
    if not doc:
        raise NotFoundError("Product")
    return _out(db, doc)


def _resolve_sub_category(db: Database, sub_category_id: str) -> ObjectId:
    doc = db[categories.COLLECTION].find_one({"_id": ObjectId(sub_category_id)})
    if doc is None:
        raise InvalidReferenceError("Sub-category not found")
    if doc.get("parent_category") is None:
        raise InvalidReferenceError("Products must belong to a sub-category, not a main category")
    return doc["_id"]


def create(db: Database, payload: Product) -> dict:
    data = payload.model_dump()
    data["sub_category"] = _resolve_sub_category(db, payload.sub_category)
    new_id = create_document(db, COLLECTION, data)
    return get_by_id(db, new_id)


def update(db: Database, product_id: str, changes: ProductUpdate) -> dict:
    oid = _oid_or_404(product_id)
    data = changes.model_dump(exclude_unset=True)
    if data.get("sub_category") is not None:
        data["sub_category"] = _resolve_sub_category(db, data["sub_category"])
    else:
        data.pop("sub_category", None)
    data["updated_at"] = datetime.now(timezone.utc)

    doc = db[COLLECTION].find_one_and_update(
        {"_id": oid},
        {"$set": data},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise NotFoundError("Product")
    return _out(db, doc)


def delete(db: Database, product_id: str) -> None:
    res = db[COLLECTION].delete_one({"_id": _oid_or_404(product_id)})
    if res.deleted_count == 0:
        raise NotFoundError("Product")


def update_stock(db: Database, product_id, quantity: int) -> dict:
    """Take ``quantity`` units out of stock.

    The stock check and the decrement are one conditional update, so stock
    never goes below zero and a refused call leaves it untouched.
    """
    oid = _oid_or_404(product_id)
    doc = db[COLLECTION].find_one_and_update(
        {"_id": oid, "stock": {"$gte": quantity}},
        {"$inc": {"stock": -quantity}, "$set": {"updated_at": datetime.now(timezone.utc)}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        product = db[COLLECTION].find_one({"_id": oid}, {"name": 1})
        if product is None:
            raise NotFoundError("Product")
        raise InsufficientStockError(product["name"])
    return _out(db, doc)


def release_stock(db: Database, product_id, quantity: int) -> None:
    db[COLLECTION].update_one(
        {"_id": _oid_or_404(product_id)},
        {"$inc": {"stock": quantity}, "$set": {"updated_at": datetime.now(timezone.utc)}},
    )
