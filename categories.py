"""
Category store and hierarchy resolution.

Categories form a two-level tree: a category without ``parent_category`` is a
main category, one with a parent is a sub-category. Older documents hold the
parent reference as a plain string while newer ones hold an ObjectId, so every
lookup on ``parent_category`` goes through :func:`match_parent`.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from database import CATALOGUE_SORT, create_document, get_documents, serialize, to_object_id
from errors import InvalidReferenceError, NotFoundError
from schemas import Category, CategoryUpdate

logger = logging.getLogger(__name__)

COLLECTION = "category"


def populate_parent(db: Database, parent) -> Optional[dict]:
    if parent is None:
        return None
    parent_oid = to_object_id(parent)
    if parent_oid is None:
        return None
    doc = db[COLLECTION].find_one({"_id": parent_oid}, {"name": 1})
    if not doc:
        return None
    return {"id": str(doc["_id"]), "name": doc["name"]}


def _out(db: Database, doc: dict) -> dict:
    d = serialize(doc)
    d["parent_category"] = populate_parent(db, d.get("parent_category"))
    return d


def _find(db: Database, query: dict) -> List[dict]:
    return [_out(db, d) for d in get_documents(db, COLLECTION, query, sort=CATALOGUE_SORT)]


def match_parent(db: Database, parent_id, query: Optional[dict] = None,
                 projection: Optional[dict] = None) -> List[dict]:
    """Raw category documents whose parent is ``parent_id``.

    The id is first matched as given (string equality). Only when that finds
    nothing is it coerced to an ObjectId and matched again. An id that cannot
    be coerced simply matches nothing.
    """
    query = dict(query or {})
    collection = db[COLLECTION]

    docs = list(collection.find({**query, "parent_category": parent_id}, projection).sort(CATALOGUE_SORT))
    if docs:
        return docs

    parent_oid = to_object_id(parent_id)
    if parent_oid is None:
        logger.warning("Invalid parent category id format: %r", parent_id)
        return []
    return list(collection.find({**query, "parent_category": parent_oid}, projection).sort(CATALOGUE_SORT))


def list_top_level(db: Database, active_only: bool = True) -> List[dict]:
    query = {"parent_category": None}
    if active_only:
        query["is_active"] = True
    return _find(db, query)


def list_all(db: Database, active_only: bool = False) -> List[dict]:
    return _find(db, {"is_active": True} if active_only else {})


def list_sub_categories(db: Database, parent_id: str, active_only: bool = True) -> List[dict]:
    query = {"is_active": True} if active_only else {}
    return [_out(db, d) for d in match_parent(db, parent_id, query)]


def _oid_or_404(category_id) -> ObjectId:
    oid = to_object_id(category_id)
    if oid is None:
        raise NotFoundError("Category")
    return oid


def get_by_id(db: Database, category_id) -> dict:
    doc = db[COLLECTION].find_one({"_id": _oid_or_404(category_id)})
    if not doc:
        raise NotFoundError("Category")
    return _out(db, doc)


def _resolve_parent(db: Database, parent_id: Optional[str], child_id: Optional[ObjectId] = None) -> Optional[ObjectId]:
    """Validate a parent reference and return it in its stored (ObjectId) form."""
    if parent_id is None:
        return None
    parent = db[COLLECTION].find_one({"_id": ObjectId(parent_id)})
    if parent is None:
        raise InvalidReferenceError("Parent category not found")
    if parent.get("parent_category") is not None:
        raise InvalidReferenceError("A sub-category cannot be used as a parent category")
    if child_id is not None:
        if parent["_id"] == child_id:
            raise InvalidReferenceError("A category cannot be its own parent")
        if match_parent(db, str(child_id), projection={"_id": 1}):
            raise InvalidReferenceError("A category with sub-categories cannot become a sub-category")
    return parent["_id"]


def create(db: Database, payload: Category) -> dict:
    data = payload.model_dump()
    data["parent_category"] = _resolve_parent(db, payload.parent_category)
    new_id = create_document(db, COLLECTION, data)
    return get_by_id(db, new_id)


def update(db: Database, category_id: str, changes: CategoryUpdate) -> dict:
    oid = _oid_or_404(category_id)
    data = changes.model_dump(exclude_unset=True)
    if "parent_category" in data:
        data["parent_category"] = _resolve_parent(db, data["parent_category"], child_id=oid)
    data["updated_at"] = datetime.now(timezone.utc)

    doc = db[COLLECTION].find_one_and_update(
        {"_id": oid},
        {"$set": data},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise NotFoundError("Category")
    return _out(db, doc)


def delete(db: Database, category_id: str) -> None:
    res = db[COLLECTION].delete_one({"_id": _oid_or_404(category_id)})
    if res.deleted_count == 0:
        raise NotFoundError("Category")
