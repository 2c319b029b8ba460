from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from ..core.db import pay_scales_collection, personnel_grades_collection
from ..core.errors import NotFoundError, ValidationError
from ..core.logging import get_logger
from .store import (
    PERSONNEL_GRADE_EXISTS_MESSAGE,
    PayScaleStore,
    PersonnelGradeStore,
    duplicate_grade_step_message,
)

logger = get_logger(__name__)


def _doc_filter(doc_id: str) -> Dict[str, Any]:
    return {"_id": ObjectId(doc_id) if ObjectId.is_valid(doc_id) else doc_id}


def _from_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(doc)
    out["id"] = str(out.pop("_id"))
    return out


def _to_document(document: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in document.items() if k not in ("id", "_id")}


class MongoPayScaleStore(PayScaleStore):
    """Pay scales in a MongoDB collection.

    A partial unique index on (grade, step) over active documents makes the
    database reject a second active scale even when two writers race past the
    session's cached duplicate check.
    """

    def __init__(self, collection: Optional[AsyncIOMotorCollection] = None):
        self.collection = collection if collection is not None else pay_scales_collection()
        self._indexes_ready = False

    async def ensure_indexes(self) -> None:
        if self._indexes_ready:
            return
        await self.collection.create_index(
            [("grade", ASCENDING), ("step", ASCENDING)],
            name="active_grade_step_unique",
            unique=True,
            partialFilterExpression={"is_active": True},
        )
        logger.info("Ensured pay scale indexes on %s", self.collection.name)
        self._indexes_ready = True

    async def fetch_active(self) -> List[Dict[str, Any]]:
        await self.ensure_indexes()
        cursor = self.collection.find({"is_active": True}).sort([("grade", ASCENDING), ("step", ASCENDING)])
        return [_from_document(doc) async for doc in cursor]

    async def create(self, document: Dict[str, Any]) -> str:
        await self.ensure_indexes()
        try:
            result = await self.collection.insert_one(_to_document(document))
        except DuplicateKeyError as exc:
            raise ValidationError(duplicate_grade_step_message(document.get("grade"), document.get("step"))) from exc
        return str(result.inserted_id)

    async def update(self, doc_id: str, updates: Dict[str, Any]) -> None:
        await self.ensure_indexes()
        try:
            result = await self.collection.update_one(_doc_filter(doc_id), {"$set": _to_document(updates)})
        except DuplicateKeyError as exc:
            raise ValidationError("Another active pay scale already uses this grade and step") from exc
        if result.matched_count == 0:
            raise NotFoundError(f"Pay scale '{doc_id}' not found")

    async def soft_delete(self, doc_id: str, deleted_at: datetime) -> None:
        await self.update(doc_id, {"is_active": False, "updated_at": deleted_at})


class MongoPersonnelGradeStore(PersonnelGradeStore):
    """Personnel grades keyed by the hash of the (encrypted) personnel id."""

    def __init__(self, collection: Optional[AsyncIOMotorCollection] = None):
        self.collection = collection if collection is not None else personnel_grades_collection()
        self._indexes_ready = False

    async def ensure_indexes(self) -> None:
        if self._indexes_ready:
            return
        await self.collection.create_index("personnel_id_hash", name="personnel_id_hash_unique", unique=True)
        logger.info("Ensured personnel grade indexes on %s", self.collection.name)
        self._indexes_ready = True

    async def find_by_personnel_hash(self, personnel_id_hash: str) -> Optional[Dict[str, Any]]:
        await self.ensure_indexes()
        doc = await self.collection.find_one({"personnel_id_hash": personnel_id_hash})
        return _from_document(doc) if doc else None

    async def create(self, document: Dict[str, Any]) -> str:
        await self.ensure_indexes()
        try:
            result = await self.collection.insert_one(_to_document(document))
        except DuplicateKeyError as exc:
            raise ValidationError(PERSONNEL_GRADE_EXISTS_MESSAGE) from exc
        return str(result.inserted_id)

    async def update(self, doc_id: str, updates: Dict[str, Any]) -> None:
        await self.ensure_indexes()
        result = await self.collection.update_one(_doc_filter(doc_id), {"$set": _to_document(updates)})
        if result.matched_count == 0:
            raise NotFoundError(f"Personnel grade '{doc_id}' not found")
