from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from payscale_backend.core.errors import NotFoundError, ValidationError
from payscale_backend.payscales.mongo_store import MongoPayScaleStore, MongoPersonnelGradeStore


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    def sort(self, keys):
        for key, _direction in reversed(keys):
            self.docs.sort(key=lambda d: d[key])
        return self

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self.docs:
            yield doc


class FakeCollection:
    """Just enough of a motor collection for the stores, with a single unique key."""

    def __init__(self, name, unique_key):
        self.name = name
        self.unique_key = unique_key
        self.docs = {}
        self.indexes = []

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return kwargs.get("name")

    def _duplicate(self, doc):
        key = self.unique_key(doc)
        return key is not None and any(self.unique_key(d) == key for d in self.docs.values())

    async def insert_one(self, doc):
        if self._duplicate(doc):
            raise DuplicateKeyError("E11000 duplicate key error", 11000)
        oid = ObjectId()
        self.docs[oid] = {**doc, "_id": oid}
        return SimpleNamespace(inserted_id=oid)

    async def update_one(self, filter_, update):
        doc = self.docs.get(filter_["_id"])
        if doc is None:
            return SimpleNamespace(matched_count=0)
        doc.update(update["$set"])
        return SimpleNamespace(matched_count=1)

    def find(self, filter_):
        return FakeCursor([dict(d) for d in self.docs.values() if all(d.get(k) == v for k, v in filter_.items())])

    async def find_one(self, filter_):
        return next((dict(d) for d in self.docs.values() if all(d.get(k) == v for k, v in filter_.items())), None)


def _active_grade_step(doc):
    return (doc["grade"], doc["step"]) if doc.get("is_active") else None


@pytest.fixture
def pay_scale_collection():
    return FakeCollection("governmentPayScales", _active_grade_step)


@pytest.mark.asyncio
async def test_create_and_fetch_active(pay_scale_collection):
    store = MongoPayScaleStore(pay_scale_collection)
    second = await store.create({"grade": 2, "step": 1, "is_active": True, "id": "ignored"})
    first = await store.create({"grade": 1, "step": 5, "is_active": True})
    await store.create({"grade": 1, "step": 1, "is_active": False})

    docs = await store.fetch_active()

    assert [d["id"] for d in docs] == [first, second]
    assert all("_id" not in d for d in docs)
    assert all("id" not in d for d in pay_scale_collection.docs.values())


@pytest.mark.asyncio
async def test_indexes_are_created_once(pay_scale_collection):
    store = MongoPayScaleStore(pay_scale_collection)
    await store.fetch_active()
    await store.fetch_active()

    assert len(pay_scale_collection.indexes) == 1
    keys, options = pay_scale_collection.indexes[0]
    assert [k for k, _ in keys] == ["grade", "step"]
    assert options["unique"] is True
    assert options["partialFilterExpression"] == {"is_active": True}


@pytest.mark.asyncio
async def test_duplicate_key_becomes_validation_error(pay_scale_collection):
    store = MongoPayScaleStore(pay_scale_collection)
    await store.create({"grade": 3, "step": 3, "is_active": True})
    with pytest.raises(ValidationError) as exc_info:
        await store.create({"grade": 3, "step": 3, "is_active": True})
    assert exc_info.value.message == "Pay scale for Grade 3, Step 3 already exists"


@pytest.mark.asyncio
async def test_soft_delete_and_missing_document(pay_scale_collection):
    store = MongoPayScaleStore(pay_scale_collection)
    doc_id = await store.create({"grade": 4, "step": 1, "is_active": True})

    await store.soft_delete(doc_id, datetime.now(timezone.utc))
    assert await store.fetch_active() == []

    with pytest.raises(NotFoundError):
        await store.update(str(ObjectId()), {"remarks": "x"})


@pytest.mark.asyncio
async def test_personnel_grade_store_lookup_by_hash():
    collection = FakeCollection("personnelGrades", lambda d: d.get("personnel_id_hash"))
    store = MongoPersonnelGradeStore(collection)

    doc_id = await store.create({"personnel_id": "<ciphertext>", "personnel_id_hash": "abc"})
    found = await store.find_by_personnel_hash("abc")
    assert found["id"] == doc_id
    assert await store.find_by_personnel_hash("zzz") is None

    with pytest.raises(ValidationError):
        await store.create({"personnel_id": "<other>", "personnel_id_hash": "abc"})
