from datetime import datetime, timezone

import pytest

from payscale_backend.core.errors import ValidationError
from payscale_backend.payscales.grades import PersonnelGradeSession

APPOINTED = datetime(2020, 1, 15, tzinfo=timezone.utc)


def grade_record(personnel_id="P-00123", **extra):
    record = {
        "personnel_id": personnel_id,
        "current_grade": 8,
        "current_step": 3,
        "appointment_date": APPOINTED,
        "next_eligible_date": datetime(2025, 1, 15, tzinfo=timezone.utc),
        "grade_history": [
            {
                "id": "h1",
                "from_grade": 7,
                "from_step": 10,
                "to_grade": 8,
                "to_step": 1,
                "effective_date": datetime(2022, 1, 1, tzinfo=timezone.utc),
                "promotion_type": "merit",
            }
        ],
    }
    record.update(extra)
    return record


@pytest.mark.asyncio
async def test_personnel_id_is_stored_encrypted_and_indexed_by_hash(grade_store, encryption):
    session = PersonnelGradeSession(grade_store, encryption=encryption)
    doc_id = await session.create_personnel_grade(grade_record())

    stored = grade_store._docs[doc_id]
    assert stored["personnel_id"] != "P-00123"
    assert encryption.decrypt(stored["personnel_id"]) == "P-00123"
    assert stored["personnel_id_hash"] == encryption.hash("P-00123")


@pytest.mark.asyncio
async def test_create_loads_decrypted_record(grade_store, encryption):
    session = PersonnelGradeSession(grade_store, encryption=encryption)
    doc_id = await session.create_personnel_grade(grade_record())

    record = session.personnel_grade
    assert record.id == doc_id
    assert record.personnel_id == "P-00123"
    assert record.current_grade == 8
    assert record.grade_history[0].promotion_type == "merit"
    assert session.personnel_id == "P-00123"


@pytest.mark.asyncio
async def test_fetch_by_personnel_id(grade_store, encryption):
    await PersonnelGradeSession(grade_store, encryption=encryption).create_personnel_grade(grade_record())

    session = PersonnelGradeSession(grade_store, personnel_id="P-00123", encryption=encryption)
    record = await session.fetch_personnel_grade()
    assert record is not None and record.personnel_id == "P-00123"

    assert await session.fetch_personnel_grade("P-99999") is None
    assert session.personnel_grade is None


@pytest.mark.asyncio
async def test_one_grade_record_per_personnel(grade_store, encryption):
    session = PersonnelGradeSession(grade_store, encryption=encryption)
    await session.create_personnel_grade(grade_record())

    with pytest.raises(ValidationError):
        await session.create_personnel_grade(grade_record(current_grade=9))
    assert session.error == "A grade record already exists for this personnel"


@pytest.mark.asyncio
async def test_out_of_range_grade_is_rejected(grade_store, encryption):
    session = PersonnelGradeSession(grade_store, encryption=encryption)
    with pytest.raises(ValidationError):
        await session.create_personnel_grade(grade_record(current_grade=21))
    assert grade_store._docs == {}


@pytest.mark.asyncio
async def test_update_personnel_grade(grade_store, encryption):
    session = PersonnelGradeSession(grade_store, encryption=encryption)
    await session.create_personnel_grade(grade_record())

    await session.update_personnel_grade({"current_step": 4, "salary_freeze": True})

    assert session.personnel_grade.current_step == 4
    assert session.personnel_grade.salary_freeze is True
    assert session.personnel_grade.personnel_id == "P-00123"


@pytest.mark.asyncio
async def test_update_without_loaded_record_is_noop(grade_store, encryption):
    session = PersonnelGradeSession(grade_store, encryption=encryption)
    await session.update_personnel_grade({"current_step": 4})
    assert session.personnel_grade is None
    assert session.error is None
    assert grade_store._docs == {}


@pytest.mark.asyncio
async def test_null_grade_update_is_rejected(grade_store, encryption):
    session = PersonnelGradeSession(grade_store, encryption=encryption)
    await session.create_personnel_grade(grade_record())

    with pytest.raises(ValidationError):
        await session.update_personnel_grade({"current_grade": None})

    reloaded = await PersonnelGradeSession(grade_store, encryption=encryption).fetch_personnel_grade("P-00123")
    assert reloaded.current_grade == 8
