from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Path

from ..core.api_models import (
    IdResult,
    ImportResult,
    SalaryResult,
    SuccessResponse,
    ValidationResult,
    error_responses,
)
from ..core.errors import NotFoundError
from ..core.logging import get_logger
from ..core.response import ok
from ..core.settings import get_settings
from .grades import PersonnelGradeSession
from .models import (
    MAX_GRADE,
    MAX_STEP,
    MIN_GRADE,
    MIN_STEP,
    PayScale,
    PayScaleCreate,
    PayScaleUpdate,
    PersonnelGrade,
    PersonnelGradeFields,
    PersonnelGradeUpdate,
)
from .service import PayScaleSession
from .store import InMemoryPayScaleStore, InMemoryPersonnelGradeStore, PayScaleStore, PersonnelGradeStore

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_pay_scale_store() -> PayScaleStore:
    """Process-wide pay-scale store selected by STORE_BACKEND."""
    if get_settings().app.STORE_BACKEND == "mongo":
        from .mongo_store import MongoPayScaleStore

        return MongoPayScaleStore()
    return InMemoryPayScaleStore()


@lru_cache(maxsize=1)
def get_personnel_grade_store() -> PersonnelGradeStore:
    """Process-wide personnel-grade store selected by STORE_BACKEND."""
    if get_settings().app.STORE_BACKEND == "mongo":
        from .mongo_store import MongoPersonnelGradeStore

        return MongoPersonnelGradeStore()
    return InMemoryPersonnelGradeStore()


async def get_pay_scale_session(store: PayScaleStore = Depends(get_pay_scale_store)) -> PayScaleSession:
    session = PayScaleSession(store)
    await session.refresh()
    return session


def get_personnel_grade_session(
    store: PersonnelGradeStore = Depends(get_personnel_grade_store),
) -> PersonnelGradeSession:
    return PersonnelGradeSession(store)


pay_scales_router = APIRouter(prefix="/pay-scales", tags=["Pay Scales"])
personnel_grades_router = APIRouter(prefix="/personnel-grades", tags=["Personnel Grades"])


# PUBLIC_INTERFACE
@pay_scales_router.get(
    "",
    summary="List active pay scales",
    response_model=SuccessResponse[List[PayScale]],  # type: ignore[type-arg]
    responses=error_responses(502),
)
async def list_pay_scales(session: PayScaleSession = Depends(get_pay_scale_session)):
    """Return active pay scales ordered by grade, then step."""
    return ok(session.pay_scales, meta={"count": len(session.pay_scales)})


# PUBLIC_INTERFACE
@pay_scales_router.post(
    "",
    summary="Create a pay scale",
    status_code=201,
    response_model=SuccessResponse[IdResult],  # type: ignore[type-arg]
    responses=error_responses(400, 502),
)
async def create_pay_scale(
    payload: PayScaleCreate = Body(...),
    session: PayScaleSession = Depends(get_pay_scale_session),
):
    """Create a pay scale. Fails with 400 if the fields are out of range or the grade/step already exists."""
    doc_id = await session.create_pay_scale(payload)
    return ok({"id": doc_id})


# PUBLIC_INTERFACE
@pay_scales_router.get(
    "/matrix",
    summary="Grade/step matrix",
    response_model=SuccessResponse[Dict[int, List[PayScale]]],  # type: ignore[type-arg]
    responses=error_responses(502),
)
async def grade_step_matrix(session: PayScaleSession = Depends(get_pay_scale_session)):
    """Active pay scales grouped by grade, each group ordered by step."""
    return ok(session.get_grade_step_matrix())


# PUBLIC_INTERFACE
@pay_scales_router.get(
    "/{grade}/{step}/salary",
    summary="Salary for a grade/step",
    response_model=SuccessResponse[SalaryResult],  # type: ignore[type-arg]
    responses=error_responses(502),
)
async def salary(
    grade: int = Path(..., ge=MIN_GRADE, le=MAX_GRADE),
    step: int = Path(..., ge=MIN_STEP, le=MAX_STEP),
    session: PayScaleSession = Depends(get_pay_scale_session),
):
    """Total salary for a grade/step plus the next-step and promotion totals."""
    return ok(
        SalaryResult(
            grade=grade,
            step=step,
            total_salary=session.calculate_total_salary(grade, step),
            next_step_salary=session.get_next_step_salary(grade, step),
            promotion_salary=session.get_promotion_salary(grade),
        )
    )


# PUBLIC_INTERFACE
@pay_scales_router.post(
    "/validate",
    summary="Validate a pay scale without saving it",
    response_model=SuccessResponse[ValidationResult],  # type: ignore[type-arg]
)
def validate_pay_scale(payload: dict = Body(...)):
    errors = PayScaleSession.validate_pay_scale(payload)
    return ok(ValidationResult(valid=not errors, errors=errors))


# PUBLIC_INTERFACE
@pay_scales_router.post(
    "/import",
    summary="Bulk import pay scales",
    status_code=201,
    response_model=SuccessResponse[ImportResult],  # type: ignore[type-arg]
    responses=error_responses(400, 502),
)
async def import_pay_scales(
    payload: List[PayScaleCreate] = Body(...),
    session: PayScaleSession = Depends(get_pay_scale_session),
):
    """Validate every item, then create them in order. Nothing is written if any item is invalid."""
    ids = await session.import_pay_scales(payload)
    return ok(ImportResult(ids=ids, count=len(ids)))


# PUBLIC_INTERFACE
@pay_scales_router.post(
    "/defaults",
    summary="Generate the default pay scales",
    status_code=201,
    response_model=SuccessResponse[ImportResult],  # type: ignore[type-arg]
    responses=error_responses(400, 502),
)
async def generate_defaults(session: PayScaleSession = Depends(get_pay_scale_session)):
    """Create the standard scale for every grade 1-20 and step 1-10."""
    ids = await session.generate_default_pay_scales()
    logger.info("Generated %d default pay scales", len(ids))
    return ok(ImportResult(ids=ids, count=len(ids)))


# PUBLIC_INTERFACE
@pay_scales_router.patch(
    "/{pay_scale_id}",
    summary="Update a pay scale",
    response_model=SuccessResponse[Optional[PayScale]],  # type: ignore[type-arg]
    responses=error_responses(400, 404, 502),
)
async def update_pay_scale(
    pay_scale_id: str,
    payload: PayScaleUpdate = Body(...),
    session: PayScaleSession = Depends(get_pay_scale_session),
):
    """Partially update a pay scale. data is null when the update deactivated it."""
    await session.update_pay_scale(pay_scale_id, payload)
    return ok(next((s for s in session.pay_scales if s.id == pay_scale_id), None))


# PUBLIC_INTERFACE
@pay_scales_router.delete(
    "/{pay_scale_id}",
    summary="Deactivate a pay scale",
    response_model=SuccessResponse[IdResult],  # type: ignore[type-arg]
    responses=error_responses(404, 502),
)
async def delete_pay_scale(pay_scale_id: str, session: PayScaleSession = Depends(get_pay_scale_session)):
    """Soft delete: the pay scale is kept but marked inactive."""
    await session.delete_pay_scale(pay_scale_id)
    return ok({"id": pay_scale_id})


# PUBLIC_INTERFACE
@personnel_grades_router.get(
    "/{personnel_id}",
    summary="Get a personnel grade record",
    response_model=SuccessResponse[PersonnelGrade],  # type: ignore[type-arg]
    responses=error_responses(404, 502),
)
async def get_personnel_grade(
    personnel_id: str,
    session: PersonnelGradeSession = Depends(get_personnel_grade_session),
):
    grade = await session.fetch_personnel_grade(personnel_id)
    if grade is None:
        raise NotFoundError("Personnel grade not found")
    return ok(grade)


# PUBLIC_INTERFACE
@personnel_grades_router.post(
    "/{personnel_id}",
    summary="Create a personnel grade record",
    status_code=201,
    response_model=SuccessResponse[PersonnelGrade],  # type: ignore[type-arg]
    responses=error_responses(400, 502),
)
async def create_personnel_grade(
    personnel_id: str,
    payload: PersonnelGradeFields = Body(...),
    session: PersonnelGradeSession = Depends(get_personnel_grade_session),
):
    """Store a grade record; the personnel id is encrypted at rest."""
    await session.create_personnel_grade({**payload.model_dump(), "personnel_id": personnel_id})
    return ok(session.personnel_grade)


# PUBLIC_INTERFACE
@personnel_grades_router.patch(
    "/{personnel_id}",
    summary="Update a personnel grade record",
    response_model=SuccessResponse[PersonnelGrade],  # type: ignore[type-arg]
    responses=error_responses(400, 404, 502),
)
async def update_personnel_grade(
    personnel_id: str,
    payload: PersonnelGradeUpdate = Body(...),
    session: PersonnelGradeSession = Depends(get_personnel_grade_session),
):
    if await session.fetch_personnel_grade(personnel_id) is None:
        raise NotFoundError("Personnel grade not found")
    await session.update_personnel_grade(payload)
    return ok(session.personnel_grade)
