# PUBLIC_INTERFACE
"""
Pay-scale data access with explicit, caller-owned state.

A PayScaleSession caches the active pay scales it last fetched and exposes the
loading flag and last error message a UI needs. Writes go through the injected
PayScaleStore and are followed by a refetch, one call at a time.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import OperationError, ServiceError, ValidationError
from ..core.logging import get_logger
from ..core.observability import increment_metric
from .models import (
    MAX_GRADE,
    MAX_STEP,
    MIN_GRADE,
    MIN_STEP,
    Allowances,
    Benefits,
    PayScale,
    PayScaleCreate,
    PayScaleUpdate,
)
from .store import PayScaleStore, duplicate_grade_step_message

logger = get_logger(__name__)

PayScaleInput = Union[PayScaleCreate, Mapping[str, Any]]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def coerce_model(model_cls, data: Any):
    """Build model_cls from a model or mapping, turning pydantic errors into ValidationError."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        messages = [
            f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" if e["loc"] else e["msg"] for e in exc.errors()
        ]
        raise ValidationError("; ".join(messages), details={"errors": messages}) from exc


class SessionState:
    """Loading flag, last error and the catch/log/record/re-raise discipline shared by sessions."""

    def __init__(self) -> None:
        self.loading = False
        self.error: Optional[str] = None

    @contextmanager
    def _operation(self, failure_message: str) -> Iterator[None]:
        try:
            yield
        except ServiceError as exc:
            self.error = exc.message
            logger.warning("%s: %s", failure_message, exc.message)
            raise
        except Exception as exc:
            self.error = failure_message
            logger.exception(failure_message)
            raise OperationError(failure_message) from exc

    @contextmanager
    def _loading(self) -> Iterator[None]:
        self.loading = True
        try:
            yield
        finally:
            self.loading = False


def default_pay_scales(now: Optional[datetime] = None) -> List[PayScaleCreate]:
    """Standard scales for every grade 1-20 and step 1-10."""
    now = now or now_utc()
    scales: List[PayScaleCreate] = []
    for grade in range(MIN_GRADE, MAX_GRADE + 1):
        for step in range(MIN_STEP, MAX_STEP + 1):
            base_salary = 100000 + grade * 50000 + step * 5000
            scales.append(
                PayScaleCreate(
                    grade=grade,
                    step=step,
                    basic_salary=base_salary,
                    effective_date=now,
                    allowances=Allowances(
                        position_allowance=int(base_salary * 0.1),
                        location_allowance=int(base_salary * 0.05),
                        responsibility_allowance=int(base_salary * 0.15) if grade >= 15 else 0,
                        risk_allowance=0,
                        special_allowance=0,
                    ),
                    benefits=Benefits(
                        medical_allowance=50000,
                        transport_allowance=30000,
                        food_allowance=40000,
                        family_allowance=25000,
                        housing_allowance=75000 if grade >= 10 else 50000,
                    ),
                    is_active=True,
                    created_by="system",
                    approved_by="admin",
                    approval_date=now,
                    remarks="Default government pay scale",
                )
            )
    return scales


class PayScaleSession(SessionState):
    """Caller-owned view over the pay-scale store."""

    def __init__(self, store: PayScaleStore):
        super().__init__()
        self.store = store
        self.pay_scales: List[PayScale] = []

    # PUBLIC_INTERFACE
    async def refresh(self) -> List[PayScale]:
        """Fetch active pay scales ordered by grade and step into the session cache."""
        with self._loading(), self._operation("Failed to fetch pay scales"):
            docs = await self.store.fetch_active()
            self.pay_scales = [PayScale.model_validate(doc) for doc in docs]
        return self.pay_scales

    async def _insert(self, data: PayScaleInput) -> str:
        draft = coerce_model(PayScaleCreate, data)
        errors = self.validate_pay_scale(draft)
        if errors:
            raise ValidationError(
                f"Validation failed for Grade {draft.grade}, Step {draft.step}: {', '.join(errors)}",
                details={"errors": errors},
            )
        # Cached check only; the store enforces uniqueness for concurrent writers
        if self.get_pay_scale_by_grade_step(draft.grade, draft.step) is not None:
            raise ValidationError(duplicate_grade_step_message(draft.grade, draft.step))

        now = now_utc()
        document = {**draft.model_dump(), "created_at": now, "updated_at": now}
        doc_id = await self.store.create(document)
        increment_metric("payscale_writes_total")
        if draft.is_active:
            self.pay_scales.append(PayScale.model_validate({**document, "id": doc_id}))
        return doc_id

    # PUBLIC_INTERFACE
    async def create_pay_scale(self, data: PayScaleInput) -> str:
        """Validate, reject an existing active grade/step, write, then refetch. Returns the new id."""
        with self._operation("Failed to create pay scale"):
            doc_id = await self._insert(data)
            await self.refresh()
        return doc_id

    # PUBLIC_INTERFACE
    async def update_pay_scale(self, doc_id: str, updates: Union[PayScaleUpdate, Mapping[str, Any]]) -> None:
        with self._operation("Failed to update pay scale"):
            changes = coerce_model(PayScaleUpdate, updates).model_dump(exclude_unset=True)
            current = next((s for s in self.pay_scales if s.id == doc_id), None)
            if current is not None:
                errors = self.validate_pay_scale({**current.model_dump(), **changes})
                if errors:
                    raise ValidationError(
                        f"Validation failed for Grade {current.grade}, Step {current.step}: {', '.join(errors)}",
                        details={"errors": errors},
                    )
            changes["updated_at"] = now_utc()
            await self.store.update(doc_id, changes)
            increment_metric("payscale_writes_total")
            await self.refresh()

    # PUBLIC_INTERFACE
    async def delete_pay_scale(self, doc_id: str) -> None:
        """Soft delete: the document stays but is marked inactive."""
        with self._operation("Failed to delete pay scale"):
            await self.store.soft_delete(doc_id, now_utc())
            increment_metric("payscale_writes_total")
            await self.refresh()

    def get_pay_scale_by_grade_step(self, grade: int, step: int) -> Optional[PayScale]:
        return next(
            (s for s in self.pay_scales if s.grade == grade and s.step == step and s.is_active),
            None,
        )

    def calculate_total_salary(self, grade: int, step: int) -> float:
        """Basic salary plus all allowances and benefits; 0 when no active scale exists."""
        scale = self.get_pay_scale_by_grade_step(grade, step)
        return scale.total_salary if scale else 0

    def get_grade_step_matrix(self) -> Dict[int, List[PayScale]]:
        matrix: Dict[int, List[PayScale]] = {}
        for scale in self.pay_scales:
            matrix.setdefault(scale.grade, []).append(scale)
        for steps in matrix.values():
            steps.sort(key=lambda s: s.step)
        return matrix

    def get_next_step_salary(self, current_grade: int, current_step: int) -> Optional[float]:
        if current_step < MAX_STEP:
            return self.calculate_total_salary(current_grade, current_step + 1)
        return None

    def get_promotion_salary(self, current_grade: int) -> Optional[float]:
        if current_grade < MAX_GRADE:
            return self.calculate_total_salary(current_grade + 1, MIN_STEP)
        return None

    @staticmethod
    def validate_pay_scale(data: Union[PayScaleCreate, Mapping[str, Any]]) -> List[str]:
        """Return human readable problems with a pay scale; empty when valid."""
        values = data.model_dump() if isinstance(data, PayScaleCreate) else dict(data)
        errors: List[str] = []

        grade = values.get("grade")
        if not _is_int(grade) or not MIN_GRADE <= grade <= MAX_GRADE:
            errors.append(f"Grade must be between {MIN_GRADE} and {MAX_GRADE}")

        step = values.get("step")
        if not _is_int(step) or not MIN_STEP <= step <= MAX_STEP:
            errors.append(f"Step must be between {MIN_STEP} and {MAX_STEP}")

        salary = values.get("basic_salary")
        if not isinstance(salary, (int, float)) or isinstance(salary, bool) or salary <= 0:
            errors.append("Basic salary must be greater than 0")

        if not values.get("effective_date"):
            errors.append("Effective date is required")

        return errors

    # PUBLIC_INTERFACE
    async def import_pay_scales(self, pay_scales: Iterable[PayScaleInput]) -> List[str]:
        """Validate every item first, then create them one by one and refetch once."""
        with self._loading(), self._operation("Failed to import pay scales"):
            drafts = [coerce_model(PayScaleCreate, item) for item in pay_scales]
            for draft in drafts:
                errors = self.validate_pay_scale(draft)
                if errors:
                    raise ValidationError(
                        f"Validation failed for Grade {draft.grade}, Step {draft.step}: {', '.join(errors)}",
                        details={"errors": errors},
                    )
            ids = [await self._insert(draft) for draft in drafts]
            logger.info("Imported %d pay scales", len(ids))
        await self.refresh()
        return ids

    # PUBLIC_INTERFACE
    async def generate_default_pay_scales(self) -> List[str]:
        with self._operation("Failed to generate default pay scales"):
            return await self.import_pay_scales(default_pay_scales())


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
