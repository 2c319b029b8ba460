from __future__ import annotations

from datetime import datetime
from typing import ClassVar, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, Field, computed_field, model_validator

MIN_GRADE, MAX_GRADE = 1, 20
MIN_STEP, MAX_STEP = 1, 10

PromotionType = Literal["automatic", "merit", "special", "disciplinary"]


class Allowances(BaseModel):
    """Allowances attached to a grade/step."""
    position_allowance: float = Field(default=0, description="Based on position level")
    location_allowance: float = Field(default=0, description="Based on township/state")
    responsibility_allowance: float = Field(default=0, description="For supervisory roles")
    risk_allowance: float = Field(default=0, description="For dangerous positions")
    special_allowance: float = Field(default=0, description="Special assignments")

    def total(self) -> float:
        return sum(self.model_dump().values())


class Benefits(BaseModel):
    """Benefits attached to a grade/step."""
    medical_allowance: float = Field(default=0)
    transport_allowance: float = Field(default=0)
    food_allowance: float = Field(default=0)
    family_allowance: float = Field(default=0)
    housing_allowance: float = Field(default=0)

    def total(self) -> float:
        return sum(self.model_dump().values())


class PayScaleCreate(BaseModel):
    """Pay scale input. Range checks happen in PayScaleSession.validate_pay_scale."""
    grade: Optional[int] = Field(default=None, description="Grade 1-20")
    step: Optional[int] = Field(default=None, description="Step 1-10 within the grade")
    basic_salary: Optional[float] = Field(default=None, description="Base salary amount")
    effective_date: Optional[datetime] = Field(default=None, description="When this scale becomes effective")
    allowances: Allowances = Field(default_factory=Allowances)
    benefits: Benefits = Field(default_factory=Benefits)
    is_active: bool = Field(default=True)
    created_by: str = Field(default="")
    approved_by: str = Field(default="")
    approval_date: Optional[datetime] = Field(default=None)
    remarks: str = Field(default="")


class PayScale(PayScaleCreate):
    """A stored pay scale."""
    id: str = Field(..., description="Document id")
    grade: int
    step: int
    basic_salary: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field  # type: ignore[misc]
    @property
    def total_salary(self) -> float:
        return self.basic_salary + self.allowances.total() + self.benefits.total()


class PartialUpdate(BaseModel):
    """Partial update: fields left out stay unchanged, fields sent as null are rejected.

    NULLABLE lists the fields a stored record may legitimately hold as null.
    """
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_nulls(self):
        nulled = sorted(f for f in self.model_fields_set if getattr(self, f) is None and f not in self.NULLABLE)
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self


class PayScaleUpdate(PartialUpdate):
    """Partial pay scale update; only fields explicitly set are written."""
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset({"approval_date"})

    basic_salary: Optional[float] = Field(default=None, gt=0)
    effective_date: Optional[datetime] = None
    allowances: Optional[Allowances] = None
    benefits: Optional[Benefits] = None
    is_active: Optional[bool] = None
    approved_by: Optional[str] = None
    approval_date: Optional[datetime] = None
    remarks: Optional[str] = None


class GradeHistory(BaseModel):
    """One grade/step movement in a personnel record."""
    id: str
    from_grade: int
    from_step: int
    to_grade: int
    to_step: int
    effective_date: datetime
    promotion_type: PromotionType
    order_number: str = ""
    issued_by: str = ""
    approved_by: str = ""
    remarks: str = ""
    attachments: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class PersonnelGradeFields(BaseModel):
    """Grade record body without the personnel id, as sent to the personnel-grade routes."""
    current_grade: int = Field(..., ge=MIN_GRADE, le=MAX_GRADE)
    current_step: int = Field(..., ge=MIN_STEP, le=MAX_STEP)
    appointment_date: datetime
    last_promotion_date: Optional[datetime] = None
    next_eligible_date: datetime
    salary_freeze: bool = False
    grade_history: List[GradeHistory] = Field(default_factory=list)


class PersonnelGradeCreate(PersonnelGradeFields):
    personnel_id: str = Field(..., min_length=1, description="Personnel identifier (stored encrypted)")


class PersonnelGrade(PersonnelGradeCreate):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PersonnelGradeUpdate(PartialUpdate):
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset({"last_promotion_date"})

    current_grade: Optional[int] = Field(default=None, ge=MIN_GRADE, le=MAX_GRADE)
    current_step: Optional[int] = Field(default=None, ge=MIN_STEP, le=MAX_STEP)
    last_promotion_date: Optional[datetime] = None
    next_eligible_date: Optional[datetime] = None
    salary_freeze: Optional[bool] = None
    grade_history: Optional[List[GradeHistory]] = None
