from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Standardized error payload for all endpoints."""
    status: str = Field("error", description="Error status, always 'error'")
    code: str = Field(..., description="Machine-readable error code (e.g., VALIDATION_ERROR, NOT_FOUND, OPERATION_FAILED)")
    message: str = Field(..., description="Human-readable description of the error")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional structured, safe-to-log error details")
    http_status: Optional[int] = Field(default=None, description="HTTP status chosen for the response")


class SuccessResponse(BaseModel, Generic[T]):
    """Standardized success payload wrapper."""
    status: str = Field("ok", description="Success status, always 'ok'")
    data: T = Field(..., description="Response data")
    meta: Dict[str, Any] = Field(default_factory=dict, description="Optional metadata associated with the response")


class HealthData(BaseModel):
    message: str = Field(..., description="Health status message")
    env: str = Field(..., description="Environment name")
    encryption_ready: bool = Field(..., description="True if the encryption self-test passed")
    key_strong: bool = Field(..., description="False if ENCRYPTION_KEY is the default or shorter than 32 characters")


class IdResult(BaseModel):
    id: str = Field(..., description="Document id")


class ImportResult(BaseModel):
    ids: List[str] = Field(default_factory=list, description="Ids of the created pay scales, in input order")
    count: int = Field(0, description="Number of pay scales created")


class ValidationResult(BaseModel):
    valid: bool = Field(..., description="True if no problems were found")
    errors: List[str] = Field(default_factory=list, description="Human-readable validation problems")


class SalaryResult(BaseModel):
    """Derived salaries for a grade/step."""
    grade: int
    step: int
    total_salary: float = Field(..., description="Basic salary plus allowances and benefits; 0 if no active scale")
    next_step_salary: Optional[float] = Field(default=None, description="Total for the next step, null at the top step")
    promotion_salary: Optional[float] = Field(default=None, description="Total for step 1 of the next grade, null at the top grade")


# PUBLIC_INTERFACE
def error_responses(*status_codes: int) -> Dict[int | str, Dict[str, Any]]:
    """OpenAPI `responses` entries documenting the unified error payload for the given statuses."""
    return {code: {"model": ErrorResponse} for code in status_codes}
