# PUBLIC_INTERFACE
"""
Error types shared by the encryption service, the data-access sessions and the HTTP layer.

Validation errors are raised before any store write and carry a human readable message.
Operation errors wrap failures coming from the document store or the cipher library.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import status


class ErrorCode:
    VALIDATION = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    OPERATION = "OPERATION_FAILED"
    ENCRYPTION = "ENCRYPTION_FAILED"
    DECRYPTION = "DECRYPTION_FAILED"
    INTERNAL = "INTERNAL"


class ServiceError(Exception):
    """Base class for errors surfaced to callers with a stable code."""

    code: str = ErrorCode.INTERNAL
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ServiceError):
    code = ErrorCode.VALIDATION
    http_status = status.HTTP_400_BAD_REQUEST


class NotFoundError(ServiceError):
    code = ErrorCode.NOT_FOUND
    http_status = status.HTTP_404_NOT_FOUND


class OperationError(ServiceError):
    """A store or cipher call failed; the original exception is chained as __cause__."""

    code = ErrorCode.OPERATION
    http_status = status.HTTP_502_BAD_GATEWAY


class EncryptionError(OperationError):
    code = ErrorCode.ENCRYPTION
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class DecryptionError(OperationError):
    code = ErrorCode.DECRYPTION
    http_status = 422  # Unprocessable Content
