# PUBLIC_INTERFACE
"""
Data-access interfaces for pay scales and personnel grades, plus in-memory implementations.

Stores exchange plain documents (dicts carrying an "id"). Sessions own model
conversion, validation and field encryption; stores only persist.
"""
from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.encryption import EncryptionService
from ..core.errors import NotFoundError, ValidationError


PERSONNEL_GRADE_EXISTS_MESSAGE = "A grade record already exists for this personnel"


def duplicate_grade_step_message(grade: Any, step: Any) -> str:
    return f"Pay scale for Grade {grade}, Step {step} already exists"


# PUBLIC_INTERFACE
class PayScaleStore(ABC):
    """Capability set the pay-scale session needs from a document store."""

    # PUBLIC_INTERFACE
    @abstractmethod
    async def fetch_active(self) -> List[Dict[str, Any]]:
        """Return active pay-scale documents ordered by grade, then step."""
        raise NotImplementedError

    # PUBLIC_INTERFACE
    @abstractmethod
    async def create(self, document: Dict[str, Any]) -> str:
        """Insert a document and return its id. Rejects a second active grade/step."""
        raise NotImplementedError

    # PUBLIC_INTERFACE
    @abstractmethod
    async def update(self, doc_id: str, updates: Dict[str, Any]) -> None:
        """Apply a partial update to the document with doc_id."""
        raise NotImplementedError

    # PUBLIC_INTERFACE
    @abstractmethod
    async def soft_delete(self, doc_id: str, deleted_at: datetime) -> None:
        """Mark the document inactive instead of removing it."""
        raise NotImplementedError


# PUBLIC_INTERFACE
class PersonnelGradeStore(ABC):
    """Capability set the personnel-grade session needs from a document store."""

    # PUBLIC_INTERFACE
    @abstractmethod
    async def find_by_personnel_hash(self, personnel_id_hash: str) -> Optional[Dict[str, Any]]:
        """Return the grade document whose personnel_id_hash matches, if any."""
        raise NotImplementedError

    # PUBLIC_INTERFACE
    @abstractmethod
    async def create(self, document: Dict[str, Any]) -> str:
        raise NotImplementedError

    # PUBLIC_INTERFACE
    @abstractmethod
    async def update(self, doc_id: str, updates: Dict[str, Any]) -> None:
        raise NotImplementedError


class InMemoryPayScaleStore(PayScaleStore):
    """Thread-safe, process-local pay-scale store."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._docs: Dict[str, Dict[str, Any]] = {}

    def _active_duplicate(self, grade: Any, step: Any, exclude_id: Optional[str] = None) -> bool:
        return any(
            d.get("is_active") and d.get("grade") == grade and d.get("step") == step and doc_id != exclude_id
            for doc_id, d in self._docs.items()
        )

    async def fetch_active(self) -> List[Dict[str, Any]]:
        with self._lock:
            active = [copy.deepcopy(d) for d in self._docs.values() if d.get("is_active")]
        return sorted(active, key=lambda d: (d.get("grade", 0), d.get("step", 0)))

    async def create(self, document: Dict[str, Any]) -> str:
        doc_id = EncryptionService.generate_secure_id()
        with self._lock:
            if document.get("is_active", True) and self._active_duplicate(document.get("grade"), document.get("step")):
                raise ValidationError(duplicate_grade_step_message(document.get("grade"), document.get("step")))
            self._docs[doc_id] = {**copy.deepcopy(document), "id": doc_id}
        return doc_id

    async def update(self, doc_id: str, updates: Dict[str, Any]) -> None:
        with self._lock:
            current = self._docs.get(doc_id)
            if current is None:
                raise NotFoundError(f"Pay scale '{doc_id}' not found")
            merged = {**current, **copy.deepcopy(updates), "id": doc_id}
            if merged.get("is_active") and self._active_duplicate(merged.get("grade"), merged.get("step"), exclude_id=doc_id):
                raise ValidationError(duplicate_grade_step_message(merged.get("grade"), merged.get("step")))
            self._docs[doc_id] = merged

    async def soft_delete(self, doc_id: str, deleted_at: datetime) -> None:
        await self.update(doc_id, {"is_active": False, "updated_at": deleted_at})


class InMemoryPersonnelGradeStore(PersonnelGradeStore):
    """Thread-safe, process-local personnel-grade store."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._docs: Dict[str, Dict[str, Any]] = {}

    async def find_by_personnel_hash(self, personnel_id_hash: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for doc in self._docs.values():
                if doc.get("personnel_id_hash") == personnel_id_hash:
                    return copy.deepcopy(doc)
        return None

    async def create(self, document: Dict[str, Any]) -> str:
        doc_id = EncryptionService.generate_secure_id()
        with self._lock:
            if any(d.get("personnel_id_hash") == document.get("personnel_id_hash") for d in self._docs.values()):
                raise ValidationError(PERSONNEL_GRADE_EXISTS_MESSAGE)
            self._docs[doc_id] = {**copy.deepcopy(document), "id": doc_id}
        return doc_id

    async def update(self, doc_id: str, updates: Dict[str, Any]) -> None:
        with self._lock:
            if doc_id not in self._docs:
                raise NotFoundError(f"Personnel grade '{doc_id}' not found")
            self._docs[doc_id].update(copy.deepcopy(updates))
