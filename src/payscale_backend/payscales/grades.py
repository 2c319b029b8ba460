"""
Personnel grade records.

The personnel id is stored encrypted; a keyed SHA-256 digest of it is stored
alongside so a record can be looked up without decrypting every document.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from ..core.encryption import (
    ENCRYPTED_FIELDS,
    EncryptionService,
    decrypt_form_data,
    encrypt_form_data,
    get_encryption_service,
)
from ..core.observability import increment_metric
from .models import PersonnelGrade, PersonnelGradeCreate, PersonnelGradeUpdate
from .service import SessionState, coerce_model, now_utc
from .store import PersonnelGradeStore

ENCRYPTED_GRADE_FIELDS = ENCRYPTED_FIELDS["personnel_grade"]


class PersonnelGradeSession(SessionState):
    """Caller-owned view of one personnel's grade record."""

    def __init__(
        self,
        store: PersonnelGradeStore,
        personnel_id: Optional[str] = None,
        encryption: Optional[EncryptionService] = None,
    ):
        super().__init__()
        self.store = store
        self.personnel_id = personnel_id
        self.encryption = encryption or get_encryption_service()
        self.personnel_grade: Optional[PersonnelGrade] = None

    # PUBLIC_INTERFACE
    async def fetch_personnel_grade(self, personnel_id: Optional[str] = None) -> Optional[PersonnelGrade]:
        """Load the grade record for personnel_id (or the session's own id), decrypting it."""
        personnel_id = personnel_id or self.personnel_id
        if not personnel_id:
            return None
        with self._loading(), self._operation("Failed to fetch personnel grade"):
            doc = await self.store.find_by_personnel_hash(self.encryption.hash(personnel_id))
            if doc is None:
                self.personnel_grade = None
            else:
                plain = decrypt_form_data(doc, ENCRYPTED_GRADE_FIELDS, self.encryption)
                plain.pop("personnel_id_hash", None)
                self.personnel_grade = PersonnelGrade.model_validate(plain)
        self.personnel_id = personnel_id
        return self.personnel_grade

    # PUBLIC_INTERFACE
    async def create_personnel_grade(self, data: Union[PersonnelGradeCreate, Mapping[str, Any]]) -> str:
        """Encrypt and store a new grade record, then load it into the session."""
        with self._operation("Failed to create personnel grade"):
            draft = coerce_model(PersonnelGradeCreate, data)
            now = now_utc()
            document = {
                **draft.model_dump(),
                "personnel_id_hash": self.encryption.hash(draft.personnel_id),
                "created_at": now,
                "updated_at": now,
            }
            doc_id = await self.store.create(encrypt_form_data(document, ENCRYPTED_GRADE_FIELDS, self.encryption))
            increment_metric("personnel_grade_writes_total")
            await self.fetch_personnel_grade(draft.personnel_id)
        return doc_id

    # PUBLIC_INTERFACE
    async def update_personnel_grade(self, updates: Union[PersonnelGradeUpdate, Mapping[str, Any]]) -> None:
        """Apply a partial update to the loaded record. Does nothing when none is loaded."""
        if self.personnel_grade is None:
            return
        with self._operation("Failed to update personnel grade"):
            changes = coerce_model(PersonnelGradeUpdate, updates).model_dump(exclude_unset=True)
            changes["updated_at"] = now_utc()
            await self.store.update(self.personnel_grade.id, changes)
            increment_metric("personnel_grade_writes_total")
            await self.fetch_personnel_grade(self.personnel_grade.personnel_id)
