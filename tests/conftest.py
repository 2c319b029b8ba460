import os

# Settings are read once and cached, so configure the environment before any package import
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key-0123456789abcdef-XYZ")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "plain")

import pytest

from payscale_backend.core.encryption import EncryptionService
from payscale_backend.payscales.store import InMemoryPayScaleStore, InMemoryPersonnelGradeStore


class CountingPayScaleStore(InMemoryPayScaleStore):
    """In-memory store that records how often each write is attempted."""

    def __init__(self):
        super().__init__()
        self.create_calls = 0
        self.update_calls = 0

    async def create(self, document):
        self.create_calls += 1
        return await super().create(document)

    async def update(self, doc_id, updates):
        self.update_calls += 1
        return await super().update(doc_id, updates)


class FailingPayScaleStore(InMemoryPayScaleStore):
    """Store whose reads fail like an unreachable database."""

    async def fetch_active(self):
        raise RuntimeError("connection refused")


@pytest.fixture
def encryption():
    return EncryptionService("unit-test-secret-key-with-more-than-32-chars")


@pytest.fixture
def pay_scale_store():
    return CountingPayScaleStore()


@pytest.fixture
def grade_store():
    return InMemoryPersonnelGradeStore()


@pytest.fixture
def failing_store():
    return FailingPayScaleStore()
