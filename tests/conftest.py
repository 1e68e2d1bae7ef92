"""
Shared test fixtures — SQLite database, in-memory collaborators, sample data.
"""

import os
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set DATABASE_URL before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test_estimates.db"

from estimator.database import Base
from estimator.estimate_tree import EstimateTree
from estimator.exceptions import EstimateNotFound


TEST_DATABASE_URL = "sqlite:///./test_estimates.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# --- In-memory collaborators ---

class FakeStore:
    """Persistence collaborator keeping estimates as plain dicts."""

    def __init__(self, estimates=None, fail_with=None):
        self.estimates = dict(estimates or {})
        self.fail_with = fail_with
        self.calls = []
        self._next_id = 100

    def get(self, estimate_id):
        self.calls.append(("get", estimate_id))
        if self.fail_with:
            raise self.fail_with
        if estimate_id not in self.estimates:
            raise EstimateNotFound(estimate_id)
        return self.estimates[estimate_id]

    def create(self, payload):
        self.calls.append(("create", payload))
        if self.fail_with:
            raise self.fail_with
        self._next_id += 1
        return {"id": self._next_id}

    def update(self, estimate_id, payload):
        self.calls.append(("update", estimate_id, payload))
        if self.fail_with:
            raise self.fail_with
        return {"id": estimate_id}


class FakeCatalog:
    def __init__(self, materials=None, fail_with=None):
        self.materials = materials or {}
        self.fail_with = fail_with
        self.requested = []

    def materials_for_works(self, work_ids):
        self.requested.append(list(work_ids))
        if self.fail_with:
            raise self.fail_with
        return {work_id: self.materials.get(work_id, []) for work_id in work_ids}


class FakePriceUpdater:
    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.updates = []

    def update_price(self, work_id, price):
        if self.fail_with:
            raise self.fail_with
        self.updates.append((work_id, price))


# --- Sample data ---

def sample_work(**overrides):
    """A catalog work in the foundation phase."""
    work = {
        "id": 7,
        "code": "02-010",
        "name": "Устройство бетонной подготовки",
        "unit": "м3",
        "price": 1000.0,
        "phase": "Фундамент",
        "section": "Бетонные работы",
        "subsection": "Подготовка",
    }
    work.update(overrides)
    return work


def sample_template(**overrides):
    template = {
        "material_id": 501,
        "material_sku": "BET-B15",
        "material_name": "Бетон B15",
        "material_unit": "м3",
        "material_price": 4500.0,
        "consumption": 2.3,
        "show_image": False,
    }
    template.update(overrides)
    return template


def sample_record():
    """A persisted estimate as the store returns it (flat items with materials)."""
    return {
        "id": 42,
        "project_id": "p-1",
        "name": "Смета на фундамент",
        "estimate_type": "строительство",
        "status": "draft",
        "description": "Основная смета",
        "estimate_date": "2026-03-01",
        "currency": "RUB",
        "client_name": "ООО Заказчик",
        "contractor_name": "ООО Подрядчик",
        "object_address": "г. Казань, ул. Лесная, 5",
        "contract_number": "Д-17",
        "items": [
            {
                "id": 3,
                "work_id": 12,
                "code": "03-002",
                "name": "Кладка стен",
                "unit": "м2",
                "quantity": 10,
                "unit_price": "850.00",
                "final_price": "8500.00",
                "phase": "Стены",
                "materials": [
                    {
                        "material_id": 901,
                        "sku": "KIR-1",
                        "material_name": "Кирпич",
                        "unit": "шт",
                        "quantity": 520,
                        "unit_price": 12.5,
                        "consumption_coefficient": 52,
                        "autoCalculate": False,
                    },
                ],
            },
            {
                "id": 1,
                "work_id": 10,
                "code": "02-010",
                "name": "Бетонная подготовка",
                "unit": "м3",
                "quantity": 2,
                "unit_price": 1000,
                "final_price": 2000,
                "phase": "Фундамент",
                "materials": [],
            },
            {
                "id": 2,
                "work_id": 11,
                "code": "02-003",
                "name": "Разработка грунта",
                "unit": "м3",
                "quantity": 4,
                "unit_price": 300,
                "final_price": None,
                "phase": "Фундамент",
                "materials": [
                    {
                        "material_id": 902,
                        "material_name": "Щебень",
                        "unit": "т",
                        "quantity": 3,
                        "price": 900,
                        "consumption": 0.7,
                    },
                ],
            },
        ],
    }


def allow(_message):
    return True


def deny(_message):
    return False


@pytest.fixture
def tree():
    """Tree with one foundation work (quantity 0) whose material has consumption 2.3."""
    t = EstimateTree(confirm=allow)
    t.add_works([sample_work()], {7: [sample_template()]})
    return t
