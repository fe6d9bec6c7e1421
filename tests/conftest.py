import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"

from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from yardgate import models  # noqa: F401
from yardgate.core.context import ActorContext
from yardgate.database import Base
from yardgate.models.truck import EntryStatus
from yardgate.schemas.processing import DocumentType, SafetyResponse, VehicleConditionUpdate
from yardgate.schemas.settings import InventoryUpdate
from yardgate.schemas.truck import TruckCreate
from yardgate.services.processing_service import ProcessingService
from yardgate.services.safety_checks import DEFAULT_SAFETY_CHECKS
from yardgate.services.settings_service import SettingsService
from yardgate.services.truck_lifecycle_service import TruckLifecycleService

NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)
VALID_DATE = "2099-12-31"
EXPIRED_DATE = "2020-01-01"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def operator():
    return ActorContext(actor_id="gate-op-1", role="SECURITY", display_name="Gate Operator")


@pytest.fixture
def admin():
    return ActorContext(actor_id="admin-1", role="ADMIN", display_name="Plant Admin")


class YardFlow:
    """Drives a truck through the yard up to a given stage."""

    def __init__(self, db, operator, admin):
        self.db = db
        self.operator = operator
        self.admin = admin
        self.lifecycle = TruckLifecycleService(db)
        self.processing = ProcessingService(db, now=NOW)

    async def at_gate(self, vehicle_number="MH12AB1234", gate="RM Gate 1"):
        return await self.lifecycle.register_truck(
            TruckCreate(
                vehicle_number=vehicle_number,
                driver_name="Ramesh Kumar",
                driver_mobile="9876543210",
                transporter="Speedy Logistics",
                gate=gate,
            ),
            self.operator,
            at_gate=True,
        )

    async def allowed(self, destination="Dock 1", **kwargs):
        truck = await self.at_gate(**kwargs)
        return await self.lifecycle.gate_decision(
            truck.id, EntryStatus.ALLOWED, self.operator, destination=destination
        )

    async def processing_started(self, destination="Dock 1", **kwargs):
        truck = await self.allowed(destination=destination, **kwargs)
        return await self.processing.start_processing(truck.id, self.operator)

    async def set_documents(self, truck, valid_until=VALID_DATE):
        for doc_type in DocumentType:
            truck = await self.processing.set_document_validity(truck.id, doc_type, valid_until, self.operator)
        return truck

    async def pass_vehicle_checks(self, truck):
        truck = await self.processing.set_vehicle_condition(
            truck.id, VehicleConditionUpdate(checked=True, risk_level="low"), self.operator
        )
        for index in range(len(DEFAULT_SAFETY_CHECKS)):
            truck = await self.processing.set_safety_response(truck.id, index, SafetyResponse.YES, self.operator)
        return truck

    async def cleared(self, destination="Dock 1", **kwargs):
        truck = await self.processing_started(destination=destination, **kwargs)
        truck = await self.set_documents(truck)
        return await self.pass_vehicle_checks(truck)

    async def inside(self, destination="Dock 1", **kwargs):
        truck = await self.cleared(destination=destination, **kwargs)
        await self.processing.set_processing_confirmation(truck.id, True, self.operator)
        return await self.processing.complete_processing(truck.id, self.operator)

    async def stock_inventory(self, wheel_chokes=10, safety_shoes=10):
        return await SettingsService(self.db).update_inventory(
            InventoryUpdate(wheel_choke_count=wheel_chokes, safety_shoe_count=safety_shoes),
            self.admin,
        )


@pytest.fixture
def flow(db, operator, admin):
    return YardFlow(db, operator, admin)
