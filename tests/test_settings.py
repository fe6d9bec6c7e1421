import pytest

from yardgate.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationFailedError,
)
from yardgate.models.equipment import EquipmentType
from yardgate.models.truck import EntryStatus
from yardgate.schemas.settings import InventoryUpdate, TATSettingsUpdate
from yardgate.services.equipment_service import EquipmentService
from yardgate.services.settings_service import SettingsService, default_docks


def test_default_dock_ids_are_stable():
    assert [d["id"] for d in default_docks()] == [d["id"] for d in default_docks()]
    assert [d["name"] for d in default_docks()] == ["Dock 1", "Dock 2", "Dock 3", "Dock 4", "Dock 5"]


async def test_defaults_before_anything_is_saved(db):
    yard = await SettingsService(db).get_yard_settings()
    assert len(yard.docks) == 5
    assert yard.weight_threshold_percentage == 5.0
    assert yard.tat.fg_tat == 180
    assert yard.selectable_destinations()[-1] == "InternalParking"


async def test_writes_are_admin_only(db, operator):
    service = SettingsService(db)
    with pytest.raises(AuthorizationError):
        await service.add_dock("Dock 6", operator)
    with pytest.raises(AuthorizationError):
        await service.update_weight_threshold(3, operator)
    with pytest.raises(AuthorizationError):
        await service.update_inventory(InventoryUpdate(wheel_choke_count=5), operator)


async def test_add_dock(db, admin):
    service = SettingsService(db)
    dock = await service.add_dock(" Cold Store ", admin)
    assert dock.name == "Cold Store"
    assert dock.is_serviceable is True
    assert [d.name for d in await service.list_docks()][-1] == "Cold Store"

    with pytest.raises(ConflictError):
        await service.add_dock("cold store", admin)
    with pytest.raises(ValidationFailedError):
        await service.add_dock("  ", admin)


async def test_unserviceable_dock_leaves_destinations(db, admin):
    service = SettingsService(db)
    dock = (await service.list_docks())[1]
    updated = await service.set_dock_serviceability(dock.id, False, admin)
    assert updated.is_serviceable is False

    yard = await service.get_yard_settings()
    assert dock.name not in yard.selectable_destinations()
    assert yard.find_dock(dock.name).is_serviceable is False

    with pytest.raises(NotFoundError):
        await service.set_dock_serviceability("missing", True, admin)


async def test_dock_in_use_cannot_be_removed(db, flow, admin):
    service = SettingsService(db)
    truck = await flow.at_gate()
    await flow.lifecycle.gate_decision(truck.id, EntryStatus.ALLOWED, flow.operator, destination="Dock 1")
    dock_1 = (await service.list_docks())[0]

    with pytest.raises(ConflictError):
        await service.remove_dock(dock_1.id, admin)

    dock_5 = (await service.list_docks())[4]
    await service.remove_dock(dock_5.id, admin)
    assert [d.name for d in await service.list_docks()] == ["Dock 1", "Dock 2", "Dock 3", "Dock 4"]


async def test_dock_of_deleted_truck_cannot_be_removed(db, flow, admin):
    service = SettingsService(db)
    truck = await flow.inside(destination="Dock 1")
    await flow.lifecycle.soft_delete(truck.id, flow.operator)
    dock_1 = (await service.list_docks())[0]

    with pytest.raises(ConflictError):
        await service.remove_dock(dock_1.id, admin)

    truck = await flow.lifecycle.restore(truck.id, flow.operator)
    assert truck.dock_assigned == "Dock 1"
    assert "Dock 1" in [d.name for d in await service.list_docks()]


async def test_weight_threshold(db, admin):
    service = SettingsService(db)
    assert await service.update_weight_threshold(2.5, admin) == 2.5
    assert (await service.get_yard_settings()).weight_threshold_percentage == 2.5
    with pytest.raises(ValidationFailedError):
        await service.update_weight_threshold(-1, admin)


async def test_tat_settings_merge_and_validate(db, admin):
    service = SettingsService(db)
    tat = await service.update_tat_settings(TATSettingsUpdate(fg_tat=90), admin)
    assert tat.fg_tat == 90
    assert tat.rm_tat == 180

    with pytest.raises(ValidationFailedError):
        await service.update_tat_settings(TATSettingsUpdate(warning_threshold=60), admin)
    with pytest.raises(ValidationFailedError):
        await service.update_tat_settings(TATSettingsUpdate(pm_tat=0), admin)
    assert (await service.get_yard_settings()).tat.fg_tat == 90


async def test_inventory_cannot_drop_below_issued(db, flow, admin):
    await flow.stock_inventory(wheel_chokes=5, safety_shoes=5)
    truck = await flow.processing_started()
    await EquipmentService(db).issue_equipment(truck.id, EquipmentType.WHEEL_CHOKE, 3, flow.operator)

    service = SettingsService(db)
    with pytest.raises(ValidationFailedError):
        await service.update_inventory(InventoryUpdate(wheel_choke_count=2), admin)
    inventory = await service.update_inventory(InventoryUpdate(wheel_choke_count=3), admin)
    assert inventory.available_wheel_chokes == 0
