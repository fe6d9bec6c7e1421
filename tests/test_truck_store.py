import pytest

from yardgate.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from yardgate.services.truck_store import SERVER_TIMESTAMP, ArrayAppend, TruckStore


async def test_get_unknown_or_malformed_id(db):
    store = TruckStore(db)
    with pytest.raises(NotFoundError):
        await store.get("00000000-0000-0000-0000-000000000000")
    with pytest.raises(NotFoundError):
        await store.get("not-a-uuid")


async def test_dotted_patch_touches_only_the_named_field(db, flow):
    truck = await flow.processing_started()
    store = TruckStore(db)

    store.patch(truck, {"processing_draft.pending_approval": True, "processing_draft.final_remarks": "ok"}, flow.operator)
    await store.commit(truck)

    draft = truck.processing_draft
    assert draft["pending_approval"] is True
    assert draft["final_remarks"] == "ok"
    assert len(draft["safety_checks"]) == 6
    assert draft["documents"]["permit"]["verified"] is False


async def test_nested_path_creates_missing_documents(db, flow):
    truck = await flow.at_gate()
    store = TruckStore(db)
    store.patch(truck, {"weight_data.weight1.weight": 25000, "weight_data.approval_status": "notRequired"}, flow.operator)
    await store.commit(truck)

    assert truck.weight_data == {"weight1": {"weight": 25000}, "approval_status": "notRequired"}


async def test_server_timestamp_resolves_on_write(db, flow):
    truck = await flow.at_gate()
    store = TruckStore(db)
    store.patch(truck, {"held_at": SERVER_TIMESTAMP, "weight_data.approved_at": SERVER_TIMESTAMP}, flow.operator)
    await store.commit(truck)

    assert truck.held_at is not None
    assert isinstance(truck.weight_data["approved_at"], str)


async def test_array_append_keeps_existing_entries(db, flow):
    truck = await flow.at_gate()
    store = TruckStore(db)
    store.patch(truck, {"outgoing_registers": ArrayAppend({"gate_pass_number": "GP-1"})}, flow.operator)
    await store.commit(truck)
    store.patch(truck, {"outgoing_registers": ArrayAppend({"gate_pass_number": "GP-2"})}, flow.operator)
    await store.commit(truck)

    assert [entry["gate_pass_number"] for entry in truck.outgoing_registers] == ["GP-1", "GP-2"]


async def test_every_write_bumps_the_version(db, flow):
    truck = await flow.at_gate()
    assert truck.version == 1
    store = TruckStore(db)
    store.patch(truck, {"channel_type": "green"}, flow.operator)
    await store.commit(truck)
    assert truck.version == 2
    assert truck.last_updated_by == flow.operator.actor_id


async def test_stale_expected_version_is_rejected(db, flow):
    truck = await flow.at_gate()
    store = TruckStore(db)
    with pytest.raises(ConflictError):
        store.patch(truck, {"channel_type": "green"}, flow.operator, expected_version=truck.version + 1)


async def test_concurrent_write_is_detected(session_factory, flow, operator):
    truck = await flow.at_gate()

    async with session_factory() as first, session_factory() as second:
        mine = await TruckStore(first).get(truck.id)
        theirs = await TruckStore(second).get(truck.id)

        TruckStore(second).patch(theirs, {"channel_type": "orange"}, operator)
        await TruckStore(second).commit(theirs)

        TruckStore(first).patch(mine, {"channel_type": "green"}, operator)
        with pytest.raises(ConflictError):
            await TruckStore(first).commit(mine)


async def test_protected_and_unknown_fields_are_rejected(db, flow):
    truck = await flow.at_gate()
    store = TruckStore(db)
    with pytest.raises(ValidationFailedError):
        store.patch(truck, {"version": 99}, flow.operator)
    with pytest.raises(ValidationFailedError):
        store.patch(truck, {"no_such_field": 1}, flow.operator)
    with pytest.raises(ValidationFailedError):
        store.patch(truck, {"status.nested": 1}, flow.operator)


async def test_query_is_fifo_and_hides_deleted(db, flow):
    first = await flow.at_gate(vehicle_number="MH01AA0001")
    second = await flow.at_gate(vehicle_number="MH01AA0002")
    await flow.lifecycle.soft_delete(second.id, flow.operator)

    store = TruckStore(db)
    visible = await store.query(status="At Gate")
    assert [t.id for t in visible] == [first.id]

    everything = await store.query(include_deleted=True)
    assert {t.id for t in everything} == {first.id, second.id}
