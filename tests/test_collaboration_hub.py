"""Test the collaboration hub: authentication, rooms, presence and fan-out."""

import pytest
from sqlalchemy import func, select

from permit_tracker.core.errors import UnauthorizedError
from permit_tracker.models import PackageStatus, PermitType, StatusLogEntry
from permit_tracker.schemas.package import PackageCreate
from permit_tracker.services import lifecycle, progress
from permit_tracker.services.collaboration import CollaborationHub, SessionRegistry
from permit_tracker.services.lifecycle import WorkflowPolicy

from conftest import ADMIN_TOKEN, ALICE_TOKEN, BOB_TOKEN


async def connect(hub, connection_factory, token, name):
    connection = connection_factory(name)
    await hub.authenticate(connection, f"Bearer {token}")
    return connection


async def join(hub, connection, package_id):
    await hub.dispatch(connection, {"event": "join-package", "data": {"packageId": package_id}})


@pytest.mark.asyncio
async def test_invalid_token_closes_connection(hub, connection_factory):
    connection = connection_factory("intruder")
    with pytest.raises(UnauthorizedError):
        await hub.authenticate(connection, "Bearer nope")

    assert connection.closed[0] == 1008
    assert await hub.registry.get(connection.id) is None


@pytest.mark.asyncio
async def test_missing_token_closes_connection(hub, connection_factory):
    connection = connection_factory("anonymous")
    with pytest.raises(UnauthorizedError):
        await hub.authenticate(connection, None)
    assert connection.closed is not None
    assert await hub.registry.connected_count() == 0


@pytest.mark.asyncio
async def test_join_acknowledges_and_announces_to_others(db, hub, connection_factory, mobile_home_package):
    package_id = mobile_home_package.id
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    reviewer = await connect(hub, connection_factory, ADMIN_TOKEN, "admin-1")

    await join(hub, alice, package_id)
    assert alice.events == [("joined-package", {"packageId": package_id})]

    await join(hub, reviewer, package_id)
    assert reviewer.names() == ["joined-package"]

    presence = alice.of("presence")
    assert len(presence) == 1
    assert presence[0]["userId"] == "admin"
    assert presence[0]["action"] == "joined"
    assert presence[0]["timestamp"]


@pytest.mark.asyncio
async def test_unauthorized_join_gets_only_an_error(db, hub, connection_factory, mobile_home_package):
    package_id = mobile_home_package.id
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    bob = await connect(hub, connection_factory, BOB_TOKEN, "bob-1")
    await join(hub, alice, package_id)

    await join(hub, bob, package_id)

    assert bob.events == [("error", {"message": "Access denied to this package"})]
    assert not await hub.registry.is_member(bob.id, package_id)
    assert alice.of("presence") == []

    await hub.broadcast(package_id, "status-updated", {"packageId": package_id})
    assert bob.names() == ["error"]
    assert alice.names() == ["joined-package", "status-updated"]


@pytest.mark.asyncio
async def test_join_unknown_package_is_refused(db, hub, connection_factory):
    admin = await connect(hub, connection_factory, ADMIN_TOKEN, "admin-1")
    await join(hub, admin, "no-such-package")
    assert admin.names() == ["error"]


@pytest.mark.asyncio
async def test_last_updater_may_join(db, hub, connection_factory, mobile_home_package):
    await lifecycle.transition(db, mobile_home_package.id, PackageStatus.IN_REVIEW, "bob")
    bob = await connect(hub, connection_factory, BOB_TOKEN, "bob-1")
    await join(hub, bob, mobile_home_package.id)
    assert bob.names() == ["joined-package"]


@pytest.mark.asyncio
async def test_rooms_are_isolated(db, hub, connection_factory, miami_dade, mobile_home_package):
    other = await lifecycle.create_package(
        db,
        PackageCreate(title="Other", permit_type=PermitType.RESIDENTIAL, customer_id="c2", county_id=miami_dade.id),
        "alice",
    )
    in_a = await connect(hub, connection_factory, ALICE_TOKEN, "alice-a")
    in_b = await connect(hub, connection_factory, ALICE_TOKEN, "alice-b")
    await join(hub, in_a, mobile_home_package.id)
    await join(hub, in_b, other.id)

    delivered = await hub.broadcast(mobile_home_package.id, "checklist-updated", {"itemId": 1})

    assert delivered == 1
    assert in_a.names() == ["joined-package", "checklist-updated"]
    assert in_b.names() == ["joined-package"]


@pytest.mark.asyncio
async def test_connection_can_be_in_several_rooms(db, hub, connection_factory, miami_dade, mobile_home_package):
    other = await lifecycle.create_package(
        db,
        PackageCreate(title="Other", permit_type=PermitType.RESIDENTIAL, customer_id="c2", county_id=miami_dade.id),
        "alice",
    )
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    await join(hub, alice, mobile_home_package.id)
    await join(hub, alice, other.id)

    assert await hub.registry.rooms_of(alice.id) == {mobile_home_package.id, other.id}


@pytest.mark.asyncio
async def test_single_room_mode_leaves_previous_room(db, connection_factory, miami_dade, mobile_home_package, app):
    hub = CollaborationHub(
        registry=SessionRegistry(),
        session_factory=app.state.session_factory,
        identity_provider=app.state.identity_provider,
        single_room=True,
    )
    other = await lifecycle.create_package(
        db,
        PackageCreate(title="Other", permit_type=PermitType.RESIDENTIAL, customer_id="c2", county_id=miami_dade.id),
        "alice",
    )
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    watcher = await connect(hub, connection_factory, ADMIN_TOKEN, "admin-1")
    await join(hub, watcher, mobile_home_package.id)
    await join(hub, alice, mobile_home_package.id)
    await join(hub, alice, other.id)

    assert await hub.registry.rooms_of(alice.id) == {other.id}
    assert alice.names() == ["joined-package", "left-package", "joined-package"]
    assert [p["action"] for p in watcher.of("presence")] == ["joined", "left"]


@pytest.mark.asyncio
async def test_leave_room(db, hub, connection_factory, mobile_home_package):
    package_id = mobile_home_package.id
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    admin = await connect(hub, connection_factory, ADMIN_TOKEN, "admin-1")
    await join(hub, alice, package_id)
    await join(hub, admin, package_id)

    await hub.dispatch(admin, {"event": "leave-package", "data": {"packageId": package_id}})

    assert admin.names()[-1] == "left-package"
    assert alice.of("presence")[-1]["action"] == "left"
    assert alice.of("presence")[-1]["userId"] == "admin"
    assert not await hub.registry.is_member(admin.id, package_id)

    await hub.broadcast(package_id, "status-updated", {})
    assert "status-updated" not in admin.names()


@pytest.mark.asyncio
async def test_disconnect_announces_departure_in_every_room(db, hub, connection_factory, mobile_home_package):
    package_id = mobile_home_package.id
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    admin = await connect(hub, connection_factory, ADMIN_TOKEN, "admin-1")
    await join(hub, alice, package_id)
    await join(hub, admin, package_id)

    await hub.disconnect(admin)

    assert alice.of("presence")[-1] == {
        "userId": "admin",
        "action": "left",
        "timestamp": alice.of("presence")[-1]["timestamp"],
    }
    assert await hub.registry.get(admin.id) is None
    assert [c.id for c in await hub.registry.members(package_id)] == [alice.id]


@pytest.mark.asyncio
async def test_realtime_toggle_persists_then_broadcasts(db, hub, connection_factory, mobile_home_package):
    package_id = mobile_home_package.id
    items = await progress.get_checklist(db, package_id)
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    admin = await connect(hub, connection_factory, ADMIN_TOKEN, "admin-1")
    await join(hub, alice, package_id)
    await join(hub, admin, package_id)

    await hub.dispatch(alice, {
        "event": "toggle-checklist-item",
        "data": {"packageId": package_id, "itemId": items[0].id, "completed": True},
    })

    for connection in (alice, admin):
        update = connection.of("checklist-updated")
        assert len(update) == 1
        assert update[0]["itemId"] == items[0].id
        assert update[0]["completed"] is True
        assert update[0]["updatedBy"] == "alice"

    await db.refresh(items[0])
    assert items[0].completed is True
    assert items[0].completed_at is not None


@pytest.mark.asyncio
async def test_realtime_status_update(db, hub, connection_factory, mobile_home_package):
    package_id = mobile_home_package.id
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    admin = await connect(hub, connection_factory, ADMIN_TOKEN, "admin-1")
    await join(hub, alice, package_id)
    await join(hub, admin, package_id)

    await hub.dispatch(admin, {
        "event": "update-status",
        "data": {"packageId": package_id, "status": "IN_REVIEW", "note": "looking at it"},
    })

    event = alice.of("status-updated")[0]
    assert event["status"] == "IN_REVIEW"
    assert event["note"] == "looking at it"
    assert event["updatedBy"] == "admin"
    assert admin.of("status-updated")[0]["status"] == "IN_REVIEW"

    result = await db.execute(
        select(func.count(StatusLogEntry.id)).where(StatusLogEntry.package_id == package_id)
    )
    assert result.scalar_one() == 2


@pytest.mark.asyncio
async def test_mutation_without_joining_is_refused(db, hub, connection_factory, mobile_home_package):
    items = await progress.get_checklist(db, mobile_home_package.id)
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")

    await hub.dispatch(alice, {
        "event": "toggle-checklist-item",
        "data": {"packageId": mobile_home_package.id, "itemId": items[0].id, "completed": True},
    })

    assert alice.events == [("error", {"message": "Join the package before editing it"})]
    await db.refresh(items[0])
    assert items[0].completed is False


@pytest.mark.asyncio
async def test_failed_mutation_reports_error_and_does_not_broadcast(db, hub, connection_factory, mobile_home_package):
    package_id = mobile_home_package.id
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    admin = await connect(hub, connection_factory, ADMIN_TOKEN, "admin-1")
    await join(hub, alice, package_id)
    await join(hub, admin, package_id)

    await hub.dispatch(alice, {
        "event": "toggle-checklist-item",
        "data": {"packageId": package_id, "itemId": 99999, "completed": True},
    })

    assert alice.names()[-1] == "error"
    assert "not found" in alice.of("error")[0]["message"]
    assert "checklist-updated" not in admin.names()


@pytest.mark.asyncio
async def test_strict_hub_rejects_illegal_transition(db, app, connection_factory, mobile_home_package):
    hub = CollaborationHub(
        registry=SessionRegistry(),
        session_factory=app.state.session_factory,
        identity_provider=app.state.identity_provider,
        policy=WorkflowPolicy(strict_transitions=True),
    )
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    await join(hub, alice, mobile_home_package.id)

    await hub.dispatch(alice, {
        "event": "update-status",
        "data": {"packageId": mobile_home_package.id, "status": "APPROVED"},
    })
    assert alice.names() == ["joined-package", "error"]
    assert "not allowed" in alice.of("error")[0]["message"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message, fragment",
    [
        ("{not json", "Malformed message"),
        ({"event": "dance", "data": {}}, "Invalid message"),
        ({"event": "join-package", "data": {}}, "packageId"),
        ({"event": "update-status", "data": {"packageId": "p", "status": "ARCHIVED"}}, "status"),
    ],
)
async def test_invalid_frames_yield_error_events(hub, connection_factory, message, fragment):
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    await hub.dispatch(alice, message)

    assert alice.names() == ["error"]
    assert fragment in alice.of("error")[0]["message"]


@pytest.mark.asyncio
async def test_dead_connection_does_not_fail_the_mutation(db, hub, connection_factory, mobile_home_package):
    package_id = mobile_home_package.id
    items = await progress.get_checklist(db, package_id)
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    admin = await connect(hub, connection_factory, ADMIN_TOKEN, "admin-1")
    await join(hub, alice, package_id)
    await join(hub, admin, package_id)
    admin.broken = True

    await hub.dispatch(alice, {
        "event": "toggle-checklist-item",
        "data": {"packageId": package_id, "itemId": items[0].id, "completed": True},
    })

    assert "checklist-updated" in alice.names()
    assert await hub.registry.get(admin.id) is None
    await db.refresh(items[0])
    assert items[0].completed is True


@pytest.mark.asyncio
async def test_dead_connection_is_announced_as_left_once(db, hub, connection_factory, mobile_home_package):
    package_id = mobile_home_package.id
    alice = await connect(hub, connection_factory, ALICE_TOKEN, "alice-1")
    admin = await connect(hub, connection_factory, ADMIN_TOKEN, "admin-1")
    await join(hub, alice, package_id)
    await join(hub, admin, package_id)
    admin.broken = True

    delivered = await hub.broadcast(package_id, "status-updated", {"packageId": package_id})

    assert delivered == 1
    departures = [p for p in alice.of("presence") if p["action"] == "left"]
    assert [p["userId"] for p in departures] == ["admin"]
    assert [c.id for c in await hub.registry.members(package_id)] == [alice.id]

    # the socket handler still calls disconnect when its loop ends
    await hub.disconnect(admin)
    assert len([p for p in alice.of("presence") if p["action"] == "left"]) == 1


@pytest.mark.asyncio
async def test_send_to_user_reaches_all_their_connections(hub, connection_factory):
    laptop = await connect(hub, connection_factory, ALICE_TOKEN, "alice-laptop")
    phone = await connect(hub, connection_factory, ALICE_TOKEN, "alice-phone")
    bob = await connect(hub, connection_factory, BOB_TOKEN, "bob-1")

    delivered = await hub.send_to_user("alice", "status-updated", {"packageId": "p"})

    assert delivered == 2
    assert laptop.names() == phone.names() == ["status-updated"]
    assert bob.events == []
