"""Collaboration hub: authenticated, room-scoped real-time sync for packages."""

import asyncio
import json
import logging
from typing import Any, Optional, Union
from fastapi import status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from permit_tracker.core.errors import ForbiddenError, PermitTrackerError, UnauthorizedError
from permit_tracker.core.security import IdentityProvider, PackageAccessPolicy
from permit_tracker.models.enums import PresenceAction
from permit_tracker.schemas.events import (
    ERROR,
    JOINED_PACKAGE,
    LEFT_PACKAGE,
    PRESENCE,
    ErrorPayload,
    JoinPackageEvent,
    LeavePackageEvent,
    PresencePayload,
    ToggleChecklistItemData,
    ToggleChecklistItemEvent,
    UpdateStatusData,
    UpdateStatusEvent,
    client_event_adapter,
    dump_payload,
)
from permit_tracker.services import lifecycle, progress
from permit_tracker.services.collaboration.connection import Connection
from permit_tracker.services.collaboration.registry import CollaborationSession, SessionRegistry
from permit_tracker.services.lifecycle import WorkflowPolicy
from permit_tracker.utils.timestamps import iso_now

logger = logging.getLogger(__name__)


class CollaborationHub:
    """
    Coordinates live editing of permit packages.

    Connection lifecycle: authenticate -> join/leave rooms -> disconnect.
    Room membership lives in the injected SessionRegistry; packages,
    checklists and the audit trail live in the database and are always
    written (and committed) before anything is broadcast.

    Args:
        registry: Session/room registry for this process
        session_factory: async_sessionmaker used for store access
        identity_provider: Resolves connection tokens to identities
        access_policy: Decides who may join a package room
        policy: Workflow switches applied to real-time mutations
        single_room: Leave previously joined rooms on join
    """

    def __init__(
        self,
        registry: SessionRegistry,
        session_factory,
        identity_provider: IdentityProvider,
        access_policy: Optional[PackageAccessPolicy] = None,
        policy: WorkflowPolicy = WorkflowPolicy(),
        single_room: bool = False,
    ):
        self.registry = registry
        self._session_factory = session_factory
        self._identity_provider = identity_provider
        self._access_policy = access_policy or PackageAccessPolicy()
        self.policy = policy
        self.single_room = single_room

    # Connection lifecycle

    async def authenticate(self, connection: Connection, token: Optional[str]) -> CollaborationSession:
        """Verify the connection's token and register it.

        On failure the connection is closed with a policy-violation code and
        UnauthorizedError is raised.
        """
        try:
            identity = await self._identity_provider.verify(token)
        except UnauthorizedError as e:
            logger.warning("WebSocket authentication failed for %s: %s", connection.id, e.message)
            await connection.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
            raise

        session = await self.registry.register(connection, identity)
        logger.info("Client connected: %s (connection %s)", identity.user_id, connection.id)
        return session

    async def disconnect(self, connection: Connection) -> None:
        """Forget a connection and tell every room it was in that the user left.

        Safe to call more than once; only the first call announces anything.
        """
        session = await self.registry.unregister(connection.id)
        if session is None:
            return
        logger.info("Client disconnected: %s (connection %s)", session.user_id, connection.id)
        for package_id in session.rooms:
            await self._announce(package_id, session.user_id, PresenceAction.LEFT)

    # Rooms

    async def join_room(self, connection: Connection, package_id: str) -> bool:
        """Join a package room if the access policy allows it.

        The caller gets `joined-package`; the other members get `presence`
        with action `joined`. A refused join sends `error` to the caller only.
        """
        session = await self._require_session(connection)

        try:
            async with self._session_factory() as db:
                allowed = await self._access_policy.can_access(db, session.identity, package_id)
        except SQLAlchemyError as e:
            logger.error("Error joining package %s: %s", package_id, e)
            await self.send_error(connection, "Failed to join package")
            return False

        if not allowed:
            logger.warning("User %s denied access to package %s", session.user_id, package_id)
            await self.send_error(connection, "Access denied to this package")
            return False

        if self.single_room:
            for other in await self.registry.rooms_of(connection.id):
                if other != package_id:
                    await self.leave_room(connection, other)

        newly_joined = await self.registry.join(connection.id, package_id)
        await connection.send(JOINED_PACKAGE, {"packageId": package_id})
        if newly_joined:
            await self._announce(package_id, session.user_id, PresenceAction.JOINED, exclude=connection.id)
        return True

    async def leave_room(self, connection: Connection, package_id: str) -> None:
        session = await self._require_session(connection)
        left = await self.registry.leave(connection.id, package_id)
        await connection.send(LEFT_PACKAGE, {"packageId": package_id})
        if left:
            await self._announce(package_id, session.user_id, PresenceAction.LEFT)

    # Fan-out

    async def broadcast(self, package_id: str, event: str, data: dict, exclude: Optional[str] = None) -> int:
        """Send an event to every connection joined to a package room.

        Delivery failures are logged and the dead connection is dropped; they
        are never reported to whoever caused the broadcast.

        Returns:
            Number of connections the event was delivered to
        """
        targets = [c for c in await self.registry.members(package_id) if c.id != exclude]
        if not targets:
            return 0
        results = await asyncio.gather(*(self._deliver(c, event, data) for c in targets))
        return sum(results)

    async def send_to_user(self, user_id: str, event: str, data: dict) -> int:
        """Send an event to every connection of a user, regardless of rooms"""
        targets = await self.registry.connections_for_user(user_id)
        results = await asyncio.gather(*(self._deliver(c, event, data) for c in targets))
        return sum(results)

    async def send_error(self, connection: Connection, message: str) -> None:
        await self._deliver(connection, ERROR, dump_payload(ErrorPayload(message=message)))

    # Real-time mutations

    async def toggle_checklist_item(self, connection: Connection, data: ToggleChecklistItemData):
        """Real-time entry point for the progress tracker's toggle"""
        session = await self._require_member(connection, data.package_id)
        async with self._session_factory() as db:
            return await progress.toggle(
                db,
                data.item_id,
                data.completed,
                session.user_id,
                data.notes,
                package_id=data.package_id,
                expected_version=data.expected_version,
                optimistic=self.policy.optimistic_concurrency,
                notifier=self,
            )

    async def update_status(self, connection: Connection, data: UpdateStatusData):
        """Real-time entry point for the lifecycle transition"""
        session = await self._require_member(connection, data.package_id)
        async with self._session_factory() as db:
            return await lifecycle.transition(
                db,
                data.package_id,
                data.status,
                session.user_id,
                data.note,
                policy=self.policy,
                expected_version=data.expected_version,
                notifier=self,
            )

    # Inbound frames

    async def dispatch(self, connection: Connection, message: Union[str, bytes, dict]) -> None:
        """Validate one client frame and route it.

        Every failure ends up as an `error` event to this connection only.
        """
        if isinstance(message, (str, bytes)):
            try:
                message = json.loads(message)
            except ValueError:
                await self.send_error(connection, "Malformed message: expected JSON")
                return

        try:
            event = client_event_adapter.validate_python(message)
        except ValidationError as e:
            await self.send_error(connection, f"Invalid message: {_first_error(e)}")
            return

        try:
            if isinstance(event, JoinPackageEvent):
                await self.join_room(connection, event.data.package_id)
            elif isinstance(event, LeavePackageEvent):
                await self.leave_room(connection, event.data.package_id)
            elif isinstance(event, ToggleChecklistItemEvent):
                await self.toggle_checklist_item(connection, event.data)
            elif isinstance(event, UpdateStatusEvent):
                await self.update_status(connection, event.data)
        except PermitTrackerError as e:
            logger.warning("%s failed for connection %s: %s", event.event, connection.id, e.message)
            await self.send_error(connection, e.message)
        except Exception:
            # the hub outlives any single bad message
            logger.exception("Unhandled error processing %s for connection %s", event.event, connection.id)
            await self.send_error(connection, f"Failed to process {event.event}")

    # Internals

    async def _require_session(self, connection: Connection) -> CollaborationSession:
        session = await self.registry.get(connection.id)
        if session is None:
            raise UnauthorizedError("Connection is not authenticated")
        return session

    async def _require_member(self, connection: Connection, package_id: str) -> CollaborationSession:
        session = await self._require_session(connection)
        if not await self.registry.is_member(connection.id, package_id):
            raise ForbiddenError("Join the package before editing it")
        return session

    async def _announce(
        self, package_id: str, user_id: str, action: PresenceAction, exclude: Optional[str] = None
    ) -> None:
        payload = PresencePayload(user_id=user_id, action=action, timestamp=iso_now())
        await self.broadcast(package_id, PRESENCE, dump_payload(payload), exclude=exclude)

    async def _deliver(self, connection: Connection, event: str, data: dict) -> bool:
        try:
            await connection.send(event, data)
            return True
        except Exception as e:
            # stale socket; the mutation that triggered this is already committed
            logger.warning("Dropping connection %s after failed %s delivery: %s", connection.id, event, e)
            await self.disconnect(connection)
            return False


def _first_error(error: ValidationError) -> Any:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else first.get("msg")
