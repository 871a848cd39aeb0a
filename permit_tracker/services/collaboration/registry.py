"""In-memory registry of connected sessions and package rooms."""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set
from permit_tracker.core.security import Identity
from permit_tracker.services.collaboration.connection import Connection
from permit_tracker.utils.timestamps import iso_now


@dataclass
class CollaborationSession:
    """Authenticated connection and the package rooms it has joined"""
    connection: Connection
    identity: Identity
    rooms: Set[str] = field(default_factory=set)
    connected_at: str = field(default_factory=iso_now)

    @property
    def user_id(self) -> str:
        return self.identity.user_id


class SessionRegistry:
    """
    Fan-out address book for the collaboration hub.

    One instance per process, injected into the hub. It holds no durable
    state: after a restart it is rebuilt as clients reconnect and rejoin.
    All mutations and reads happen under a single asyncio lock.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._sessions: Dict[str, CollaborationSession] = {}
        self._rooms: Dict[str, Set[str]] = {}

    async def register(self, connection: Connection, identity: Identity) -> CollaborationSession:
        session = CollaborationSession(connection=connection, identity=identity)
        async with self._lock:
            self._sessions[connection.id] = session
        return session

    async def unregister(self, connection_id: str) -> Optional[CollaborationSession]:
        """Drop a session and its room memberships; returns it with its rooms."""
        async with self._lock:
            session = self._sessions.pop(connection_id, None)
            if session is None:
                return None
            for package_id in session.rooms:
                self._discard_member(package_id, connection_id)
            return session

    async def get(self, connection_id: str) -> Optional[CollaborationSession]:
        async with self._lock:
            return self._sessions.get(connection_id)

    async def join(self, connection_id: str, package_id: str) -> bool:
        """Add a session to a room. Returns False if it was already a member."""
        async with self._lock:
            session = self._sessions.get(connection_id)
            if session is None:
                raise KeyError(connection_id)
            if package_id in session.rooms:
                return False
            session.rooms.add(package_id)
            self._rooms.setdefault(package_id, set()).add(connection_id)
            return True

    async def leave(self, connection_id: str, package_id: str) -> bool:
        """Remove a session from a room. Returns False if it was not a member."""
        async with self._lock:
            session = self._sessions.get(connection_id)
            if session is None or package_id not in session.rooms:
                return False
            session.rooms.discard(package_id)
            self._discard_member(package_id, connection_id)
            return True

    async def is_member(self, connection_id: str, package_id: str) -> bool:
        async with self._lock:
            return connection_id in self._rooms.get(package_id, ())

    async def rooms_of(self, connection_id: str) -> FrozenSet[str]:
        async with self._lock:
            session = self._sessions.get(connection_id)
            return frozenset(session.rooms) if session else frozenset()

    async def members(self, package_id: str) -> List[Connection]:
        """Snapshot of the connections joined to a room"""
        async with self._lock:
            return [self._sessions[cid].connection for cid in self._rooms.get(package_id, ())]

    async def connections_for_user(self, user_id: str) -> List[Connection]:
        async with self._lock:
            return [s.connection for s in self._sessions.values() if s.user_id == user_id]

    async def connected_count(self) -> int:
        async with self._lock:
            return len(self._sessions)

    def _discard_member(self, package_id: str, connection_id: str) -> None:
        members = self._rooms.get(package_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[package_id]
