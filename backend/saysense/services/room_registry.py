"""
Session room registry.

Tracks which live connections are subscribed to which session room and fans
server events out to them. A connection is a member of at most one room.

Every operation is short in-memory bookkeeping behind a single lock: REST
handlers run on the threadpool while WebSocket handlers run on the event loop,
and both touch the same maps. Delivery never awaits; each channel hands the
message to its own writer, which keeps per-connection FIFO order.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

from pydantic import BaseModel

from saysense.schemas.realtime import PresenceUpdate, SessionUpdatedEvent

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


class ConnectionChannel(Protocol):
    def deliver(self, message: Message) -> None:
        """Queue one serialized event for sending. Must not block."""


@dataclass(frozen=True)
class ConnectionIdentity:
    user_id: str
    is_guest: bool = False


@dataclass
class _Connection:
    channel: ConnectionChannel
    identity: Optional[ConnectionIdentity] = None


class QueueChannel:
    """Channel backed by an asyncio queue on the connection's event loop.

    ``deliver`` is safe to call from any thread; the owning coroutine drains
    the queue with ``get``.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def deliver(self, message: Message) -> None:
        if self._closed:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._queue.put_nowait(message)
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, message)

    async def get(self) -> Message:
        return await self._queue.get()

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


def serialize_event(event: BaseModel) -> Message:
    return event.model_dump(mode="json", by_alias=True)


class RoomRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: Dict[str, _Connection] = {}
        self._room_members: Dict[str, Set[str]] = {}
        self._connection_room: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(
        self,
        connection_id: str,
        channel: ConnectionChannel,
        identity: Optional[ConnectionIdentity] = None,
    ) -> None:
        with self._lock:
            if connection_id in self._connections:
                logger.warning("room_connection_replaced connection_id=%s", connection_id)
            self._connections[connection_id] = _Connection(channel=channel, identity=identity)
        logger.debug("room_connected connection_id=%s", connection_id)

    def join(self, connection_id: str, session_id: str) -> bool:
        """Put the connection in ``session_id``, leaving any previous room.

        Returns False when nothing changed (unknown connection or already a
        member). Other members get a presence ``session_updated`` event.
        """
        with self._lock:
            conn = self._connections.get(connection_id)
            if conn is None:
                logger.warning("room_join_unknown_connection connection_id=%s session_id=%s", connection_id, session_id)
                return False
            current = self._connection_room.get(connection_id)
            if current == session_id:
                return False
            if current is not None:
                self._leave_locked(connection_id, current)

            members = self._room_members.setdefault(session_id, set())
            others = list(members)
            members.add(connection_id)
            self._connection_room[connection_id] = session_id

            if conn.identity is not None and others:
                presence = SessionUpdatedEvent(
                    data=PresenceUpdate(user_id=conn.identity.user_id, is_guest=conn.identity.is_guest)
                )
                self._deliver_locked(others, serialize_event(presence))
        logger.info(
            "room_joined connection_id=%s session_id=%s previous=%s members=%d",
            connection_id,
            session_id,
            current,
            len(others) + 1,
        )
        return True

    def leave(self, connection_id: str, session_id: str) -> bool:
        with self._lock:
            if self._connection_room.get(connection_id) != session_id:
                return False
            self._leave_locked(connection_id, session_id)
        logger.info("room_left connection_id=%s session_id=%s", connection_id, session_id)
        return True

    def disconnect(self, connection_id: str) -> None:
        """Drop the connection and its membership. Idempotent."""
        with self._lock:
            session_id = self._connection_room.get(connection_id)
            if session_id is not None:
                self._leave_locked(connection_id, session_id)
            known = self._connections.pop(connection_id, None) is not None
        if known:
            logger.info("room_disconnected connection_id=%s session_id=%s", connection_id, session_id)

    def close(self) -> None:
        with self._lock:
            connections = len(self._connections)
            rooms = len(self._room_members)
            self._connections.clear()
            self._room_members.clear()
            self._connection_room.clear()
        logger.info("room_registry_closed connections=%d rooms=%d", connections, rooms)

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def broadcast(self, session_id: str, event: BaseModel) -> int:
        """Deliver ``event`` to every member of the room. Returns recipient count."""
        message = serialize_event(event)
        with self._lock:
            members = list(self._room_members.get(session_id, ()))
            return self._deliver_locked(members, message)

    def relay(self, session_id: str, origin_connection_id: str, event: BaseModel) -> int:
        """Like ``broadcast`` but never back to the origin connection."""
        message = serialize_event(event)
        with self._lock:
            members = [cid for cid in self._room_members.get(session_id, ()) if cid != origin_connection_id]
            return self._deliver_locked(members, message)

    def send(self, connection_id: str, event: BaseModel) -> bool:
        message = serialize_event(event)
        with self._lock:
            if connection_id not in self._connections:
                return False
            return self._deliver_locked([connection_id], message) == 1

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_member(self, connection_id: str, session_id: str) -> bool:
        with self._lock:
            return self._connection_room.get(connection_id) == session_id

    def room_of(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._connection_room.get(connection_id)

    def member_count(self, session_id: str) -> int:
        with self._lock:
            return len(self._room_members.get(session_id, ()))

    def members(self, session_id: str) -> Set[str]:
        with self._lock:
            return set(self._room_members.get(session_id, ()))

    def room_ids(self) -> List[str]:
        with self._lock:
            return list(self._room_members)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    # ------------------------------------------------------------------
    # Internals (caller holds self._lock)
    # ------------------------------------------------------------------

    def _leave_locked(self, connection_id: str, session_id: str) -> None:
        members = self._room_members.get(session_id)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._room_members[session_id]
        self._connection_room.pop(connection_id, None)

    def _deliver_locked(self, connection_ids: Iterable[str], message: Message) -> int:
        delivered = 0
        for connection_id in connection_ids:
            conn = self._connections.get(connection_id)
            if conn is None:
                continue
            try:
                conn.channel.deliver(message)
            except Exception:
                logger.warning(
                    "room_deliver_failed connection_id=%s type=%s",
                    connection_id,
                    message.get("type"),
                    exc_info=True,
                )
                continue
            delivered += 1
        return delivered


def broadcast_safely(registry: Optional[RoomRegistry], session_id: str, event: BaseModel) -> int:
    """Broadcast for services: a storage write already succeeded, so never raise."""
    if registry is None:
        return 0
    try:
        return registry.broadcast(session_id, event)
    except Exception:
        logger.warning(
            "room_broadcast_failed session_id=%s type=%s",
            session_id,
            getattr(event, "type", None),
            exc_info=True,
        )
        return 0
