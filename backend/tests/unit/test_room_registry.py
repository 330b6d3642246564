import asyncio
import random
from typing import Any, Dict, List

import pytest

from saysense.schemas.realtime import AudioChunkEvent, AudioChunkRelay, error_event
from saysense.services.room_registry import (
    ConnectionIdentity,
    QueueChannel,
    RoomRegistry,
    broadcast_safely,
)


class RecordingChannel:
    def __init__(self) -> None:
        self.messages: List[Dict[str, Any]] = []

    def deliver(self, message: Dict[str, Any]) -> None:
        self.messages.append(message)

    def types(self) -> List[str]:
        return [m["type"] for m in self.messages]


class BrokenChannel:
    def deliver(self, message: Dict[str, Any]) -> None:
        raise ConnectionError("socket gone")


def _connect(registry: RoomRegistry, connection_id: str, user_id: str = "") -> RecordingChannel:
    channel = RecordingChannel()
    identity = ConnectionIdentity(user_id=user_id or f"user-{connection_id}")
    registry.connect(connection_id, channel, identity)
    return channel


def _audio(session_id: str, user_id: str = "u") -> AudioChunkEvent:
    return AudioChunkEvent(data=AudioChunkRelay(session_id=session_id, user_id=user_id, chunk="AAAA", sample_rate=16000))


def test_join_switches_rooms_without_leave() -> None:
    registry = RoomRegistry()
    _connect(registry, "a")

    assert registry.join("a", "s1") is True
    assert registry.join("a", "s2") is True

    assert registry.room_of("a") == "s2"
    assert registry.is_member("a", "s2")
    assert not registry.is_member("a", "s1")
    assert registry.member_count("s1") == 0
    assert "s1" not in registry.room_ids()


def test_join_same_room_is_idempotent() -> None:
    registry = RoomRegistry()
    a = _connect(registry, "a")
    b = _connect(registry, "b", user_id="user-b")
    registry.join("a", "s1")
    registry.join("b", "s1")

    assert registry.join("b", "s1") is False
    assert registry.member_count("s1") == 2
    # only one presence event for b's first join
    assert a.types() == ["session_updated"]
    assert a.messages[0]["data"] == {"userId": "user-b", "isGuest": False, "action": "joined"}
    assert b.messages == []


def test_join_unknown_connection_is_noop() -> None:
    registry = RoomRegistry()
    assert registry.join("ghost", "s1") is False
    assert registry.member_count("s1") == 0


def test_leave_twice_is_noop() -> None:
    registry = RoomRegistry()
    _connect(registry, "a")
    _connect(registry, "b")
    registry.join("a", "s1")
    registry.join("b", "s1")

    assert registry.leave("a", "s1") is True
    assert registry.leave("a", "s1") is False
    assert registry.member_count("s1") == 1
    assert registry.room_of("a") is None


def test_leave_wrong_room_keeps_membership() -> None:
    registry = RoomRegistry()
    _connect(registry, "a")
    registry.join("a", "s1")

    assert registry.leave("a", "s2") is False
    assert registry.is_member("a", "s1")


def test_room_removed_when_last_member_leaves() -> None:
    registry = RoomRegistry()
    _connect(registry, "a")
    _connect(registry, "b")
    registry.join("a", "s1")
    registry.join("b", "s1")

    registry.leave("a", "s1")
    assert registry.room_ids() == ["s1"]
    registry.disconnect("b")
    assert registry.room_ids() == []
    assert registry.member_count("s1") == 0


def test_disconnect_is_idempotent_and_safe_without_room() -> None:
    registry = RoomRegistry()
    _connect(registry, "a")
    registry.disconnect("a")
    registry.disconnect("a")
    registry.disconnect("never-connected")
    assert registry.connection_count() == 0


def test_broadcast_to_empty_or_unknown_room() -> None:
    registry = RoomRegistry()
    assert registry.broadcast("nobody-here", _audio("nobody-here")) == 0


def test_broadcast_reaches_every_member_in_order() -> None:
    registry = RoomRegistry()
    a = _connect(registry, "a")
    b = _connect(registry, "b")
    registry.join("a", "s1")
    registry.join("b", "s1")
    a.messages.clear()

    first = error_event("FIRST", "one")
    second = error_event("SECOND", "two")
    assert registry.broadcast("s1", first) == 2
    assert registry.broadcast("s1", second) == 2

    for channel in (a, b):
        assert [m["data"]["code"] for m in channel.messages] == ["FIRST", "SECOND"]
        assert all({"type", "data", "timestamp"} <= set(m) for m in channel.messages)


def test_relay_excludes_origin_only() -> None:
    registry = RoomRegistry()
    channels = {cid: _connect(registry, cid) for cid in ("a", "b", "c")}
    outsider = _connect(registry, "d")
    for cid in channels:
        registry.join(cid, "s1")
    registry.join("d", "s2")
    for channel in list(channels.values()) + [outsider]:
        channel.messages.clear()

    assert registry.relay("s1", "a", _audio("s1")) == 2

    assert channels["a"].messages == []
    assert channels["b"].types() == ["audio_chunk"]
    assert channels["c"].types() == ["audio_chunk"]
    assert outsider.messages == []


def test_failing_channel_does_not_block_others() -> None:
    registry = RoomRegistry()
    registry.connect("broken", BrokenChannel(), ConnectionIdentity(user_id="x"))
    ok = _connect(registry, "ok")
    registry.join("broken", "s1")
    registry.join("ok", "s1")
    ok.messages.clear()

    assert registry.broadcast("s1", _audio("s1")) == 1
    assert ok.types() == ["audio_chunk"]


def test_send_to_unknown_connection() -> None:
    registry = RoomRegistry()
    assert registry.send("ghost", error_event("X", "y")) is False


def test_broadcast_safely_swallows_errors() -> None:
    class ExplodingRegistry(RoomRegistry):
        def broadcast(self, session_id, event):  # type: ignore[override]
            raise RuntimeError("boom")

    assert broadcast_safely(ExplodingRegistry(), "s1", _audio("s1")) == 0
    assert broadcast_safely(None, "s1", _audio("s1")) == 0


def test_close_clears_everything() -> None:
    registry = RoomRegistry()
    _connect(registry, "a")
    registry.join("a", "s1")
    registry.close()
    assert registry.connection_count() == 0
    assert registry.room_ids() == []


def test_random_operations_keep_single_membership() -> None:
    rng = random.Random(7)
    registry = RoomRegistry()
    connections = [f"c{i}" for i in range(6)]
    rooms = ["s1", "s2", "s3"]
    for cid in connections:
        _connect(registry, cid)
    connected = set(connections)

    for _ in range(500):
        cid = rng.choice(connections)
        op = rng.choice(["join", "leave", "disconnect"])
        if op == "join":
            if cid not in connected:
                _connect(registry, cid)
                connected.add(cid)
            registry.join(cid, rng.choice(rooms))
        elif op == "leave":
            registry.leave(cid, rng.choice(rooms))
        else:
            registry.disconnect(cid)
            connected.discard(cid)

        memberships = {c: [r for r in rooms if c in registry.members(r)] for c in connections}
        for c, joined in memberships.items():
            assert len(joined) <= 1
            assert registry.room_of(c) == (joined[0] if joined else None)
        for room in registry.room_ids():
            assert registry.member_count(room) > 0


@pytest.mark.asyncio
async def test_queue_channel_delivers_from_other_threads() -> None:
    channel = QueueChannel()
    registry = RoomRegistry()
    registry.connect("a", channel, ConnectionIdentity(user_id="u"))
    registry.join("a", "s1")

    await asyncio.to_thread(registry.broadcast, "s1", error_event("FROM_THREAD", "x"))
    registry.broadcast("s1", error_event("FROM_LOOP", "y"))

    first = await asyncio.wait_for(channel.get(), timeout=1)
    second = await asyncio.wait_for(channel.get(), timeout=1)
    assert [first["data"]["code"], second["data"]["code"]] == ["FROM_THREAD", "FROM_LOOP"]


@pytest.mark.asyncio
async def test_closed_queue_channel_drops_messages() -> None:
    channel = QueueChannel()
    channel.close()
    channel.deliver({"type": "error"})
    assert channel.closed
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(channel.get(), timeout=0.05)
