from saysense.services.room_registry import ConnectionIdentity


class RecordingChannel:
    def __init__(self) -> None:
        self.messages = []

    def deliver(self, message) -> None:
        self.messages.append(message)


def _segment(session_id: str, start: float, end: float, speaker: str = "Self", text: str = "hello", **extra):
    return {
        "sessionId": session_id,
        "startTime": start,
        "endTime": end,
        "speakerLabel": speaker,
        "transcript": text,
        **extra,
    }


def test_create_segment_broadcasts_new(client, make_user, make_session, registry) -> None:
    user = make_user("Alice")
    session = make_session(user)
    sid = session["id"]
    channel = RecordingChannel()
    registry.connect("viewer", channel, ConnectionIdentity(user_id="v"))
    registry.join("viewer", sid)

    resp = client.post(
        f"/sessions/{sid}/transcripts",
        json=_segment(sid, 0.5, 2.0, confidence=0.93, highlights=["growth"]),
        headers=user["headers"],
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["isFinal"] is True
    assert body["highlights"] == ["growth"]
    event = channel.messages[-1]
    assert event["type"] == "transcript_update"
    assert event["data"]["action"] == "new"
    assert event["data"]["segment"]["id"] == body["id"]


def test_create_segment_session_mismatch(client, make_user, make_session) -> None:
    user = make_user("Alice")
    session = make_session(user)
    other = make_session(user)

    resp = client.post(
        f"/sessions/{session['id']}/transcripts",
        json=_segment(other["id"], 0, 1),
        headers=user["headers"],
    )
    assert resp.status_code == 400


def test_segment_end_before_start_rejected(client, make_user, make_session) -> None:
    user = make_user("Alice")
    session = make_session(user)
    resp = client.post(
        f"/sessions/{session['id']}/transcripts",
        json=_segment(session["id"], 5, 1),
        headers=user["headers"],
    )
    assert resp.status_code == 422


def test_batch_rules(client, make_user, make_session, registry) -> None:
    user = make_user("Alice")
    session = make_session(user)
    other = make_session(user)
    sid = session["id"]
    url = f"/sessions/{sid}/transcripts/batch"

    empty = client.post(url, json={"segments": []}, headers=user["headers"])
    assert empty.status_code == 201
    assert empty.json() == []

    mixed = client.post(
        url,
        json={"segments": [_segment(sid, 0, 1), _segment(other["id"], 1, 2)]},
        headers=user["headers"],
    )
    assert mixed.status_code == 400

    channel = RecordingChannel()
    registry.connect("viewer", channel, ConnectionIdentity(user_id="v"))
    registry.join("viewer", sid)
    ok = client.post(
        url,
        json={"segments": [_segment(sid, 1, 2), _segment(sid, 2, 3, speaker="Guest")]},
        headers=user["headers"],
    )
    assert ok.status_code == 201
    assert len(ok.json()) == 2
    assert len(channel.messages) == 1
    assert channel.messages[0]["data"]["action"] == "batch"
    assert len(channel.messages[0]["data"]["segments"]) == 2


def test_empty_batch_still_requires_owned_session(client, make_user, make_session) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    session = make_session(alice)

    foreign = client.post(
        f"/sessions/{session['id']}/transcripts/batch",
        json={"segments": []},
        headers=bob["headers"],
    )
    assert foreign.status_code == 404

    missing = client.post("/sessions/no-such-session/transcripts/batch", json={"segments": []}, headers=bob["headers"])
    assert missing.status_code == 404


def test_list_segments_overlap_and_filters(client, make_user, make_session) -> None:
    user = make_user("Alice")
    session = make_session(user)
    sid = session["id"]
    client.post(
        f"/sessions/{sid}/transcripts/batch",
        json={
            "segments": [
                _segment(sid, 1, 4, text="one"),
                _segment(sid, 4, 9, speaker="Guest", text="two"),
                _segment(sid, 10, 12, text="three", isFinal=False),
            ]
        },
        headers=user["headers"],
    )
    url = f"/sessions/{sid}/transcripts"

    # the placeholder segment (0-0, not final) is part of every new session
    everything = client.get(url, headers=user["headers"]).json()
    assert [s["transcript"] for s in everything] == ["Processing...", "one", "two", "three"]

    window = client.get(url, params={"startTime": 3, "endTime": 10}, headers=user["headers"]).json()
    assert [s["transcript"] for s in window] == ["one", "two", "three"]

    guest = client.get(url, params={"speaker": "Guest"}, headers=user["headers"]).json()
    assert [s["transcript"] for s in guest] == ["two"]

    final = client.get(url, params={"isFinal": "true"}, headers=user["headers"]).json()
    assert [s["transcript"] for s in final] == ["one", "two"]


def test_get_and_remove_segment(client, make_user, make_session, registry) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    session = make_session(alice)
    sid = session["id"]
    segment = client.post(f"/sessions/{sid}/transcripts", json=_segment(sid, 0, 1), headers=alice["headers"]).json()
    url = f"/sessions/{sid}/transcripts/{segment['id']}"

    assert client.get(url, headers=alice["headers"]).json()["id"] == segment["id"]
    assert client.get(url, headers=bob["headers"]).status_code == 404
    assert client.delete(url, headers=bob["headers"]).status_code == 404

    channel = RecordingChannel()
    registry.connect("viewer", channel, ConnectionIdentity(user_id="v"))
    registry.join("viewer", sid)
    assert client.delete(url, headers=alice["headers"]).status_code == 204
    assert channel.messages[-1]["data"] == {
        "action": "deleted",
        "segment": None,
        "segments": None,
        "segmentId": segment["id"],
    }
    assert client.get(url, headers=alice["headers"]).status_code == 404
