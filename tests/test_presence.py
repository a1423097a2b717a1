import asyncio

from pulse_chat_app.chating.realtime.presence import OnlineUser, PresenceTracker


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _user(user_id, socket_id):
    return OnlineUser(user_id=user_id, username=f"user-{user_id}", profile={}, socket_id=socket_id)


async def test_add_and_remove_presence():
    tracker = PresenceTracker()

    table = await tracker.add(_user("u1", "s1"))
    table = await tracker.add(_user("u2", "s2"))
    assert {u["id"] for u in table} == {"u1", "u2"}
    assert table[0]["socketId"] == "s1"

    removed, table = await tracker.remove("u1", "s1")
    assert removed is True
    assert [u["id"] for u in table] == ["u2"]
    assert await tracker.is_online("u1") is False


async def test_stale_socket_does_not_remove_newer_connection():
    tracker = PresenceTracker()
    await tracker.add(_user("u1", "old"))
    await tracker.add(_user("u1", "new"))

    removed, table = await tracker.remove("u1", "old")

    assert removed is False
    assert [u["socketId"] for u in table] == ["new"]


async def test_typing_expires_after_timeout():
    clock = FakeClock()
    tracker = PresenceTracker(typing_timeout=10, clock=clock)
    await tracker.start_typing("chat", "u1", "alice")

    clock.now += 5
    await tracker.start_typing("chat", "u2", "bob")
    clock.now += 6

    expired = await tracker.expire_typing()
    assert [(e.chat_id, e.user_id) for e in expired] == [("chat", "u1")]
    assert await tracker.typing_in("chat") == ["u2"]


async def test_stop_and_clear_typing():
    tracker = PresenceTracker()
    await tracker.start_typing("c1", "u1", "alice")
    await tracker.start_typing("c2", "u1", "alice")
    await tracker.start_typing("c1", "u2", "bob")

    assert (await tracker.stop_typing("c1", "u2")).username == "bob"
    assert await tracker.stop_typing("c1", "u2") is None

    cleared = await tracker.clear_user_typing("u1")
    assert sorted(e.chat_id for e in cleared) == ["c1", "c2"]
    assert await tracker.typing_in("c1") == []


async def test_sweeper_broadcasts_expired_and_stops():
    clock = FakeClock()
    tracker = PresenceTracker(typing_timeout=10, clock=clock)
    seen = []

    async def on_expired(entry):
        seen.append(entry.user_id)

    await tracker.start_typing("chat", "u1", "alice")
    clock.now += 11
    tracker.start_sweeper(0.01, on_expired)

    for _ in range(100):
        if seen:
            break
        await asyncio.sleep(0.01)

    assert seen == ["u1"]

    await tracker.stop()
    assert tracker._sweeper is None
    assert await tracker.online_users() == []


async def test_online_payload_uses_camel_case_keys():
    tracker = PresenceTracker()
    (payload,) = await tracker.add(_user("u1", "s1"))

    assert set(payload) == {"id", "username", "profile", "socketId", "lastSeen"}
    assert isinstance(payload["lastSeen"], str)
