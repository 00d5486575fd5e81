from __future__ import annotations

import asyncio

import pytest

from chat_relay.domain.value_objects.enums import UserStatus
from chat_relay.infrastructure.ws.connection import SUPERSEDED_CLOSE_CODE
from chat_relay.services import presence_service
from tests.conftest import ALICE, BOB, CAROL, T0, make_connection, make_message


@pytest.mark.asyncio
async def test_connect_marks_online_and_broadcasts(ctx, uow):
    alice, alice_t = make_connection(ALICE)

    await presence_service.connect(ctx, alice)

    assert ctx.registry.lookup(ALICE) is alice
    user = uow.users._users[ALICE]
    assert user.status == UserStatus.ONLINE
    assert user.last_seen_at == T0
    assert alice_t.events("presence-list") == [{"user_ids": [ALICE]}]


@pytest.mark.asyncio
async def test_connect_sends_reconciled_unread_counts(ctx, uow):
    uow.seed_messages(
        make_message(message_id=1, sender_id=BOB, receiver_id=ALICE),
        make_message(message_id=2, sender_id=BOB, receiver_id=ALICE),
        make_message(message_id=3, sender_id=CAROL, receiver_id=ALICE, is_read=True),
    )
    alice, alice_t = make_connection(ALICE)

    await presence_service.connect(ctx, alice)

    assert alice_t.events("unread-counts") == [{"counts": {str(BOB): 2}}]
    assert await ctx.unread.snapshot(ALICE) == {BOB: 2}


@pytest.mark.asyncio
async def test_every_client_gets_full_online_set(ctx):
    alice, alice_t = make_connection(ALICE)
    bob, bob_t = make_connection(BOB)

    await presence_service.connect(ctx, alice)
    await presence_service.connect(ctx, bob)

    assert alice_t.events("presence-list")[-1] == {"user_ids": [ALICE, BOB]}
    assert bob_t.events("presence-list") == [{"user_ids": [ALICE, BOB]}]


@pytest.mark.asyncio
async def test_broadcast_set_tracks_registry_through_connects_and_disconnects(ctx):
    conns = {uid: make_connection(uid) for uid in (ALICE, BOB, CAROL)}
    steps = [
        ("connect", ALICE),
        ("connect", BOB),
        ("disconnect", ALICE),
        ("connect", CAROL),
        ("disconnect", BOB),
        ("disconnect", CAROL),
    ]
    expected: set[int] = set()
    observer, observer_t = make_connection(99)
    await ctx.registry.register(observer)
    expected.add(99)

    for action, uid in steps:
        conn, _ = conns[uid]
        if action == "connect":
            await presence_service.connect(ctx, conn)
            expected.add(uid)
        else:
            await presence_service.disconnect(ctx, conn)
            expected.discard(uid)
        broadcast = observer_t.events("presence-list")[-1]["user_ids"]
        assert set(broadcast) == expected == set(await ctx.registry.online_user_ids())


@pytest.mark.asyncio
async def test_disconnect_marks_offline_and_notifies_others(ctx, uow, clock):
    alice, _ = make_connection(ALICE)
    bob, bob_t = make_connection(BOB)
    await presence_service.connect(ctx, alice)
    await presence_service.connect(ctx, bob)
    clock.advance(60)

    await presence_service.disconnect(ctx, alice)

    assert ctx.registry.lookup(ALICE) is None
    assert uow.users._users[ALICE].status == UserStatus.OFFLINE
    assert uow.users._users[ALICE].last_seen_at == clock.now()
    assert bob_t.events("presence-list")[-1] == {"user_ids": [BOB]}


@pytest.mark.asyncio
async def test_disconnect_twice_is_noop(ctx):
    alice, _ = make_connection(ALICE)
    bob, bob_t = make_connection(BOB)
    await presence_service.connect(ctx, alice)
    await presence_service.connect(ctx, bob)
    await presence_service.disconnect(ctx, alice)
    before = len(bob_t.events("presence-list"))

    await presence_service.disconnect(ctx, alice)

    assert len(bob_t.events("presence-list")) == before


@pytest.mark.asyncio
async def test_superseded_connection_disconnect_keeps_user_online(ctx, uow):
    old, old_t = make_connection(ALICE)
    new, _ = make_connection(ALICE)
    await presence_service.connect(ctx, old)
    await presence_service.connect(ctx, new)
    old_t.clear()

    await presence_service.disconnect(ctx, old)

    assert ctx.registry.lookup(ALICE) is new
    assert uow.users._users[ALICE].status == UserStatus.ONLINE
    assert old_t.closed[0] == SUPERSEDED_CLOSE_CODE
    assert old_t.sent == []


@pytest.mark.asyncio
async def test_status_store_failure_does_not_block_connect(ctx, uow):
    uow.users_w.fail = True
    alice, alice_t = make_connection(ALICE)

    await presence_service.connect(ctx, alice)

    assert ctx.registry.lookup(ALICE) is alice
    assert alice_t.events("presence-list") == [{"user_ids": [ALICE]}]


@pytest.mark.asyncio
async def test_activity_refreshes_last_seen_only(ctx, uow, clock):
    alice, _ = make_connection(ALICE)
    await presence_service.connect(ctx, alice)
    clock.advance(120)

    await presence_service.touch_activity(ctx, alice)

    user = uow.users._users[ALICE]
    assert user.status == UserStatus.ONLINE
    assert user.last_seen_at == clock.now()
    assert uow.users_w.touches == [(ALICE, clock.now())]


@pytest.mark.asyncio
async def test_send_presence_replies_to_requester_only(ctx):
    alice, alice_t = make_connection(ALICE)
    bob, bob_t = make_connection(BOB)
    await ctx.registry.register(alice)
    await ctx.registry.register(bob)

    await presence_service.send_presence(ctx, alice)

    assert alice_t.events("presence-list") == [{"user_ids": [ALICE, BOB]}]
    assert bob_t.sent == []


@pytest.mark.asyncio
async def test_typing_forwarded_to_reachable_receiver(ctx):
    alice, _ = make_connection(ALICE)
    bob, bob_t = make_connection(BOB)
    await ctx.registry.register(alice)
    await ctx.registry.register(bob)

    await presence_service.relay_typing(ctx, alice, BOB, True)
    await presence_service.relay_typing(ctx, alice, CAROL, True)

    assert bob_t.events("user-typing") == [{"from": ALICE, "is_typing": True}]


@pytest.mark.asyncio
async def test_old_connection_closing_during_reconnect_keeps_user_online(ctx, uow):
    old, _ = make_connection(ALICE)
    new, _ = make_connection(ALICE)
    await presence_service.connect(ctx, old)
    online_write = uow.users_w.gates[UserStatus.ONLINE] = asyncio.Event()

    reconnect = asyncio.create_task(presence_service.connect(ctx, new))
    await asyncio.sleep(0)
    await presence_service.disconnect(ctx, old)
    online_write.set()
    await reconnect

    assert ctx.registry.lookup(ALICE) is new
    assert uow.users._users[ALICE].status == UserStatus.ONLINE


@pytest.mark.asyncio
async def test_reconnect_during_offline_write_keeps_user_online(ctx, uow):
    old, _ = make_connection(ALICE)
    new, _ = make_connection(ALICE)
    await presence_service.connect(ctx, old)
    offline_write = uow.users_w.gates[UserStatus.OFFLINE] = asyncio.Event()

    leaving = asyncio.create_task(presence_service.disconnect(ctx, old))
    await asyncio.sleep(0)
    await presence_service.connect(ctx, new)
    offline_write.set()
    await leaving

    assert ctx.registry.lookup(ALICE) is new
    assert uow.users._users[ALICE].status == UserStatus.ONLINE


@pytest.mark.asyncio
async def test_reconnect_closes_displaced_connection(ctx):
    old, old_t = make_connection(ALICE)
    new, new_t = make_connection(ALICE)
    await presence_service.connect(ctx, old)
    old_t.clear()

    await presence_service.connect(ctx, new)

    assert old_t.closed == (SUPERSEDED_CLOSE_CODE, "Superseded by a newer connection")
    assert old.is_open is False
    assert old_t.sent == []
    assert new_t.events("presence-list") == [{"user_ids": [ALICE]}]
    assert new_t.closed is None
