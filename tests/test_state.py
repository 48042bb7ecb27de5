import asyncio

import pytest


def test_connection_defaults(make_conn):
    conn = make_conn(room="vonot", address="192.0.2.4")
    assert conn.room == "vonot"
    assert conn.address == "192.0.2.4"
    assert conn.username is None
    assert not conn.named
    assert conn.alive
    assert conn.is_open


def test_room_and_address_are_read_only(make_conn):
    conn = make_conn()
    with pytest.raises(AttributeError):
        conn.room = "elsewhere"
    with pytest.raises(AttributeError):
        conn.address = "0.0.0.0"


async def test_is_open_follows_socket(make_conn):
    conn = make_conn()
    await conn.close(4000, "bye")
    assert not conn.is_open
    assert conn.ws.close_code == 4000
    assert conn.ws.close_reason == "bye"


def test_add_remove(registry, make_conn):
    a, b = make_conn(), make_conn()
    registry.add(a)
    registry.add(b)
    registry.add(a)
    assert len(registry) == 2
    registry.remove(a)
    registry.remove(a)
    assert a not in registry
    assert list(registry) == [b]


def test_for_each_applies_to_matching(registry, make_conn):
    conns = [make_conn(room="f355"), make_conn(room="f355"), make_conn(room="vonot")]
    for c in conns:
        registry.add(c)
    seen = []
    registry.for_each(lambda c: c.room == "f355", seen.append)
    assert sorted(map(id, seen)) == sorted(map(id, conns[:2]))


def test_for_each_tolerates_removal(registry, make_conn):
    conns = [make_conn() for _ in range(5)]
    for c in conns:
        registry.add(c)
    registry.for_each(lambda c: True, registry.remove)
    assert len(registry) == 0


def test_for_each_tolerates_addition(registry, make_conn):
    registry.add(make_conn())
    registry.add(make_conn())
    registry.for_each(lambda c: True, lambda c: registry.add(make_conn()))
    assert len(registry) == 4


def test_find_is_scoped_to_room(registry, make_conn):
    here = make_conn(room="f355", username="alice")
    there = make_conn(room="vonot", username="alice")
    registry.add(here)
    registry.add(there)
    assert registry.find("f355", "alice") is here
    assert registry.find("vonot", "alice") is there
    assert registry.find("f355", "bob") is None
    assert registry.in_room("vonot") == [there]


def test_connection_ids_are_unique(make_conn):
    ids = {make_conn().id for _ in range(200)}
    assert len(ids) == 200


async def test_concurrent_closes_share_one_handshake(make_conn):
    conn = make_conn()
    await asyncio.gather(
        conn.close(1001, "Heartbeat timeout"),
        conn.close(1001, "Server shutdown"),
        conn.wait_closed(),
    )
    assert conn.ws.close_calls == 1
    assert conn.ws.close_reason == "Heartbeat timeout"


async def test_wait_closed_without_close_returns(make_conn):
    conn = make_conn()
    await conn.wait_closed()
    assert conn.is_open


async def test_close_survives_cancelled_caller(make_conn):
    conn = make_conn()
    caller = asyncio.ensure_future(conn.close(1001, "Heartbeat timeout"))
    await asyncio.sleep(0)
    caller.cancel()
    await conn.wait_closed()
    assert conn.ws.close_code == 1001
