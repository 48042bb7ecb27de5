"""
Room-scoped message delivery: broadcast to a room and unicast by username
"""
import asyncio
import logging

from .state import Connection, Registry

logger = logging.getLogger("lobby")


async def deliver(conn: Connection, text: str) -> None:
    try:
        await conn.send(text)
    except (ConnectionError, RuntimeError) as e:
        # Recipient went away between snapshot and delivery
        logger.debug(f"Failed to send to {conn.id}: {e}")


async def broadcast(registry: Registry, sender: Connection, text: str) -> None:
    """Send *text* to every open connection in the sender's room except the sender"""
    targets = registry.select(
        lambda c: c is not sender and c.room == sender.room and c.is_open
    )
    if targets:
        await asyncio.gather(*(deliver(c, text) for c in targets))


async def send_to(registry: Registry, room: str, username: str, text: str) -> bool:
    """
    Send *text* to the open connection named *username* in *room*.

    Returns False when nobody matches. The sender is never told about misses.
    """
    conn = registry.find(room, username)
    if conn is None or not conn.is_open:
        logger.debug(f"No user {username} in room {room}, dropping message")
        return False
    await deliver(conn, text)
    return True
