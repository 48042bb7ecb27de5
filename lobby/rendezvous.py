"""
Pairing of anonymous peers at meeting rooms
"""
import asyncio
import logging
from typing import Optional

from .routing import deliver
from .state import Connection, Registry
from .utils import is_meeting_room, meeting_token

logger = logging.getLogger("lobby")


def find_waiting_peer(registry: Registry, conn: Connection) -> Optional[Connection]:
    """Another unnamed connection already waiting in the same meeting room.

    A meeting room that still holds a paired connection is taken, so
    latecomers never pair among themselves.
    """
    waiting = None
    for other in registry.in_room(conn.room):
        if other is conn:
            continue
        if other.username is not None:
            return None
        waiting = waiting or other
    return waiting


async def meet(registry: Registry, conn: Connection) -> bool:
    """
    Pair a newly created connection with the peer waiting at its meeting
    point, if there is one.

    The waiting peer becomes ``<room>1`` and the newcomer ``<room>2``; each
    is sent ``challenge <other>``. With nobody waiting the newcomer stays
    unnamed and becomes the peer the next arrival pairs with. Once both are
    named, later arrivals find nobody and wait indefinitely.
    """
    if not is_meeting_room(conn.room):
        return False

    logger.info(f'User from {conn.address} meeting "{meeting_token(conn.room)}"')
    opponent = find_waiting_peer(registry, conn)
    if opponent is None:
        return False

    # Both names are assigned before the first await
    opponent.username = conn.room + "1"
    conn.username = conn.room + "2"
    logger.info(f"Paired {opponent.username} with {conn.username}")

    await asyncio.gather(
        deliver(opponent, f"challenge {conn.username}"),
        deliver(conn, f"challenge {opponent.username}"),
    )
    return True
