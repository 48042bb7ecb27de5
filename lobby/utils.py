"""
Helpers for client addresses and room paths
"""
from typing import Iterable, Optional

from .config import MEETING_PREFIX


def client_address(forwarded_for: Optional[str], peer: Optional[str]) -> str:
    """Best-known origin address of a client.

    The first entry of a proxy's X-Forwarded-For header wins over the raw
    socket peer. IPv4 addresses mapped into IPv6 lose their ``::ffff:`` prefix.
    """
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip()
    else:
        ip = peer or "?"
    if ip.startswith("::ffff:"):
        ip = ip[len("::ffff:"):]
    return ip


def is_meeting_room(room: str) -> bool:
    return room.startswith(MEETING_PREFIX)


def meeting_token(room: str) -> str:
    """The meeting-point token of a meeting room (room minus the prefix)"""
    return room[len(MEETING_PREFIX):]


def room_for_path(path: str, named_rooms: Iterable[str]) -> Optional[str]:
    """
    Map a request path to a room name.

    Exact matches against the named rooms come first, then any path starting
    with ``/<MEETING_PREFIX>``. Returns None for paths that map to no room.
    """
    name = path[1:] if path.startswith("/") else path
    for room in named_rooms:
        if name == room:
            return room
    if path.startswith("/" + MEETING_PREFIX):
        return name
    return None
