"""
In-memory connection state: the Connection record and the Registry holding
every live connection. The registry is the only state shared between
connections and lives for the lifetime of the process.
"""
import asyncio
import itertools
from typing import Callable, Iterator, List, Optional, Set

_ids = itertools.count(1)


class Connection:
    """One accepted client, wrapping its websocket."""

    def __init__(self, ws, room: str, address: str, conn_id: Optional[str] = None):
        self.id = conn_id or f"conn{next(_ids)}"
        self.ws = ws
        self._room = room
        self._address = address
        # Set once, by join or by rendezvous
        self.username: Optional[str] = None
        self.alive = True
        self._closing: Optional[asyncio.Future] = None

    @property
    def room(self) -> str:
        return self._room

    @property
    def address(self) -> str:
        return self._address

    @property
    def is_open(self) -> bool:
        return not self.ws.closed

    @property
    def named(self) -> bool:
        return self.username is not None

    async def send(self, text: str) -> None:
        await self.ws.send_str(text)

    async def close(self, code: int, reason: str) -> None:
        """Start the close handshake, or join the one already under way"""
        if self._closing is None:
            self._closing = asyncio.ensure_future(
                self.ws.close(code=code, message=reason.encode("utf-8"))
            )
        await asyncio.shield(self._closing)

    async def wait_closed(self) -> None:
        """Wait for a close started elsewhere to finish its handshake"""
        if self._closing is not None:
            await self._closing

    async def ping(self) -> None:
        await self.ws.ping()

    def __repr__(self):
        return f"<Connection {self.id} room={self.room!r} user={self.username!r}>"


Predicate = Callable[[Connection], bool]


class Registry:
    """Set of live connections.

    Iteration always runs over a snapshot, so connections may be added or
    removed from inside a ``for_each`` callback.
    """

    def __init__(self):
        self._connections: Set[Connection] = set()

    def add(self, conn: Connection) -> None:
        self._connections.add(conn)

    def remove(self, conn: Connection) -> None:
        self._connections.discard(conn)

    def snapshot(self) -> List[Connection]:
        return list(self._connections)

    def select(self, predicate: Predicate) -> List[Connection]:
        return [c for c in self.snapshot() if predicate(c)]

    def for_each(self, predicate: Predicate, action: Callable[[Connection], None]) -> None:
        for conn in self.select(predicate):
            action(conn)

    def in_room(self, room: str) -> List[Connection]:
        return self.select(lambda c: c.room == room)

    def find(self, room: str, username: str) -> Optional[Connection]:
        for conn in self.snapshot():
            if conn.room == room and conn.username == username:
                return conn
        return None

    def __contains__(self, conn) -> bool:
        return conn in self._connections

    def __iter__(self) -> Iterator[Connection]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._connections)
