"""
Per-connection session protocol.

Every inbound frame is ``<op> <args>``: the op is the text before the first
space and args is everything after it. A connection starts unnamed, gets a
username once (``join`` or a meeting-room pairing) and ends when the
transport closes it.

    join <name>                      -> userlist ... to the joiner, join <name> to the room
    say <text>                       -> say <username>: <text> to the room
    challenge <user>                 -> challenge <username> to <user>
    chalresp <user> <payload>        -> chalresp <payload> to <user>
    candidate <user> <payload>       -> candidate <payload> to <user>

Departures are announced as ``leave <username>``.
"""
import logging
from functools import partial
from typing import Awaitable, Callable, Dict

from .config import CLOSE_NAME_TAKEN, CLOSE_NAME_TAKEN_REASON
from .rendezvous import meet
from .routing import broadcast, deliver, send_to
from .state import Connection, Registry

logger = logging.getLogger("lobby")

Handler = Callable[[Connection, str], Awaitable[None]]


class SessionProtocol:
    """Message handling shared by all connections of one registry."""

    def __init__(self, registry: Registry):
        self.registry = registry
        self._handlers: Dict[str, Handler] = {
            "join": self.join,
            "say": self.say,
            "challenge": self.challenge,
            "chalresp": partial(self.relay_signal, op="chalresp"),
            "candidate": partial(self.relay_signal, op="candidate"),
        }

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------

    async def connected(self, conn: Connection) -> None:
        """Register a new connection and try to pair it if it is meeting someone"""
        self.registry.add(conn)
        await meet(self.registry, conn)

    async def closed(self, conn: Connection) -> None:
        """Forget a connection and announce its departure, once"""
        if conn not in self.registry:
            return
        self.registry.remove(conn)
        if conn.username is not None:
            await broadcast(self.registry, conn, f"leave {conn.username}")
            logger.info(f"User {conn.username} left")
        else:
            logger.info(f"Anon ({conn.address}) left")

    # ------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------

    async def handle(self, conn: Connection, text: str) -> None:
        logger.debug("received " + text)
        op, _, args = text.partition(" ")
        handler = self._handlers.get(op)
        if handler is None:
            logger.error("Unknown message: " + text)
            return
        await handler(conn, args)

    # ------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------

    async def join(self, conn: Connection, name: str) -> None:
        if conn.named:
            logger.warning(f"[{conn.address}] {conn.username} tried to join again as {name}")
            return
        if not name:
            logger.warning(f"[{conn.address}] join without a user name")
            return

        others = [
            c for c in self.registry.in_room(conn.room)
            if c is not conn and c.username is not None
        ]
        if any(c.username == name for c in others):
            logger.warning(f"[{conn.address}] User name {name} already in use in room {conn.room}")
            await conn.close(CLOSE_NAME_TAKEN, CLOSE_NAME_TAKEN_REASON)
            return

        # Claim the name before any await so two joins cannot both pass the check
        conn.username = name
        await deliver(conn, " ".join(["userlist"] + [c.username for c in others]))
        await broadcast(self.registry, conn, f"join {name}")
        logger.info(f"[{conn.address}] User {name} joined room {conn.room}")

    async def say(self, conn: Connection, text: str) -> None:
        if not conn.named:
            logger.warning(f"[{conn.address}] say before join: {text}")
            return
        await broadcast(self.registry, conn, f"say {conn.username}: {text}")
        logger.info(f"{conn.username}: {text}")

    async def challenge(self, conn: Connection, target: str) -> None:
        if not conn.named:
            logger.warning(f"[{conn.address}] challenge before join")
            return
        if not target:
            logger.warning(f"{conn.username} sent a challenge without a target")
            return
        await send_to(self.registry, conn.room, target, f"challenge {conn.username}")
        logger.info(f"{conn.username} challenged {target}")

    async def relay_signal(self, conn: Connection, args: str, op: str) -> None:
        """Forward an opaque signaling payload (``chalresp`` or ``candidate``) to one user"""
        target, sep, payload = args.partition(" ")
        if not sep or not target or not payload:
            logger.warning(f"Malformed {op} from {conn.username or conn.address}: {args!r}")
            return
        await send_to(self.registry, conn.room, target, f"{op} {payload}")
        if op == "chalresp":
            logger.info(f"{conn.username} challenge response: {args}")
        else:
            logger.info(f"{conn.username} candidate: {args}")
