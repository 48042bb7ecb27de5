"""
Heartbeat-driven eviction of unresponsive connections
"""
import asyncio
import logging
from typing import Optional, Set

from aiohttp import WSCloseCode

from .config import HEARTBEAT_INTERVAL
from .state import Connection, Registry

logger = logging.getLogger("lobby")


class LivenessMonitor:
    """
    Pings every connection on a fixed interval.

    A connection whose ``alive`` flag is still clear at the next tick never
    answered the previous ping and is closed. Closing ends its websocket
    handler, which runs the usual departure handling.
    """

    def __init__(self, registry: Registry, interval: float = HEARTBEAT_INTERVAL):
        self.registry = registry
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._evictions: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"💓 Heartbeat every {self.interval:g}s")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        for task in list(self._evictions):
            task.cancel()
        self._evictions.clear()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Heartbeat tick failed: {e}", exc_info=True)

    async def tick(self) -> None:
        probes = []
        for conn in self.registry.snapshot():
            if not conn.is_open:
                continue
            if not conn.alive:
                self._evict(conn)
                continue
            conn.alive = False
            probes.append(self._probe(conn))
        if probes:
            await asyncio.gather(*probes)

    async def _probe(self, conn: Connection) -> None:
        try:
            await conn.ping()
        except (ConnectionError, RuntimeError) as e:
            logger.debug(f"Ping to {conn.id} failed: {e}")

    def _evict(self, conn: Connection) -> None:
        # Closing waits for the peer's close frame, don't hold up the tick for it
        logger.info(f"⏱️ No heartbeat from {conn.username or conn.address}, closing")
        task = asyncio.create_task(self._close(conn))
        self._evictions.add(task)
        task.add_done_callback(self._evictions.discard)

    async def _close(self, conn: Connection) -> None:
        try:
            await conn.close(WSCloseCode.GOING_AWAY, "Heartbeat timeout")
        except (ConnectionError, RuntimeError) as e:
            logger.debug(f"Closing {conn.id} failed: {e}")
