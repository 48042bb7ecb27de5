#!/usr/bin/env python3
"""
Netplay lobby - Entry Point
Room chat + peer signaling relay over WebSockets
"""
import logging
from typing import Iterable, Optional

from aiohttp import web

from lobby.api import (
    LIVENESS, NAMED_ROOMS, PROTOCOL, REGISTRY,
    close_connections, start_heartbeat, stop_heartbeat, ws_lobby
)
from lobby import config
from lobby.liveness import LivenessMonitor
from lobby.protocol import SessionProtocol
from lobby.state import Registry

logger = logging.getLogger("lobby")


def setup_logging(level: str = config.LOG_LEVEL, log_file: str = config.LOG_FILE) -> None:
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format="[%(asctime)s][%(levelname)s] %(message)s",
        datefmt="%m/%d %H:%M:%S",
        handlers=handlers,
    )


def create_app(
    rooms: Optional[Iterable[str]] = None,
    heartbeat_interval: Optional[float] = None,
) -> web.Application:
    """Create and configure the aiohttp application"""
    app = web.Application()

    registry = Registry()
    app[REGISTRY] = registry
    app[PROTOCOL] = SessionProtocol(registry)
    app[LIVENESS] = LivenessMonitor(
        registry,
        config.HEARTBEAT_INTERVAL if heartbeat_interval is None else heartbeat_interval,
    )
    app[NAMED_ROOMS] = tuple(config.NAMED_ROOMS if rooms is None else rooms)

    # Every path is a candidate room, the handler rejects the rest
    app.router.add_get("/{path:.*}", ws_lobby)

    app.on_startup.append(start_heartbeat)
    app.on_shutdown.append(close_connections)
    app.on_cleanup.append(stop_heartbeat)

    logger.info(f"🎮 Lobby ready • rooms: {', '.join(app[NAMED_ROOMS])}")
    return app


def main():
    setup_logging()
    app = create_app()

    logger.info(f"🚀 Starting server on {config.SERVER_HOST}:{config.PORT}")
    web.run_app(app, host=config.SERVER_HOST, port=config.PORT, print=None)


if __name__ == "__main__":
    main()
