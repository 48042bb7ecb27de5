"""
WebSocket endpoint for the lobby
Maps the request path to a room, then feeds every frame to the session protocol
"""
import asyncio
import logging

from aiohttp import web, WSCloseCode, WSMsgType

from .liveness import LivenessMonitor
from .protocol import SessionProtocol
from .state import Connection, Registry
from .utils import client_address, room_for_path

logger = logging.getLogger("lobby")

REGISTRY = web.AppKey("registry", Registry)
PROTOCOL = web.AppKey("protocol", SessionProtocol)
LIVENESS = web.AppKey("liveness", LivenessMonitor)
NAMED_ROOMS = web.AppKey("named_rooms", tuple)

# ============================================================
# WEBSOCKET
# ============================================================

async def ws_lobby(request: web.Request) -> web.StreamResponse:
    """One websocket per client, tagged with the room named by its path"""
    room = room_for_path(request.path, request.app[NAMED_ROOMS])
    if room is None:
        logger.warning(f"Invalid path {request.path}")
        raise web.HTTPNotFound()

    ws = web.WebSocketResponse(autoping=False)
    if not ws.can_prepare(request).ok:
        logger.warning(f"Not a websocket upgrade: {request.path}")
        raise web.HTTPBadRequest(text="websocket upgrade required")
    await ws.prepare(request)

    address = client_address(request.headers.get("X-Forwarded-For"), request.remote)
    conn = Connection(ws, room, address)
    protocol = request.app[PROTOCOL]
    logger.debug(f"🔌 {address} connected to {room} as {conn.id}")

    try:
        await protocol.connected(conn)
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                await protocol.handle(conn, msg.data)
            elif msg.type == WSMsgType.BINARY:
                await protocol.handle(conn, msg.data.decode("utf-8", errors="replace"))
            elif msg.type == WSMsgType.PING:
                await ws.pong(msg.data)
            elif msg.type == WSMsgType.PONG:
                conn.alive = True
            elif msg.type == WSMsgType.ERROR:
                logger.error(f"WebSocket error from {address}: {ws.exception()}")
    except Exception as e:
        logger.error(f"WebSocket handler failed for {conn.id}: {e}", exc_info=True)
    finally:
        # aiohttp cancels the handler when the client goes away, the
        # departure must still reach the room
        await asyncio.shield(_finish(protocol, conn))

    return ws


async def _finish(protocol: SessionProtocol, conn: Connection) -> None:
    await protocol.closed(conn)
    # A close started by eviction or shutdown still has to send its close
    # frame once the receive loop has let go of the socket
    await conn.wait_closed()


# ============================================================
# LIFECYCLE
# ============================================================

async def start_heartbeat(app: web.Application) -> None:
    app[LIVENESS].start()


async def close_connections(app: web.Application) -> None:
    """Close every client on shutdown so handlers run their departure logic"""
    closing = [
        conn.close(WSCloseCode.GOING_AWAY, "Server shutdown")
        for conn in app[REGISTRY] if conn.is_open
    ]
    await asyncio.gather(*closing, return_exceptions=True)
    logger.info("Server connection closed")


async def stop_heartbeat(app: web.Application) -> None:
    await app[LIVENESS].stop()
