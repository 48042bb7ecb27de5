"""
Process configuration read from the environment
"""
import os


PORT = int(os.environ.get("PORT", 3000))
SERVER_HOST = os.environ.get("SERVER_HOST", "0.0.0.0")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.environ.get("LOG_FILE", "lobby.log")

# Named rooms a client may connect to by exact path
NAMED_ROOMS = tuple(
    r.strip()
    for r in os.environ.get("LOBBY_ROOMS", "f355,maxspeed,vonot,aerof,aeroi").split(",")
    if r.strip()
)

# Any path starting with this tag is an ad-hoc meeting room
MEETING_PREFIX = "meet"

HEARTBEAT_INTERVAL = float(os.environ.get("LOBBY_HEARTBEAT_INTERVAL", 30))

CLOSE_NAME_TAKEN = 4000
CLOSE_NAME_TAKEN_REASON = "User name already in use"
