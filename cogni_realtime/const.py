"""Constants for the realtime connection layer."""

DEFAULT_BASE_URL = "http://localhost:5000"
DEFAULT_WEBSOCKET_PATH = "/ws"
DEFAULT_SOCKETIO_PATH = "/socket.io"
DEFAULT_NAMESPACE = "/"

TRANSPORT_WEBSOCKET = "websocket"
TRANSPORT_SOCKETIO = "socketio"
TRANSPORTS = (TRANSPORT_WEBSOCKET, TRANSPORT_SOCKETIO)

# Reconnection
DEFAULT_MAX_RECONNECT_ATTEMPTS = 5
DEFAULT_RECONNECT_DELAY_MS = 2000
DEFAULT_RECONNECT_MULTIPLIER = 1.5
DEFAULT_RECONNECT_MAX_DELAY_MS = 30000

# Timeouts
DEFAULT_CONNECT_TIMEOUT_MS = 5000
# A connection must stay up this long before the retry counter is forgotten
DEFAULT_STABLE_CONNECTION_MS = 5000
TRANSPORT_CLOSE_TIMEOUT = 2.0  # seconds, flush of queued frames on close

# Auth
DEFAULT_TOKEN_LEEWAY_S = 0

# Shared manager purposes
PURPOSE_CHAT = "chat"
PURPOSE_EVENTS = "events"
PURPOSE_TUTOR = "tutor"

EXHAUSTION_MESSAGE = (
    "Unable to connect to the realtime service after multiple attempts. "
    "Please refresh the page to try again."
)
