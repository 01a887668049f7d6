"""Bridge server exports."""

from .bridge_client import BRIDGE_HOST_ENV, BRIDGE_PORT_ENV, BRIDGE_TIMEOUT_ENV, BridgeClient
from .bridge_messages import (
    APP_ROLE,
    CAPTURE_SCREENSHOT,
    RUNNER_ROLE,
    BridgeProtocolError,
    BridgeRequest,
    BridgeResponse,
    decode_screenshot_payload,
    encode_screenshot_payload,
)
from .bridge_server import BridgeServer
from .bridge_session import (
    BridgeConnectionLost,
    BridgeRequestError,
    BridgeRequestTimeout,
    BridgeSession,
    SessionState,
)

__all__ = [
    "APP_ROLE",
    "BRIDGE_HOST_ENV",
    "BRIDGE_PORT_ENV",
    "BRIDGE_TIMEOUT_ENV",
    "CAPTURE_SCREENSHOT",
    "RUNNER_ROLE",
    "BridgeClient",
    "BridgeConnectionLost",
    "BridgeProtocolError",
    "BridgeRequest",
    "BridgeRequestError",
    "BridgeRequestTimeout",
    "BridgeResponse",
    "BridgeServer",
    "BridgeSession",
    "SessionState",
    "decode_screenshot_payload",
    "encode_screenshot_payload",
]
