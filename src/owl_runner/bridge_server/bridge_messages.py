"""Bridge wire format: newline-delimited JSON envelopes."""

from __future__ import annotations

import base64
import binascii
import json
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

REGISTER = "register"
CAPTURE_SCREENSHOT = "capture_screenshot"

APP_ROLE = "app"
RUNNER_ROLE = "runner"
CLIENT_ROLES = (APP_ROLE, RUNNER_ROLE)


class BridgeProtocolError(Exception):
    """Raised when a bridge message is malformed or violates the session rules."""


@dataclass(frozen=True)
class BridgeRequest:
    """Command sent to the other side of the bridge."""

    id: str
    type: str
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BridgeResponse:
    """Reply correlated to a request by id; carries either a payload or an error."""

    id: str
    payload: Mapping[str, Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def new_request_id() -> str:
    return uuid.uuid4().hex


def encode_request(request: BridgeRequest) -> bytes:
    return _encode({"id": request.id, "type": request.type, "payload": dict(request.payload)})


def encode_response(response: BridgeResponse) -> bytes:
    body: dict[str, Any] = {"id": response.id}
    if response.error is not None:
        body["error"] = response.error
    else:
        body["payload"] = dict(response.payload or {})
    return _encode(body)


def decode_request(line: bytes | str) -> BridgeRequest:
    body = _decode(line)
    message_type = body.get("type")
    if not isinstance(message_type, str) or not message_type:
        raise BridgeProtocolError("Bridge request requires a non-empty 'type'.")
    payload = body.get("payload") or {}
    if not isinstance(payload, Mapping):
        raise BridgeProtocolError("Bridge request 'payload' must be an object.")
    return BridgeRequest(id=_require_id(body), type=message_type, payload=payload)


def decode_response(line: bytes | str) -> BridgeResponse:
    body = _decode(line)
    error = body.get("error")
    if error is not None:
        return BridgeResponse(id=_require_id(body), error=str(error))
    payload = body.get("payload") or {}
    if not isinstance(payload, Mapping):
        raise BridgeProtocolError("Bridge response 'payload' must be an object.")
    return BridgeResponse(id=_require_id(body), payload=payload)


def _encode(body: Mapping[str, Any]) -> bytes:
    return json.dumps(body, separators=(",", ":")).encode("utf-8") + b"\n"


def _decode(line: bytes | str) -> Mapping[str, Any]:
    try:
        text = line.decode("utf-8") if isinstance(line, bytes) else line
        body = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BridgeProtocolError(f"Bridge message is not valid JSON: {exc}") from exc
    if not isinstance(body, Mapping):
        raise BridgeProtocolError("Bridge message must be a JSON object.")
    return body


def _require_id(body: Mapping[str, Any]) -> str:
    message_id = body.get("id")
    if isinstance(message_id, int) and not isinstance(message_id, bool):
        return str(message_id)
    if not isinstance(message_id, str) or not message_id:
        raise BridgeProtocolError("Bridge message requires a non-empty 'id'.")
    return message_id


def encode_screenshot_payload(image: bytes) -> dict[str, str]:
    return {"data": base64.b64encode(image).decode("ascii")}


def decode_screenshot_payload(payload: Mapping[str, Any]) -> bytes:
    data = payload.get("data")
    if not isinstance(data, str) or not data:
        raise BridgeProtocolError("Screenshot response requires base64 'data'.")
    try:
        return base64.b64decode(data, validate=True)
    except binascii.Error as exc:
        raise BridgeProtocolError(f"Screenshot data is not valid base64: {exc}") from exc
