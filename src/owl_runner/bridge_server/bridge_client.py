"""Blocking bridge client for test runner processes and app stand-ins."""

from __future__ import annotations

import logging
import os
import socket
from collections.abc import Callable, Mapping
from typing import IO, Any

from owl_runner.configuration.runtime_settings import DEFAULT_BRIDGE_PORT

from .bridge_messages import (
    CAPTURE_SCREENSHOT,
    REGISTER,
    RUNNER_ROLE,
    BridgeProtocolError,
    BridgeRequest,
    BridgeResponse,
    decode_request,
    decode_response,
    decode_screenshot_payload,
    encode_request,
    encode_response,
    new_request_id,
)
from .bridge_session import BridgeConnectionLost, BridgeRequestError, BridgeRequestTimeout

_LOGGER = logging.getLogger(__name__)

BRIDGE_HOST_ENV = "OWL_BRIDGE_HOST"
BRIDGE_PORT_ENV = "OWL_BRIDGE_PORT"
BRIDGE_TIMEOUT_ENV = "OWL_BRIDGE_TIMEOUT"

DEFAULT_CLIENT_HOST = "127.0.0.1"
DEFAULT_CLIENT_TIMEOUT = 60.0

CommandHandler = Callable[[Mapping[str, Any]], Mapping[str, Any]]


class BridgeClient:
    """One registered connection to the bridge.

    Runner clients call `request`; an app client answers requests with `serve`.
    """

    def __init__(
        self,
        host: str = DEFAULT_CLIENT_HOST,
        port: int = DEFAULT_BRIDGE_PORT,
        *,
        role: str = RUNNER_ROLE,
        timeout: float = DEFAULT_CLIENT_TIMEOUT,
    ) -> None:
        self.host = host
        self.port = port
        self.role = role
        self._timeout = timeout
        self._socket: socket.socket | None = None
        self._reader: IO[bytes] | None = None

    @property
    def timeout(self) -> float:
        return self._timeout

    @classmethod
    def from_environment(
        cls, environ: Mapping[str, str] | None = None, *, timeout: float | None = None
    ) -> BridgeClient:
        """Build a runner client from the variables `owl run` exports."""
        env = os.environ if environ is None else environ
        port = int(env.get(BRIDGE_PORT_ENV) or DEFAULT_BRIDGE_PORT)
        host = env.get(BRIDGE_HOST_ENV) or DEFAULT_CLIENT_HOST
        if timeout is None:
            timeout = float(env.get(BRIDGE_TIMEOUT_ENV) or DEFAULT_CLIENT_TIMEOUT)
        return cls(host, port, role=RUNNER_ROLE, timeout=timeout)

    def connect(self) -> BridgeClient:
        try:
            self._socket = socket.create_connection((self.host, self.port), timeout=self._timeout)
        except OSError as exc:
            raise BridgeConnectionLost(
                f"Could not connect to the bridge at {self.host}:{self.port}: {exc}"
            ) from exc
        self._reader = self._socket.makefile("rb")
        try:
            self._exchange(REGISTER, {"role": self.role})
        except BridgeRequestError as exc:
            self.close()
            raise BridgeProtocolError(f"Bridge rejected the {self.role} client: {exc}") from exc
        return self

    def request(self, command: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return self._exchange(command, payload)

    def capture_screenshot(self, name: str) -> bytes:
        return decode_screenshot_payload(self.request(CAPTURE_SCREENSHOT, {"name": name}))

    def serve(self, handlers: Mapping[str, CommandHandler]) -> None:
        """Answer incoming requests until the bridge closes the connection."""
        sock, reader = self._require_connection()
        sock.settimeout(None)
        for line in reader:
            if not line.strip():
                continue
            request = decode_request(line)
            handler = handlers.get(request.type)
            if handler is None:
                response = BridgeResponse(
                    id=request.id, error=f"Unsupported command: {request.type}"
                )
            else:
                try:
                    response = BridgeResponse(id=request.id, payload=handler(request.payload))
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    response = BridgeResponse(id=request.id, error=str(exc))
            sock.sendall(encode_response(response))

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    def __enter__(self) -> BridgeClient:
        return self.connect()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _exchange(self, command: str, payload: Mapping[str, Any] | None) -> dict[str, Any]:
        sock, reader = self._require_connection()
        request = BridgeRequest(id=new_request_id(), type=command, payload=dict(payload or {}))
        try:
            sock.sendall(encode_request(request))
            while True:
                line = reader.readline()
                if not line:
                    raise BridgeConnectionLost("The bridge closed the connection.")
                response = decode_response(line)
                if response.id == request.id:
                    break
                _LOGGER.warning("Ignoring bridge response for unexpected id %s.", response.id)
        except TimeoutError as exc:
            raise BridgeRequestTimeout(
                f"No bridge response to {command} within {self._timeout:g}s."
            ) from exc
        except OSError as exc:
            raise BridgeConnectionLost(f"Bridge connection failed: {exc}") from exc
        if not response.ok:
            raise BridgeRequestError(str(response.error))
        return dict(response.payload or {})

    def _require_connection(self) -> tuple[socket.socket, IO[bytes]]:
        if self._socket is None or self._reader is None:
            raise BridgeConnectionLost("Bridge client is not connected.")
        return self._socket, self._reader
