"""TCP bridge between the test runner and the in-app instrumentation client."""

from __future__ import annotations

import contextlib
import functools
import logging
import socket
import socketserver
import threading
from collections.abc import Mapping
from concurrent.futures import Future
from typing import IO, Any

from owl_runner.configuration.runtime_settings import (
    DEFAULT_BRIDGE_HOST,
    DEFAULT_BRIDGE_PORT,
    BridgeSettings,
)

from .bridge_messages import (
    APP_ROLE,
    CAPTURE_SCREENSHOT,
    CLIENT_ROLES,
    REGISTER,
    BridgeProtocolError,
    BridgeResponse,
    decode_request,
    decode_screenshot_payload,
    encode_response,
)
from .bridge_session import BridgeSession, ResponsePayload

_LOGGER = logging.getLogger(__name__)


class _LineTransport:
    """Socket writer shared by the reader thread and response callbacks."""

    def __init__(self, connection: socket.socket) -> None:
        self._connection = connection
        self._lock = threading.Lock()
        self._closed = False

    def send(self, data: bytes) -> None:
        with self._lock:
            if self._closed:
                raise OSError("Bridge connection is closed.")
            self._connection.sendall(data)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        with contextlib.suppress(OSError):
            self._connection.shutdown(socket.SHUT_RDWR)


class _BridgeTCPServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True
    block_on_close = False
    bridge: BridgeServer


class _BridgeConnectionHandler(socketserver.StreamRequestHandler):
    server: _BridgeTCPServer

    def handle(self) -> None:
        self.server.bridge.serve_connection(self.rfile, _LineTransport(self.connection))


class BridgeServer:
    """Listens for the instrumentation client and relays requests to it.

    The app registers with role ``app``; test runner processes register with
    role ``runner`` and have their requests forwarded through the session.
    In-process callers use `request` and `capture_screenshot` directly.
    """

    def __init__(
        self,
        host: str = DEFAULT_BRIDGE_HOST,
        port: int = DEFAULT_BRIDGE_PORT,
        *,
        request_timeout: float = 30.0,
        connect_timeout: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self.session = BridgeSession(
            request_timeout=request_timeout, connect_timeout=connect_timeout
        )
        self._lock = threading.Lock()
        self._server: _BridgeTCPServer | None = None
        self._thread: threading.Thread | None = None
        self._connections: set[_LineTransport] = set()
        self._stopped = False

    @classmethod
    def from_settings(cls, settings: BridgeSettings) -> BridgeServer:
        return cls(
            settings.host,
            settings.port,
            request_timeout=settings.timeout_seconds,
            connect_timeout=settings.connect_timeout_seconds,
        )

    @property
    def address(self) -> tuple[str, int]:
        """Bound address once started, the configured one before."""
        with self._lock:
            server = self._server
        if server is None:
            return self._host, self._port
        host, port = server.server_address[:2]
        return str(host), int(port)

    @property
    def running(self) -> bool:
        with self._lock:
            return self._server is not None and not self._stopped

    def start(self) -> None:
        with self._lock:
            if self._stopped:
                raise BridgeProtocolError("Bridge server cannot be restarted after it was stopped.")
            if self._server is not None:
                return
            server = _BridgeTCPServer((self._host, self._port), _BridgeConnectionHandler)
            server.bridge = self
            self._server = server
            self._thread = threading.Thread(
                target=server.serve_forever, name="owl-bridge", daemon=True
            )
            self._thread.start()
        _LOGGER.info("Bridge listening on %s:%s.", *self.address)

    def stop(self) -> None:
        """Close the session, every connection and the listening socket; idempotent."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            server = self._server
            thread = self._thread
            connections = list(self._connections)
        self.session.close()
        for transport in connections:
            transport.close()
        if server is not None:
            server.shutdown()
            server.server_close()
        if thread is not None:
            thread.join(timeout=5)
        _LOGGER.info("Bridge stopped.")

    def request(
        self,
        command: str,
        payload: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> ResponsePayload:
        """Send one command to the app and block until its bounded wait resolves."""
        return self.session.submit(command, payload, timeout=timeout).result()

    def capture_screenshot(self, name: str, *, timeout: float | None = None) -> bytes:
        payload = self.request(CAPTURE_SCREENSHOT, {"name": name}, timeout=timeout)
        return decode_screenshot_payload(payload)

    def serve_connection(self, reader: IO[bytes], transport: _LineTransport) -> None:
        """Handle one client connection from registration to disconnect."""
        with self._lock:
            if self._stopped:
                transport.close()
                return
            self._connections.add(transport)
        try:
            role = self._register(reader, transport)
            if role == APP_ROLE:
                self._read_app_responses(reader, transport)
            elif role is not None:
                self._relay_runner_requests(reader, transport)
        except OSError as exc:
            _LOGGER.debug("Bridge connection ended: %s", exc)
        finally:
            with self._lock:
                self._connections.discard(transport)
            transport.close()

    def _register(self, reader: IO[bytes], transport: _LineTransport) -> str | None:
        line = reader.readline()
        if not line:
            return None
        try:
            request = decode_request(line)
        except BridgeProtocolError as exc:
            _LOGGER.warning("Rejecting bridge client: %s", exc)
            return None
        role = request.payload.get("role")
        try:
            if request.type != REGISTER:
                raise BridgeProtocolError("The first bridge message must be 'register'.")
            if role not in CLIENT_ROLES:
                raise BridgeProtocolError(f"Unknown bridge client role: {role!r}.")
            if role == APP_ROLE:
                self.session.attach(transport)
        except BridgeProtocolError as exc:
            _LOGGER.warning("Rejecting bridge client: %s", exc)
            transport.send(encode_response(BridgeResponse(id=request.id, error=str(exc))))
            return None
        transport.send(encode_response(BridgeResponse(id=request.id, payload={"role": role})))
        _LOGGER.info("Bridge client registered as %s.", role)
        return str(role)

    def _read_app_responses(self, reader: IO[bytes], transport: _LineTransport) -> None:
        try:
            for line in reader:
                if line.strip():
                    self.session.on_message(line)
        finally:
            self.session.detach(transport)

    def _relay_runner_requests(self, reader: IO[bytes], transport: _LineTransport) -> None:
        for line in reader:
            if not line.strip():
                continue
            try:
                request = decode_request(line)
            except BridgeProtocolError as exc:
                _LOGGER.warning("Dropping malformed runner request: %s", exc)
                continue
            future = self.session.submit(request.type, request.payload)
            future.add_done_callback(functools.partial(_reply_to_runner, transport, request.id))

    def __enter__(self) -> BridgeServer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def _reply_to_runner(
    transport: _LineTransport, request_id: str, future: Future[ResponsePayload]
) -> None:
    error = future.exception()
    if error is not None:
        response = BridgeResponse(id=request_id, error=str(error))
    else:
        response = BridgeResponse(id=request_id, payload=future.result())
    try:
        transport.send(encode_response(response))
    except OSError as exc:
        _LOGGER.warning("Could not deliver bridge response %s to the runner: %s", request_id, exc)
