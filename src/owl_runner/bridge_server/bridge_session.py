"""Bridge session: app connection state and request/response correlation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from concurrent.futures import Future
from enum import Enum
from typing import Any, Protocol

from .bridge_messages import (
    BridgeProtocolError,
    BridgeRequest,
    decode_response,
    encode_request,
    new_request_id,
)

_LOGGER = logging.getLogger(__name__)

ResponsePayload = dict[str, Any]


class BridgeConnectionLost(Exception):
    """Raised for requests that cannot reach the instrumentation client."""


class BridgeRequestTimeout(Exception):
    """Raised when the instrumentation client does not answer in time."""


class BridgeRequestError(Exception):
    """Raised when the instrumentation client answers with an error."""


class SessionState(str, Enum):
    """Lifecycle of one bridge session."""

    LISTENING = "listening"
    CONNECTED = "connected"
    ACTIVE = "active"
    BROKEN = "broken"
    CLOSING = "closing"
    CLOSED = "closed"


class BridgeTransport(Protocol):
    """Write side of the app connection."""

    def send(self, data: bytes) -> None: ...

    def close(self) -> None: ...


class BridgeSession:
    """Owns the single app connection and the map of pending requests.

    Requests are registered with `submit` from any thread and resolved by
    `on_message` on the connection's reader thread. Every pending request is
    resolved exactly once: by its response, its timeout, a disconnect or close.
    """

    def __init__(self, *, request_timeout: float = 30.0, connect_timeout: float = 30.0) -> None:
        self._request_timeout = request_timeout
        self._connect_timeout = connect_timeout
        self._condition = threading.Condition()
        self._state = SessionState.LISTENING
        self._transport: BridgeTransport | None = None
        self._pending: dict[str, Future[ResponsePayload]] = {}

    @property
    def state(self) -> SessionState:
        with self._condition:
            return self._state

    @property
    def pending_count(self) -> int:
        with self._condition:
            return len(self._pending)

    def attach(self, transport: BridgeTransport) -> None:
        """Bind the instrumentation client; only one per session."""
        with self._condition:
            if self._state is not SessionState.LISTENING:
                raise BridgeProtocolError(
                    f"Bridge session does not accept an app client while {self._state.value}."
                )
            self._transport = transport
            self._state = SessionState.CONNECTED
            self._condition.notify_all()

    def detach(self, transport: BridgeTransport) -> None:
        """Mark the session broken after the app connection went away."""
        with self._condition:
            if transport is not self._transport:
                return
            self._transport = None
            if self._state in (SessionState.CONNECTED, SessionState.ACTIVE):
                self._state = SessionState.BROKEN
            pending = self._drain_pending()
        _LOGGER.warning("Instrumentation client disconnected from the bridge.")
        _fail_all(pending, BridgeConnectionLost("Instrumentation client disconnected."))

    def submit(
        self,
        command: str,
        payload: Mapping[str, Any] | None = None,
        *,
        request_id: str | None = None,
        timeout: float | None = None,
    ) -> Future[ResponsePayload]:
        """Send a request to the app and return a future for its response payload."""
        future: Future[ResponsePayload] = Future()
        request_id = request_id or new_request_id()
        with self._condition:
            if self._state is SessionState.LISTENING:
                self._condition.wait_for(
                    lambda: self._state is not SessionState.LISTENING,
                    timeout=self._connect_timeout,
                )
            transport = self._transport
            if transport is None or self._state not in (
                SessionState.CONNECTED,
                SessionState.ACTIVE,
            ):
                future.set_exception(BridgeConnectionLost(self._unavailable_reason()))
                return future
            if request_id in self._pending:
                raise BridgeProtocolError(f"Bridge request id {request_id} is already pending.")
            self._pending[request_id] = future
            self._state = SessionState.ACTIVE

        wait_seconds = timeout if timeout is not None else self._request_timeout
        timer = threading.Timer(wait_seconds, self._expire, args=(request_id, wait_seconds))
        timer.daemon = True
        future.add_done_callback(lambda _: timer.cancel())
        timer.start()

        request = BridgeRequest(id=request_id, type=command, payload=dict(payload or {}))
        try:
            transport.send(encode_request(request))
        except OSError as exc:
            self._resolve(
                request_id,
                error=BridgeConnectionLost(f"Could not reach the instrumentation client: {exc}"),
            )
        return future

    def on_message(self, line: bytes | str) -> None:
        """Resolve the pending request a response line belongs to."""
        try:
            response = decode_response(line)
        except BridgeProtocolError as exc:
            _LOGGER.warning("Dropping malformed bridge message: %s", exc)
            return
        if response.ok:
            resolved = self._resolve(response.id, result=dict(response.payload or {}))
        else:
            resolved = self._resolve(response.id, error=BridgeRequestError(response.error))
        if not resolved:
            _LOGGER.warning(
                "Dropping bridge response with unknown or duplicate id %s.", response.id
            )

    def close(self) -> None:
        """Fail pending requests and release the app connection; repeat calls do nothing."""
        with self._condition:
            if self._state in (SessionState.CLOSING, SessionState.CLOSED):
                return
            self._state = SessionState.CLOSING
            transport, self._transport = self._transport, None
            pending = self._drain_pending()
            self._condition.notify_all()
        _fail_all(pending, BridgeConnectionLost("Bridge session closed."))
        if transport is not None:
            transport.close()
        with self._condition:
            self._state = SessionState.CLOSED

    def _resolve(
        self,
        request_id: str,
        *,
        result: ResponsePayload | None = None,
        error: Exception | None = None,
    ) -> bool:
        with self._condition:
            future = self._pending.pop(request_id, None)
        if future is None:
            return False
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result or {})
        return True

    def _expire(self, request_id: str, wait_seconds: float) -> None:
        with self._condition:
            future = self._pending.pop(request_id, None)
        if future is not None:
            future.set_exception(
                BridgeRequestTimeout(
                    f"No response from the instrumentation client within {wait_seconds:g}s."
                )
            )

    def _drain_pending(self) -> list[Future[ResponsePayload]]:
        pending = list(self._pending.values())
        self._pending.clear()
        return pending

    def _unavailable_reason(self) -> str:
        if self._state is SessionState.LISTENING:
            return "No instrumentation client is connected to the bridge."
        if self._state is SessionState.BROKEN:
            return "Instrumentation client disconnected."
        return "Bridge session closed."


def _fail_all(futures: list[Future[ResponsePayload]], error: Exception) -> None:
    for future in futures:
        future.set_exception(error)
