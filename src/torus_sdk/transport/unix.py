"""Multiplexed transport over the daemon's Unix domain socket.

Frames are newline-delimited JSON objects tagged with a correlation id. Any
number of requests may share one connection: writes are serialized, and the
thread currently reading routes frames for other requests into their queues.
"""

from __future__ import annotations

import json
import logging
import select
import socket
import threading
from collections import deque
from pathlib import Path
from typing import Any, Iterator, Mapping, Protocol

from torus_sdk.apitypes import CancelFrame, RequestFrame
from torus_sdk.errors import TransportError
from torus_sdk.progress import CancelToken

logger = logging.getLogger(__name__)

TERMINAL_FRAME_TYPES = frozenset({"result", "error"})
READ_CHUNK_SIZE = 65536


class FrameConnection(Protocol):
    def write_frame(self, frame: Mapping[str, Any]) -> None: ...

    def read_frame(self, timeout: float | None) -> dict | None: ...

    def close(self) -> None: ...


class UnixSocketConnection:
    def __init__(self, path: str | Path, *, connect_timeout: float = 5.0) -> None:
        self.path = Path(path)
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(connect_timeout)
            sock.connect(str(self.path))
            sock.settimeout(None)
        except OSError as exc:
            sock.close()
            raise TransportError(f"daemon unreachable at {self.path}: {exc}") from exc
        self._sock = sock
        self._buffer = bytearray()

    def write_frame(self, frame: Mapping[str, Any]) -> None:
        data = json.dumps(frame, separators=(",", ":")).encode("utf-8") + b"\n"
        try:
            self._sock.sendall(data)
        except OSError as exc:
            raise TransportError(f"write to daemon failed: {exc}") from exc

    def read_frame(self, timeout: float | None) -> dict | None:
        while b"\n" not in self._buffer:
            try:
                ready, _, _ = select.select([self._sock], [], [], timeout)
                if not ready:
                    return None
                chunk = self._sock.recv(READ_CHUNK_SIZE)
            except OSError as exc:
                raise TransportError(f"read from daemon failed: {exc}") from exc
            if not chunk:
                raise TransportError("daemon closed the connection")
            self._buffer.extend(chunk)
        line, _, rest = bytes(self._buffer).partition(b"\n")
        self._buffer = bytearray(rest)
        try:
            frame = json.loads(line)
        except ValueError as exc:
            raise TransportError(f"malformed frame from daemon: {exc}") from exc
        if not isinstance(frame, dict):
            raise TransportError("malformed frame from daemon: expected an object")
        return frame

    def close(self) -> None:
        self._sock.close()


class _RequestFrames:
    """Frames for one request; ``close()`` releases it even before the first read."""

    def __init__(
        self,
        transport: SocketTransport,
        request_id: str,
        cancel: CancelToken | None,
    ) -> None:
        self._transport = transport
        self._request_id = request_id
        self._cancel = cancel
        self._terminal = False
        self._closed = False

    def __iter__(self) -> _RequestFrames:
        return self

    def __next__(self) -> dict:
        if self._closed or self._terminal:
            raise StopIteration
        try:
            frame = self._transport._next_frame(self._request_id, self._cancel)
        except BaseException:
            self.close()
            raise
        if frame.get("type") in TERMINAL_FRAME_TYPES:
            self._terminal = True
            self._transport._unregister(self._request_id)
        return frame

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._transport._unregister(self._request_id)
        if not self._terminal:
            self._transport._send_cancel(self._request_id)


class SocketTransport:
    def __init__(
        self,
        connection: FrameConnection | None = None,
        *,
        socket_path: str | Path | None = None,
        poll_interval: float = 0.1,
    ) -> None:
        if connection is None and socket_path is None:
            raise ValueError("either connection or socket_path is required")
        self._connection = connection
        self._socket_path = socket_path
        self._poll_interval = poll_interval
        self._write_lock = threading.Lock()
        self._read_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._pending: dict[str, deque] = {}
        self._broken: TransportError | None = None

    def _conn(self) -> FrameConnection:
        with self._state_lock:
            if self._connection is None:
                self._connection = UnixSocketConnection(self._socket_path)
            return self._connection

    def open(
        self,
        method: str,
        path: str,
        body: object | None = None,
        *,
        request_id: str,
        query: Mapping[str, str] | None = None,
        cancel: CancelToken | None = None,
    ) -> Iterator[dict]:
        connection = self._conn()
        frame = RequestFrame(
            id=request_id,
            method=method,
            path=path,
            query=dict(query) if query else None,
            body=body,
        )
        with self._state_lock:
            if self._broken is not None:
                raise self._broken
            if request_id in self._pending:
                raise ValueError(f"duplicate request id: {request_id}")
            self._pending[request_id] = deque()
        try:
            with self._write_lock:
                connection.write_frame(frame.model_dump(mode="json"))
        except TransportError:
            self._unregister(request_id)
            raise
        return _RequestFrames(self, request_id, cancel)

    def _next_frame(self, request_id: str, cancel: CancelToken | None) -> dict:
        while True:
            with self._state_lock:
                queue = self._pending[request_id]
                if queue:
                    return queue.popleft()
                if self._broken is not None:
                    raise self._broken
            if cancel is not None:
                cancel.raise_if_canceled(request_id)
            if not self._read_lock.acquire(timeout=self._poll_interval):
                continue
            try:
                with self._state_lock:
                    if queue:
                        return queue.popleft()
                frame = self._conn().read_frame(self._poll_timeout(cancel))
                if frame is None:
                    continue
                frame_id = frame.get("id")
                if frame_id == request_id:
                    return frame
                self._route(frame_id, frame)
            except TransportError as exc:
                with self._state_lock:
                    self._broken = exc
                raise
            finally:
                self._read_lock.release()

    def _route(self, frame_id: object, frame: dict) -> None:
        with self._state_lock:
            queue = self._pending.get(frame_id) if isinstance(frame_id, str) else None
            if queue is not None:
                queue.append(frame)
                return
        logger.debug("dropping frame for unknown request %s", frame_id)

    def _poll_timeout(self, cancel: CancelToken | None) -> float:
        remaining = cancel.remaining() if cancel is not None else None
        if remaining is None:
            return self._poll_interval
        return min(self._poll_interval, remaining)

    def _unregister(self, request_id: str) -> None:
        with self._state_lock:
            self._pending.pop(request_id, None)

    def _send_cancel(self, request_id: str) -> None:
        with self._state_lock:
            if self._broken is not None or self._connection is None:
                return
        try:
            with self._write_lock:
                self._connection.write_frame(CancelFrame(id=request_id).model_dump(mode="json"))
        except TransportError as exc:
            logger.debug("could not notify daemon of canceled request %s: %s", request_id, exc)

    def close(self) -> None:
        with self._state_lock:
            connection, self._connection = self._connection, None
        if connection is not None:
            connection.close()


__all__ = ["FrameConnection", "SocketTransport", "UnixSocketConnection"]
