"""Transports carrying request frames to the daemon."""

from __future__ import annotations

from typing import Iterator, Mapping, Protocol

from torus_sdk.config import ClientConfig
from torus_sdk.progress import CancelToken
from torus_sdk.transport.http import HTTPTransport
from torus_sdk.transport.unix import FrameConnection, SocketTransport, UnixSocketConnection


class Transport(Protocol):
    def open(
        self,
        method: str,
        path: str,
        body: object | None = None,
        *,
        request_id: str,
        query: Mapping[str, str] | None = None,
        cancel: CancelToken | None = None,
    ) -> Iterator[dict]: ...

    def close(self) -> None: ...


def connect(config: ClientConfig) -> Transport:
    if config.daemon_url:
        return HTTPTransport(base_url=config.daemon_url, timeout=config.timeout)
    return SocketTransport(socket_path=config.socket_path)


__all__ = [
    "Transport",
    "connect",
    "HTTPTransport",
    "SocketTransport",
    "FrameConnection",
    "UnixSocketConnection",
]
