"""Request/response protocol with progress streaming over a daemon transport."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping
from uuid import uuid4

from pydantic import BaseModel

from torus_sdk.progress import CancelToken, ProgressSink, RequestStream
from torus_sdk.transport import Transport

logger = logging.getLogger(__name__)


def _new_request_id() -> str:
    return uuid4().hex


class ProtocolClient:
    """Sole path for daemon communication.

    Each request gets a fresh correlation id. Progress frames are delivered in
    arrival order, strictly before the terminal outcome is returned or raised.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        timeout: float | None = None,
        id_factory: Callable[[], str] = _new_request_id,
    ) -> None:
        self._transport = transport
        self._timeout = timeout
        self._id_factory = id_factory

    def stream(
        self,
        method: str,
        path: str,
        body: BaseModel | Mapping[str, Any] | None = None,
        *,
        query: Mapping[str, str] | None = None,
        cancel: CancelToken | None = None,
    ) -> RequestStream:
        request_id = self._id_factory()
        if cancel is None and self._timeout is not None:
            cancel = CancelToken(timeout=self._timeout)
        if cancel is not None:
            cancel.raise_if_canceled(request_id)

        payload = body.model_dump(mode="json") if isinstance(body, BaseModel) else body
        logger.debug("daemon request %s %s request_id=%s", method, path, request_id)
        frames = self._transport.open(
            method,
            path,
            payload,
            request_id=request_id,
            query=query,
            cancel=cancel,
        )

        def _on_close(terminal: bool) -> None:
            if not terminal:
                logger.warning("daemon request %s %s ended without a terminal frame", method, path)
            logger.debug("daemon request finished request_id=%s terminal=%s", request_id, terminal)

        return RequestStream(request_id, frames, cancel=cancel, on_close=_on_close)

    def send(
        self,
        method: str,
        path: str,
        body: BaseModel | Mapping[str, Any] | None = None,
        *,
        result_type: Any = None,
        progress: ProgressSink | None = None,
        query: Mapping[str, str] | None = None,
        cancel: CancelToken | None = None,
    ) -> Any:
        stream = self.stream(method, path, body, query=query, cancel=cancel)
        with stream:
            for event in stream:
                if progress is not None:
                    progress(event, None)
            return stream.result(result_type)

    def close(self) -> None:
        self._transport.close()


__all__ = ["ProtocolClient"]
