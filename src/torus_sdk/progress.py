"""Progress streaming and cancellation for daemon requests."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from torus_sdk.apitypes import FRAME_ADAPTER, ErrorFrame, ProgressFrame, ResultFrame
from torus_sdk.errors import CanceledError, DaemonError, TorusSDKError, TransportError, classify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    message: str
    stage: Optional[str]
    request_id: str


ProgressSink = Callable[[ProgressEvent, Optional[BaseException]], None]


class CancelToken:
    """Cooperative cancellation; a deadline behaves exactly like ``cancel()``."""

    def __init__(
        self,
        *,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._event = threading.Event()
        self._clock = clock
        self._deadline = clock() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    @property
    def canceled(self) -> bool:
        return self._event.is_set() or self.expired

    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def raise_if_canceled(self, request_id: str | None = None) -> None:
        if not self.canceled:
            return
        reason = "deadline exceeded" if self.expired and not self._event.is_set() else "canceled"
        suffix = f": request_id={request_id}" if request_id else ""
        raise CanceledError(f"request {reason}{suffix}")


class RequestStream:
    """Ordered, single-pass stream of progress events for one request.

    Iterate to receive ``ProgressEvent``s in arrival order; iteration stops at
    the terminal frame. ``result()`` then returns the decoded body or raises the
    terminal error. A drained stream cannot be restarted.
    """

    def __init__(
        self,
        request_id: str,
        frames: Iterator[Mapping[str, Any]],
        *,
        cancel: CancelToken | None = None,
        on_close: Callable[[bool], None] | None = None,
    ) -> None:
        self.request_id = request_id
        self._frames = frames
        self._cancel = cancel
        self._on_close = on_close
        self._done = False
        self._body: Any = None
        self._error: TorusSDKError | None = None

    def __iter__(self) -> RequestStream:
        return self

    def __next__(self) -> ProgressEvent:
        while not self._done:
            try:
                if self._cancel is not None:
                    self._cancel.raise_if_canceled(self.request_id)
                raw = next(self._frames)
                frame = FRAME_ADAPTER.validate_python(raw)
                if self._cancel is not None:
                    self._cancel.raise_if_canceled(self.request_id)
            except StopIteration:
                self._finish(error=TransportError(
                    f"connection closed before terminal frame: request_id={self.request_id}"
                ))
                break
            except SchemaError as exc:
                self._finish(error=TransportError(f"malformed frame from daemon: {exc}"))
                break
            except TorusSDKError as exc:
                self._finish(error=exc)
                break

            if frame.id != self.request_id:
                logger.debug("dropping frame for %s on stream %s", frame.id, self.request_id)
                continue
            if isinstance(frame, ProgressFrame):
                return ProgressEvent(message=frame.message, stage=frame.stage, request_id=frame.id)
            if isinstance(frame, ResultFrame):
                self._finish(body=frame.body)
            elif isinstance(frame, ErrorFrame):
                self._finish(error=_daemon_error(frame))
        raise StopIteration

    @property
    def done(self) -> bool:
        return self._done

    def result(self, result_type: Any = None) -> Any:
        for _ in self:
            pass
        if self._error is not None:
            raise self._error
        if result_type is None:
            return self._body
        try:
            return TypeAdapter(result_type).validate_python(self._body)
        except SchemaError as exc:
            raise DaemonError(f"unexpected result body from daemon: {exc}") from exc

    def close(self) -> None:
        if not self._done:
            self._finish(error=CanceledError(f"request canceled: request_id={self.request_id}"))

    def __enter__(self) -> RequestStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _finish(self, *, body: Any = None, error: TorusSDKError | None = None) -> None:
        self._done = True
        self._body = body
        self._error = error
        close_frames = getattr(self._frames, "close", None)
        if close_frames is not None:
            close_frames()
        if self._on_close is not None:
            self._on_close(error is None or isinstance(error, DaemonError))


def _daemon_error(frame: ErrorFrame) -> DaemonError:
    message = frame.error.message or "daemon request failed"
    return DaemonError(
        message,
        classification=classify(frame.error.type, message, status_code=frame.status_code),
        status_code=frame.status_code,
        body=frame.model_dump(),
    )


__all__ = ["CancelToken", "ProgressEvent", "ProgressSink", "RequestStream"]
