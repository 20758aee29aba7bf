"""HTTP transport for daemons listening on a TCP address."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import ReadTimeoutError

from torus_sdk.errors import CanceledError, TransportError
from torus_sdk.progress import CancelToken

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
STREAM_CONTENT_TYPE = "application/x-ndjson"


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, requests.Timeout):
        return True
    return any(isinstance(arg, ReadTimeoutError) for arg in exc.args)


def _decode_line(line: bytes, request_id: str) -> dict:
    try:
        frame = json.loads(line)
    except ValueError as exc:
        raise TransportError(f"malformed frame from daemon: {exc}") from exc
    if not isinstance(frame, dict):
        raise TransportError("malformed frame from daemon: expected an object")
    frame.setdefault("id", request_id)
    return frame


def _error_frame(response: Any, request_id: str) -> dict:
    body: object | None
    try:
        body = response.json()
    except ValueError:
        body = None
    error_type: str | None = None
    message = ""
    if isinstance(body, dict):
        raw_type = body.get("type")
        error_type = raw_type if isinstance(raw_type, str) else None
        raw_message = body.get("message", body.get("error"))
        if isinstance(raw_message, list):
            message = ", ".join(str(item) for item in raw_message)
        elif raw_message is not None:
            message = str(raw_message)
    if not message:
        message = f"daemon request failed: {response.status_code} {response.text}".strip()
    return {
        "type": "error",
        "id": request_id,
        "status_code": response.status_code,
        "error": {"type": error_type, "message": message},
    }


class _ResponseFrames:
    def __init__(self, response: Any, frames: Iterator[dict]) -> None:
        self._response = response
        self._frames = frames

    def __iter__(self) -> _ResponseFrames:
        return self

    def __next__(self) -> dict:
        return next(self._frames)

    def close(self) -> None:
        # An unstarted generator skips its finally block on close().
        self._frames.close()
        self._response.close()


@dataclass
class HTTPTransport:
    base_url: str
    timeout: float = 30.0

    def __post_init__(self) -> None:
        self._session = requests.Session()
        # Daemon requests are not idempotent; never retry implicitly.
        adapter = HTTPAdapter(max_retries=0)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)
        self._write_lock = threading.Lock()

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _timeout(self, cancel: CancelToken | None) -> float:
        remaining = cancel.remaining() if cancel is not None else None
        if remaining is None:
            return self.timeout
        return min(self.timeout, remaining)

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
        headers = {
            REQUEST_ID_HEADER: request_id,
            "Accept": f"{STREAM_CONTENT_TYPE}, application/json",
        }
        try:
            with self._write_lock:
                response = self._session.request(
                    method,
                    self._url(path),
                    json=body,
                    params=query,
                    headers=headers,
                    timeout=self._timeout(cancel),
                    stream=True,
                )
        except requests.RequestException as exc:
            if _is_timeout(exc):
                raise CanceledError(f"deadline exceeded: request_id={request_id}") from exc
            raise TransportError(f"daemon unreachable: {exc}") from exc
        logger.debug("daemon responded %s request_id=%s", response.status_code, request_id)
        return _ResponseFrames(response, self._frames(response, request_id))

    def _frames(self, response: Any, request_id: str) -> Iterator[dict]:
        try:
            if response.status_code >= 400:
                yield _error_frame(response, request_id)
                return
            content_type = response.headers.get("Content-Type", "")
            if not content_type.startswith(STREAM_CONTENT_TYPE):
                yield {"type": "result", "id": request_id, "body": _json_body(response)}
                return
            for line in response.iter_lines():
                if line:
                    yield _decode_line(line, request_id)
        except requests.RequestException as exc:
            if _is_timeout(exc):
                raise CanceledError(f"deadline exceeded: request_id={request_id}") from exc
            raise TransportError(f"connection to daemon dropped: {exc}") from exc
        finally:
            response.close()

    def close(self) -> None:
        self._session.close()


def _json_body(response: Any) -> object | None:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise TransportError(f"malformed response from daemon: {exc}") from exc


__all__ = ["HTTPTransport", "REQUEST_ID_HEADER"]
