from __future__ import annotations

import types

import pytest


class ScriptedTransport:
    """Transport double replaying scripted frames per (method, path)."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[list]] = {}
        self.calls: list[types.SimpleNamespace] = []
        self.closed = False

    @staticmethod
    def progress(message: str, stage: str | None = None) -> dict:
        return {"type": "progress", "message": message, "stage": stage}

    @staticmethod
    def result(body: object | None = None) -> dict:
        return {"type": "result", "body": body}

    @staticmethod
    def error(error_type: str | None, message: str = "", status_code: int | None = None) -> dict:
        frame = {"type": "error", "error": {"type": error_type, "message": message}}
        if status_code is not None:
            frame["status_code"] = status_code
        return frame

    def on(self, method: str, path: str, *frames) -> None:
        self.routes.setdefault((method, path), []).append(list(frames))

    def paths(self) -> list[str]:
        return [f"{call.method} {call.path}" for call in self.calls]

    def open(self, method, path, body=None, *, request_id, query=None, cancel=None):  # noqa: ANN001
        call = types.SimpleNamespace(
            method=method,
            path=path,
            body=body,
            request_id=request_id,
            query=query,
        )
        self.calls.append(call)
        scripts = self.routes.get((method, path))
        if not scripts:
            raise AssertionError(f"unexpected request {method} {path}")
        script = scripts.pop(0) if len(scripts) > 1 else scripts[0]
        return self._frames(script, call)

    def _frames(self, script, call):  # noqa: ANN001
        for item in script:
            if isinstance(item, BaseException):
                raise item
            if callable(item):
                item = item(call)
            frame = dict(item)
            frame.setdefault("id", call.request_id)
            yield frame

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()
