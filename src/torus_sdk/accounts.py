"""Daemon endpoints for user accounts, sessions, orgs and keypairs."""

from __future__ import annotations

from torus_sdk.apitypes import (
    DaemonVersion,
    KeypairsGenerateRequest,
    LoginRequest,
    Org,
    Signup,
    User,
)
from torus_sdk.progress import CancelToken, ProgressSink
from torus_sdk.protocol import ProtocolClient


class UsersClient:
    def __init__(self, protocol: ProtocolClient) -> None:
        self._protocol = protocol

    def signup(
        self,
        signup: Signup,
        *,
        progress: ProgressSink | None = None,
        cancel: CancelToken | None = None,
    ) -> User:
        return self._protocol.send(
            "POST",
            "/signup",
            signup,
            result_type=User,
            progress=progress,
            cancel=cancel,
        )


class SessionClient:
    def __init__(self, protocol: ProtocolClient) -> None:
        self._protocol = protocol

    def login(
        self,
        email: str,
        passphrase: str,
        *,
        progress: ProgressSink | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        self._protocol.send(
            "POST",
            "/login",
            LoginRequest(email=email, passphrase=passphrase),
            progress=progress,
            cancel=cancel,
        )


class OrgsClient:
    def __init__(self, protocol: ProtocolClient) -> None:
        self._protocol = protocol

    def get_by_name(self, name: str, *, cancel: CancelToken | None = None) -> Org | None:
        orgs = self._protocol.send(
            "GET",
            "/orgs",
            query={"name": name},
            result_type=list[Org],
            cancel=cancel,
        )
        return orgs[0] if orgs else None


class KeypairsClient:
    def __init__(self, protocol: ProtocolClient) -> None:
        self._protocol = protocol

    def generate(
        self,
        org_id: str,
        *,
        progress: ProgressSink | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        self._protocol.send(
            "POST",
            "/keypairs/generate",
            KeypairsGenerateRequest(org_id=org_id),
            progress=progress,
            cancel=cancel,
        )


class VersionClient:
    def __init__(self, protocol: ProtocolClient) -> None:
        self._protocol = protocol

    def get(self, *, cancel: CancelToken | None = None) -> DaemonVersion:
        return self._protocol.send("GET", "/version", result_type=DaemonVersion, cancel=cancel)


__all__ = ["UsersClient", "SessionClient", "OrgsClient", "KeypairsClient", "VersionClient"]
