"""Daemon client facade composed from endpoint clients."""

from __future__ import annotations

from dataclasses import dataclass, field

from torus_sdk.accounts import KeypairsClient, OrgsClient, SessionClient, UsersClient, VersionClient
from torus_sdk.config import ClientConfig
from torus_sdk.machines import MachinesClient
from torus_sdk.protocol import ProtocolClient
from torus_sdk.transport import Transport, connect


@dataclass
class Client:
    config: ClientConfig
    transport: Transport | None = None
    protocol: ProtocolClient = field(init=False)

    def __post_init__(self) -> None:
        if self.transport is None:
            self.transport = connect(self.config)
        self.protocol = ProtocolClient(self.transport, timeout=self.config.timeout)
        self.machines = MachinesClient(self.protocol)
        self.users = UsersClient(self.protocol)
        self.session = SessionClient(self.protocol)
        self.orgs = OrgsClient(self.protocol)
        self.keypairs = KeypairsClient(self.protocol)
        self.version = VersionClient(self.protocol)

    def close(self) -> None:
        self.protocol.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["Client"]
