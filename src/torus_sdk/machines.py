"""Machine identity provisioning."""

from __future__ import annotations

import logging

from torus_sdk.apitypes import MachineCreateRequest, MachineIdentity
from torus_sdk.errors import ValidationError
from torus_sdk.progress import CancelToken, ProgressSink
from torus_sdk.protocol import ProtocolClient
from torus_sdk.token_secret import EntropySource, TokenSecret, generate_token_secret

logger = logging.getLogger(__name__)


class MachinesClient:
    def __init__(self, protocol: ProtocolClient, *, entropy: EntropySource | None = None) -> None:
        self._protocol = protocol
        self._entropy = entropy

    def create(
        self,
        org_id: str,
        name: str,
        *,
        team_id: str | None = None,
        progress: ProgressSink | None = None,
        cancel: CancelToken | None = None,
    ) -> tuple[MachineIdentity, TokenSecret]:
        """Create a machine in ``org_id`` and return it with its token secret.

        This is the only point at which the secret is visible; it cannot be
        retrieved from the daemon afterwards. A failed attempt discards the
        secret, so a retry always sends a newly generated one.
        """
        if not org_id or not org_id.strip():
            raise ValidationError("org_id must not be empty")
        if not name or not name.strip():
            raise ValidationError("machine name must not be empty")

        secret = generate_token_secret(self._entropy)
        request = MachineCreateRequest(
            name=name,
            org_id=org_id,
            team_id=team_id,
            secret=secret.encoded,
        )
        identity = self._protocol.send(
            "POST",
            "/machines",
            request,
            result_type=MachineIdentity,
            progress=progress,
            cancel=cancel,
        )
        logger.info("created machine %s in org %s", identity.id, identity.org_id)
        return identity, secret


__all__ = ["MachinesClient"]
