"""Account bootstrap pipeline: signup, login, then keypair generation.

Each stage is its own daemon transaction. Nothing is rolled back when a later
stage fails; the raised ``StageFailure`` names the failed stage and the stages
already committed remotely so the pipeline can be resumed with ``start=``.
Login and keypair generation are safe to repeat against an existing account.
Signup is not: repeating it fails with a duplicate email.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

from torus_sdk.accounts import KeypairsClient, OrgsClient, SessionClient, UsersClient
from torus_sdk.apitypes import Org, Signup, User
from torus_sdk.config import ClientConfig
from torus_sdk.errors import (
    CanceledError,
    DaemonError,
    EmailInUseError,
    ErrorClassification,
    SignupFailedError,
    StageCanceledError,
    StageFailure,
    TorusSDKError,
    ValidationError,
)
from torus_sdk.progress import CancelToken, ProgressSink

logger = logging.getLogger(__name__)


class BootstrapStage(Enum):
    COLLECTING = "collecting"
    SIGNING_UP = "signing_up"
    LOGGING_IN = "logging_in"
    GENERATING_KEYPAIRS = "generating_keypairs"
    COMPLETE = "complete"

    @property
    def label(self) -> str:
        return _STAGE_LABELS[self]


_STAGE_LABELS = {
    BootstrapStage.COLLECTING: "input collection",
    BootstrapStage.SIGNING_UP: "signup",
    BootstrapStage.LOGGING_IN: "login",
    BootstrapStage.GENERATING_KEYPAIRS: "keypair generation",
    BootstrapStage.COMPLETE: "complete",
}

PIPELINE: tuple[BootstrapStage, ...] = (
    BootstrapStage.SIGNING_UP,
    BootstrapStage.LOGGING_IN,
    BootstrapStage.GENERATING_KEYPAIRS,
)


class InputCollector(Protocol):
    def full_name(self) -> str: ...

    def username(self) -> str: ...

    def email(self, default: str | None = None) -> str: ...

    def invite_code(self, default: str | None = None) -> str: ...

    def passphrase(self) -> str: ...


@dataclass(frozen=True)
class BootstrapContext:
    full_name: str
    username: str
    email: str
    passphrase: str = field(repr=False)
    invite_code: Optional[str] = None

    def validate(self) -> None:
        for field_name in ("full_name", "username", "email", "passphrase"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{field_name} must not be empty")


@dataclass(frozen=True)
class BootstrapResult:
    stage: BootstrapStage
    user: Optional[User]
    org: Optional[Org]
    committed: tuple[BootstrapStage, ...] = ()


class AccountBootstrapper:
    def __init__(
        self,
        *,
        config: ClientConfig,
        users: UsersClient,
        session: SessionClient,
        orgs: OrgsClient,
        keypairs: KeypairsClient,
    ) -> None:
        self._config = config
        self._users = users
        self._session = session
        self._orgs = orgs
        self._keypairs = keypairs

    @classmethod
    def from_client(cls, client) -> AccountBootstrapper:
        return cls(
            config=client.config,
            users=client.users,
            session=client.session,
            orgs=client.orgs,
            keypairs=client.keypairs,
        )

    def collect(
        self,
        inputs: InputCollector,
        *,
        email: str | None = None,
        invite_code: str | None = None,
        start: BootstrapStage = BootstrapStage.SIGNING_UP,
    ) -> BootstrapContext:
        # Invite codes only matter to signup; debug mode skips them entirely.
        needs_invite = start is BootstrapStage.SIGNING_UP and not self._config.debug
        full_name = inputs.full_name()
        username = inputs.username()
        collected_email = inputs.email(email)
        collected_code = None
        if needs_invite:
            collected_code = inputs.invite_code(invite_code)
        passphrase = inputs.passphrase()

        context = BootstrapContext(
            full_name=full_name,
            username=username,
            email=collected_email,
            passphrase=passphrase,
            invite_code=collected_code,
        )
        context.validate()
        if needs_invite and not (collected_code or "").strip():
            raise ValidationError("invite_code must not be empty")
        return context

    def run(
        self,
        context: BootstrapContext,
        *,
        progress: ProgressSink | None = None,
        cancel: CancelToken | None = None,
        start: BootstrapStage = BootstrapStage.SIGNING_UP,
    ) -> BootstrapResult:
        if start not in PIPELINE:
            raise ValueError(f"cannot start bootstrap at stage {start.value}")
        context.validate()

        start_index = PIPELINE.index(start)
        committed = list(PIPELINE[:start_index])
        email = context.email
        user: User | None = None
        org: Org | None = None

        for stage in PIPELINE[start_index:]:
            logger.info("bootstrap stage %s", stage.value)
            try:
                if stage is BootstrapStage.SIGNING_UP:
                    user = self._signup(context, progress=progress, cancel=cancel)
                    email = user.email
                elif stage is BootstrapStage.LOGGING_IN:
                    self._session.login(email, context.passphrase, progress=progress, cancel=cancel)
                else:
                    org = self._generate_keypairs(
                        context.username,
                        progress=progress,
                        cancel=cancel,
                    )
            except StageFailure as exc:
                logger.warning("bootstrap %s failed: %s", stage.label, exc.cause)
                raise
            except CanceledError as exc:
                logger.warning("bootstrap canceled during %s", stage.label)
                raise StageCanceledError(stage, exc, committed=committed) from exc
            except TorusSDKError as exc:
                logger.warning("bootstrap %s failed: %s", stage.label, exc)
                raise StageFailure(stage, exc, committed=committed) from exc
            committed.append(stage)

        logger.info("bootstrap complete")
        return BootstrapResult(
            stage=BootstrapStage.COMPLETE,
            user=user,
            org=org,
            committed=tuple(committed),
        )

    def _signup(
        self,
        context: BootstrapContext,
        *,
        progress: ProgressSink | None,
        cancel: CancelToken | None,
    ) -> User:
        signup = Signup(
            name=context.full_name,
            username=context.username,
            passphrase=context.passphrase,
            email=context.email,
            invite_code=context.invite_code or "",
        )
        try:
            return self._users.signup(signup, progress=progress, cancel=cancel)
        except CanceledError:
            raise
        except DaemonError as exc:
            if exc.classification is ErrorClassification.RESOURCE_EXISTS:
                raise EmailInUseError(BootstrapStage.SIGNING_UP, exc) from exc
            raise SignupFailedError(BootstrapStage.SIGNING_UP, exc) from exc
        except TorusSDKError as exc:
            raise SignupFailedError(BootstrapStage.SIGNING_UP, exc) from exc

    def _generate_keypairs(
        self,
        username: str,
        *,
        progress: ProgressSink | None,
        cancel: CancelToken | None,
    ) -> Org:
        org = self._orgs.get_by_name(username, cancel=cancel)
        if org is None:
            raise DaemonError(
                f"personal org not found for {username}",
                classification=ErrorClassification.NOT_FOUND,
            )
        self._keypairs.generate(org.id, progress=progress, cancel=cancel)
        return org


__all__ = [
    "AccountBootstrapper",
    "BootstrapContext",
    "BootstrapResult",
    "BootstrapStage",
    "InputCollector",
    "PIPELINE",
]
