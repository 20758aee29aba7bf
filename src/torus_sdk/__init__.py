"""Torus SDK public surface."""

from torus_sdk.bootstrap import (
    AccountBootstrapper,
    BootstrapContext,
    BootstrapResult,
    BootstrapStage,
    InputCollector,
)
from torus_sdk.client import Client
from torus_sdk.config import ClientConfig, load_config
from torus_sdk.errors import (
    CanceledError,
    ConfigError,
    DaemonError,
    EmailInUseError,
    EntropyUnavailableError,
    ErrorClassification,
    SignupFailedError,
    StageCanceledError,
    StageFailure,
    TorusSDKError,
    TransportError,
    ValidationError,
)
from torus_sdk.machines import MachinesClient
from torus_sdk.progress import CancelToken, ProgressEvent, RequestStream
from torus_sdk.protocol import ProtocolClient
from torus_sdk.token_secret import TOKEN_SECRET_SIZE, TokenSecret, generate_token_secret

__all__ = [
    "TorusSDKError",
    "ConfigError",
    "ValidationError",
    "EntropyUnavailableError",
    "TransportError",
    "CanceledError",
    "DaemonError",
    "ErrorClassification",
    "StageFailure",
    "EmailInUseError",
    "SignupFailedError",
    "StageCanceledError",
    "ClientConfig",
    "load_config",
    "Client",
    "ProtocolClient",
    "CancelToken",
    "ProgressEvent",
    "RequestStream",
    "MachinesClient",
    "TOKEN_SECRET_SIZE",
    "TokenSecret",
    "generate_token_secret",
    "AccountBootstrapper",
    "BootstrapContext",
    "BootstrapResult",
    "BootstrapStage",
    "InputCollector",
]
