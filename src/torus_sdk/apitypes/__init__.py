from torus_sdk.apitypes.schemas import (
    API_VERSION,
    FRAME_ADAPTER,
    CancelFrame,
    DaemonVersion,
    ErrorDetail,
    ErrorFrame,
    Frame,
    KeypairsGenerateRequest,
    LoginRequest,
    MachineCreateRequest,
    MachineIdentity,
    Org,
    ProgressFrame,
    RequestFrame,
    ResultFrame,
    Signup,
    User,
)

__all__ = [
    "API_VERSION",
    "FRAME_ADAPTER",
    "Frame",
    "RequestFrame",
    "CancelFrame",
    "ProgressFrame",
    "ResultFrame",
    "ErrorFrame",
    "ErrorDetail",
    "MachineCreateRequest",
    "MachineIdentity",
    "Signup",
    "LoginRequest",
    "User",
    "Org",
    "KeypairsGenerateRequest",
    "DaemonVersion",
]
