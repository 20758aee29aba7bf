"""Daemon wire types."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

API_VERSION = "0.1.0"


class WireModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ResultModel(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


class MachineCreateRequest(WireModel):
    name: str
    org_id: str
    team_id: Optional[str] = None
    secret: str = Field(..., repr=False)


class MachineIdentity(ResultModel):
    id: str
    name: str
    org_id: str
    team_id: Optional[str] = None
    state: Optional[str] = None


class Signup(WireModel):
    name: str
    username: str
    passphrase: str = Field(..., repr=False)
    email: str
    invite_code: str = ""


class LoginRequest(WireModel):
    email: str
    passphrase: str = Field(..., repr=False)


class User(ResultModel):
    id: Optional[str] = None
    name: Optional[str] = None
    username: Optional[str] = None
    email: str
    state: Optional[str] = None


class Org(ResultModel):
    id: str
    name: str


class KeypairsGenerateRequest(WireModel):
    org_id: str


class DaemonVersion(ResultModel):
    version: str


class RequestFrame(WireModel):
    type: Literal["request"] = "request"
    id: str
    method: str
    path: str
    query: Optional[dict[str, str]] = None
    body: Any = None


class CancelFrame(WireModel):
    type: Literal["cancel"] = "cancel"
    id: str


class ProgressFrame(ResultModel):
    type: Literal["progress"]
    id: str
    message: str = ""
    stage: Optional[str] = None


class ResultFrame(ResultModel):
    type: Literal["result"]
    id: str
    body: Any = None


class ErrorDetail(ResultModel):
    type: Optional[str] = None
    message: str = ""


class ErrorFrame(ResultModel):
    type: Literal["error"]
    id: str
    error: ErrorDetail
    status_code: Optional[int] = None


Frame = Annotated[Union[ProgressFrame, ResultFrame, ErrorFrame], Field(discriminator="type")]

FRAME_ADAPTER = TypeAdapter(Frame)
