"""SDK error types."""

from __future__ import annotations

from enum import Enum


class TorusSDKError(RuntimeError):
    """Base SDK error."""


class ConfigError(TorusSDKError):
    """Client configuration is invalid."""


class ValidationError(TorusSDKError, ValueError):
    """Input rejected before any network call."""


class EntropyUnavailableError(TorusSDKError):
    """Secure random source failed or returned a short read."""


class TransportError(TorusSDKError):
    """Connection to the daemon dropped before a terminal frame.

    The outcome is indeterminate: the daemon may or may not have completed
    the operation. Callers reconcile by re-querying or retrying idempotently.
    """


class CanceledError(TorusSDKError):
    """Request was canceled or its deadline passed."""


class ErrorClassification(str, Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    RESOURCE_EXISTS = "resource_exists"
    INTERNAL_SERVER = "internal_server"
    NOT_IMPLEMENTED = "not_implemented"
    UNKNOWN = "unknown"


_STATUS_CLASSIFICATIONS = {
    400: ErrorClassification.BAD_REQUEST,
    401: ErrorClassification.UNAUTHORIZED,
    404: ErrorClassification.NOT_FOUND,
    409: ErrorClassification.RESOURCE_EXISTS,
    501: ErrorClassification.NOT_IMPLEMENTED,
}


def classify(
    error_type: str | None,
    message: str = "",
    *,
    status_code: int | None = None,
) -> ErrorClassification:
    if error_type:
        normalized = error_type.strip().lower().replace(" ", "_")
        for classification in ErrorClassification:
            if classification.value == normalized:
                return classification
    if "resource exists" in message.lower():
        return ErrorClassification.RESOURCE_EXISTS
    if status_code is not None:
        if status_code in _STATUS_CLASSIFICATIONS:
            return _STATUS_CLASSIFICATIONS[status_code]
        if status_code >= 500:
            return ErrorClassification.INTERNAL_SERVER
    return ErrorClassification.UNKNOWN


class DaemonError(TorusSDKError):
    """Daemon returned a structured terminal error."""

    def __init__(
        self,
        message: str,
        *,
        classification: ErrorClassification = ErrorClassification.UNKNOWN,
        status_code: int | None = None,
        body: object | None = None,
    ) -> None:
        super().__init__(message)
        self.classification = classification
        self.status_code = status_code
        self.body = body


class StageFailure(TorusSDKError):
    """A bootstrap stage failed after the stages in ``committed`` succeeded."""

    def __init__(self, stage, cause: BaseException, *, committed: tuple = ()) -> None:
        super().__init__(f"{stage.label} failed: {cause}")
        self.stage = stage
        self.cause = cause
        self.committed = tuple(committed)

    @property
    def resume_stage(self):
        return self.stage

    @property
    def indeterminate(self) -> bool:
        return isinstance(self.cause, TransportError)


class EmailInUseError(StageFailure):
    """Signup rejected because the email address already has an account."""

    @property
    def resume_stage(self):
        return None


class SignupFailedError(StageFailure):
    """Signup rejected for any reason other than a duplicate email."""


class StageCanceledError(StageFailure, CanceledError):
    """A bootstrap stage was canceled; resume at the same stage.

    The daemon may already have applied the interrupted request, so the
    outcome is indeterminate. A canceled signup may have created the account.
    """

    @property
    def indeterminate(self) -> bool:
        return True
