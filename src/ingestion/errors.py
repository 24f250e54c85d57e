import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional


LOGGER = logging.getLogger(__name__)


class FailureKind(str, Enum):
    NETWORK = "network"
    SERVER = "server"
    CLIENT = "client"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    VISUALIZATION = "visualization"
    UNKNOWN = "unknown"


_RETRYABLE_KINDS = frozenset({FailureKind.NETWORK, FailureKind.SERVER, FailureKind.RATE_LIMIT})

_USER_MESSAGES: dict[FailureKind, str] = {
    FailureKind.NETWORK: "Unable to connect to data source. Please check your internet connection.",
    FailureKind.SERVER: "The data service is temporarily unavailable. Please try again later.",
    FailureKind.CLIENT: "There was a problem with the request. Please check your settings.",
    FailureKind.RATE_LIMIT: "Rate limit exceeded. Please wait a moment before refreshing.",
    FailureKind.VALIDATION: "Received invalid data from the API. Please try again later.",
    FailureKind.CONFIGURATION: "Configuration error. Please check the source settings.",
    FailureKind.VISUALIZATION: "Unable to display the chart. Please refresh the page.",
    FailureKind.UNKNOWN: "An unexpected error occurred. Please try again.",
}


class FetchError(Exception):
    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.UNKNOWN,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


@dataclass(frozen=True)
class ErrorInfo:
    kind: FailureKind
    message: str
    technical: str
    context: str
    timestamp: float

    @property
    def retryable(self) -> bool:
        return is_retryable(self.kind)

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "technical": self.technical,
            "context": self.context,
            "timestamp": self.timestamp,
            "retryable": self.retryable,
        }


def is_retryable(kind: FailureKind) -> bool:
    return kind in _RETRYABLE_KINDS


def user_message(kind: FailureKind) -> str:
    return _USER_MESSAGES[kind]


def classify_status(status_code: int) -> FailureKind:
    if status_code == 429:
        return FailureKind.RATE_LIMIT
    if status_code >= 500:
        return FailureKind.SERVER
    if status_code >= 400:
        return FailureKind.CLIENT
    return FailureKind.UNKNOWN


def categorize_error(error: BaseException) -> FailureKind:
    if isinstance(error, FetchError):
        return error.kind

    message = str(error).lower()
    if any(token in message for token in ("fetch", "network", "connection", "timeout", "timed out")):
        return FailureKind.NETWORK
    if "config" in message:
        return FailureKind.CONFIGURATION
    if any(token in message for token in ("invalid", "validation", "missing")):
        return FailureKind.VALIDATION
    if any(token in message for token in ("chart", "visualization", "canvas")):
        return FailureKind.VISUALIZATION
    return FailureKind.UNKNOWN


def handle_error(error: BaseException, context: str = "unknown") -> ErrorInfo:
    kind = categorize_error(error)
    info = ErrorInfo(
        kind=kind,
        message=user_message(kind),
        technical=str(error),
        context=context,
        timestamp=time.time(),
    )
    LOGGER.error("[%s] [%s] %s", kind.value.upper(), context, info.technical)
    return info
