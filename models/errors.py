"""Error taxonomy shared by the client, scheduler and synchronizer."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Failure categories surfaced by a synchronization run."""

    invalid_argument = "invalid_argument"
    invalid_request = "invalid_request"
    access_denied = "access_denied"
    not_found = "not_found"
    rate_limited = "rate_limited"
    remote_failure = "remote_failure"
    invalid_policy = "invalid_policy"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE_KINDS


_RETRYABLE_KINDS = frozenset({ErrorKind.rate_limited, ErrorKind.remote_failure})


class SyncError(Exception):
    """Single exception type for the pipeline; inspect ``kind`` to branch."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __repr__(self) -> str:
        return f"SyncError(kind={self.kind.value!r}, message={self.message!r})"
