from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    GUARD_SKIP = "guard_skip"
    CIRCUIT_OPEN = "circuit_open"
    REMOTE_CALL_FAILURE = "remote_call_failure"
    SAVE_FAILURE = "save_failure"
    HANDLER_EXCEPTION = "handler_exception"


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: str = "unknown", value: Optional[T] = None) -> "Result[T]":
        """Failed result. ``value`` may still carry the (escalated) turn."""
        if isinstance(code, ErrorKind):
            code = code.value
        return Result(ok=False, value=value, error=error, error_code=code)

    @staticmethod
    def skipped(value: T, reason: str) -> "Result[T]":
        """Guard skip: not an error, the turn is relayed unchanged."""
        return Result(ok=True, value=value, error=reason, error_code=ErrorKind.GUARD_SKIP.value)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default
