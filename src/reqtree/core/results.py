"""
Operation results carrying a distinguishable error kind.

User-input and transport failures are reported through ``Result`` values
instead of exceptions, so callers can assert on the failure itself rather than
on the absence of a state change.
"""

from typing import Generic, Optional, TypeVar

from .exceptions import ErrorKind, ReqtreeException

T = TypeVar("T")


class Result(Generic[T]):
    """Outcome of a recoverable operation."""

    __slots__ = ("ok", "value", "error", "message")

    def __init__(
        self,
        ok: bool,
        value: Optional[T] = None,
        error: Optional[ErrorKind] = None,
        message: str = "",
    ):
        self.ok = ok
        self.value = value
        self.error = error
        self.message = message

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(True, value=value)

    @classmethod
    def failure(
        cls, error: ErrorKind, message: str = "", value: Optional[T] = None
    ) -> "Result[T]":
        """
        Build a failed result.

        ``value`` may still carry the state after the failed operation, which
        for recoverable errors is the unchanged input state.
        """
        return cls(False, value=value, error=error, message=message)

    @classmethod
    def from_exception(
        cls, exc: ReqtreeException, value: Optional[T] = None
    ) -> "Result[T]":
        return cls.failure(exc.kind, exc.message, value=value)

    def __bool__(self) -> bool:
        return self.ok

    def __repr__(self) -> str:
        if self.ok:
            return "Result(ok=True)"
        return f"Result(ok=False, error={self.error.value if self.error else None})"
