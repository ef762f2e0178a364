"""Result<T> pattern: validation returns this instead of raising for bad corpus data."""
from __future__ import annotations
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class Result(Generic[T]):
    def __init__(self, is_success: bool, value: Optional[T] = None, errors: Optional[List[str]] = None):
        self.is_success = is_success
        self.value = value
        self.errors = errors or []

    @property
    def error(self) -> Optional[str]:
        """All problems joined into one line, or None on success."""
        return "; ".join(self.errors) if self.errors else None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(is_success=True, value=value)

    @classmethod
    def fail(cls, *errors: str) -> "Result[T]":
        return cls(is_success=False, errors=list(errors))

    def __repr__(self) -> str:
        if self.is_success:
            return f"Result.ok({self.value!r})"
        return f"Result.fail({self.error!r})"
