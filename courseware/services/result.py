from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from courseware.services.errors import CourseStructureError

T = TypeVar("T")


@dataclass(slots=True)
class OperationResult(Generic[T]):
    """Tagged outcome of a content tree operation."""

    ok: bool
    value: Optional[T] = None
    error: Optional[CourseStructureError] = None

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: CourseStructureError) -> "OperationResult[T]":
        return cls(ok=False, error=error)

    def unwrap(self) -> T:
        if not self.ok:
            assert self.error is not None
            raise self.error
        return self.value  # type: ignore[return-value]


def attempt(fn: Callable[..., T], *args, **kwargs) -> OperationResult[T]:
    """Run *fn* and fold domain errors into a failure result.

    Anything that is not a :class:`CourseStructureError` is a bug and keeps
    propagating.
    """
    try:
        return OperationResult.success(fn(*args, **kwargs))
    except CourseStructureError as exc:
        return OperationResult.failure(exc)
