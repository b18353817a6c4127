from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class CourseStructureError(Exception):
    """Domain-specific exception raised when a content tree operation fails."""

    message: str
    code: str = "course_structure_error"
    status_code: int = 400

    def __str__(self) -> str:  # pragma: no cover - human readable message
        return self.message


@dataclass(eq=False)
class InvalidArgumentError(CourseStructureError):
    code: str = "invalid_argument"
    status_code: int = 400


@dataclass(eq=False)
class CircularReferenceError(InvalidArgumentError):
    code: str = "circular_reference"
    status_code: int = 400


@dataclass(eq=False)
class NotFoundError(CourseStructureError):
    code: str = "not_found"
    status_code: int = 404


@dataclass(eq=False)
class TransactionFailureError(CourseStructureError):
    code: str = "transaction_failure"
    status_code: int = 500


@dataclass(eq=False)
class ContentOrderViolationError(CourseStructureError):
    """A materialized sibling list is not ``0..n-1``; the ordering engine has a bug."""

    code: str = "content_order_violation"
    status_code: int = 500
