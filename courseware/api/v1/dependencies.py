import logging
from typing import TypeVar

from fastapi import HTTPException

from courseware.db.session import get_db
from courseware.services.result import OperationResult

log = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = ["get_db", "unwrap_or_raise"]


def unwrap_or_raise(result: OperationResult[T]) -> T:
    """Return the result value or turn its domain error into an HTTP error."""
    if result.ok:
        return result.value  # type: ignore[return-value]

    error = result.error
    assert error is not None
    if error.status_code >= 500:
        log.error("Course structure operation failed: %s", error.message)
    else:
        log.info("Course structure request rejected (%s): %s", error.code, error.message)
    raise HTTPException(
        status_code=error.status_code,
        detail={"code": error.code, "message": error.message},
    )
