# salesdesk/api/deps/results.py
from __future__ import annotations

from typing import Mapping, TypeVar

from fastapi import HTTPException, status

from salesdesk.core.results import ErrorKind, OperationResult

T = TypeVar("T")

STATUS_BY_KIND: Mapping[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
}


def unwrap(result: OperationResult[T]) -> T:
    """Value of a successful result; HTTPException for a failed one."""
    if result.success:
        return result.value
    err = result.error
    raise HTTPException(status_code=STATUS_BY_KIND[err.kind], detail=err.as_detail())


def not_found(code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"code": code, "message": message})


def conflict(code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail={"code": code, "message": message})
