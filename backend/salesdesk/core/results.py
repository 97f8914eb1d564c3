# salesdesk/core/results.py
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"  # a precondition on the input does not hold
    NOT_FOUND = "not_found"    # a referenced user/product/record is absent
    FORBIDDEN = "forbidden"    # the actor's role may not do this


@dataclass(frozen=True)
class OperationError:
    kind: ErrorKind
    code: str
    message: str

    def as_detail(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Business-rule outcome. Rule violations come back as a failed result,
    never as an exception, so callers can render them inline.
    """

    success: bool
    value: Optional[T] = None
    error: Optional[OperationError] = None

    @classmethod
    def ok(cls, value: T) -> "OperationResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, code: str, message: str) -> "OperationResult[T]":
        return cls(success=False, error=OperationError(kind=kind, code=code, message=message))


def invalid(code: str, message: str) -> OperationResult:
    return OperationResult.fail(ErrorKind.VALIDATION, code, message)


def not_found(code: str, message: str) -> OperationResult:
    return OperationResult.fail(ErrorKind.NOT_FOUND, code, message)


def forbidden(code: str, message: str) -> OperationResult:
    return OperationResult.fail(ErrorKind.FORBIDDEN, code, message)
