from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from result import Result


class OpErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    ACCESS = "access"
    INVALID_NAME = "invalid_name"
    ALREADY_EXISTS = "already_exists"
    EMPTY_INPUT = "empty_input"
    CANCELLED = "cancelled"
    CREATE = "create"
    RENAME = "rename"
    DELETE = "delete"
    COPY = "copy"
    MOVE = "move"
    INTERNAL = "internal"


@dataclass(slots=True, frozen=True)
class OpError:
    code: OpErrorCode
    path: str
    message: str


type OpResult[T] = Result[T, OpError]
