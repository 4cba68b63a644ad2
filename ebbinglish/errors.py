"""
Errors and Action Results

Domain errors are raised inside the store/transaction code and turned into
an ActionResult at the boundary, so callers never see an exception.
"""

from __future__ import annotations
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

T = TypeVar("T")


# ---- Error Taxonomy ----

class StudyError(Exception):
    """Base class for errors surfaced to callers as failed results."""
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StudyError):
    """Malformed or oversized input."""
    kind = "validation"


class NotFoundError(StudyError):
    """Missing or not-owned entity. Messages never reveal which."""
    kind = "not_found"


class StateConflict(StudyError):
    """Request conflicts with stored state (out-of-order progress, etc.)."""
    kind = "conflict"


class NoWordsAvailable(StateConflict):
    """Candidate pool for a new session is empty."""
    kind = "empty_pool"


# ---- Results ----

@dataclass(frozen=True)
class ActionResult(Generic[T]):
    """
    Outcome of an exposed operation.

    Attributes:
        ok: True on success
        data: Payload on success
        message: Human readable reason on failure
        error: Error kind on failure (validation, not_found, conflict, ...)
    """
    ok: bool
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: T = None) -> "ActionResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, message: str, error: str = StudyError.kind) -> "ActionResult[T]":
        return cls(ok=False, message=message, error=error)


def study_action(invalid_message: str, failed_message: str) -> Callable:
    """
    Decorator turning an operation that raises into one returning ActionResult.

    Args:
        invalid_message: Message for request schema failures
        failed_message: Message for unexpected store failures (logged)
    """
    def decorator(func: Callable[..., Any]) -> Callable[..., ActionResult]:
        logger = logging.getLogger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> ActionResult:
            try:
                return ActionResult.success(func(*args, **kwargs))
            except PydanticValidationError:
                return ActionResult.failure(invalid_message, ValidationError.kind)
            except StudyError as exc:
                return ActionResult.failure(exc.message, exc.kind)
            except SQLAlchemyError:
                logger.exception("%s failed", func.__name__)
                return ActionResult.failure(failed_message)

        return wrapper

    return decorator
