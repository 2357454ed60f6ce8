# Overview: Error taxonomy and the Result type returned across the service boundary.

"""
Stock Ledger Error Handling (authoritative)

Inside the service layer, failures are raised as LedgerError subclasses.
Every public service function is wrapped with @service_boundary, which:
- rolls back the current DB session
- logs the failure once
- returns Result.failure(error) instead of propagating

Callers (routes, CLI, other services) branch on result.ok.

Retry semantics:
- ValidationError, PermissionDenied, NotFound, InsufficientStock: not retryable
- ConflictError, TransientError: safe for the caller to retry (bounded)

IntegrityError from the store is converted to ConflictError at the boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from functools import wraps
from typing import Any, Callable, Generic, Optional, TypeVar

from flask import current_app
from sqlalchemy.exc import IntegrityError

from .extensions import db

T = TypeVar("T")


class LedgerError(Exception):
    """Base class for every failure the service boundary reports."""

    code = "error"
    http_status = 400
    retryable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        for key, value in self.details.items():
            payload[key] = str(value) if isinstance(value, Decimal) else value
        return payload


class ValidationError(LedgerError):
    """400-level input problem."""

    code = "validation_error"
    http_status = 400


class PermissionDenied(LedgerError):
    code = "permission_denied"
    http_status = 403

    def __init__(self, role: Optional[str], action: str):
        super().__init__(
            f"Role {role!r} is not permitted to perform {action!r}",
            role=role,
            action=action,
        )
        self.role = role
        self.action = action


class NotFound(LedgerError):
    code = "not_found"
    http_status = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", entity=entity, id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStock(LedgerError):
    """
    An 'out' movement would drive stock below zero.

    Carries the exact maximum removable quantity so the caller can
    correct the request without re-querying.
    """

    code = "insufficient_stock"
    http_status = 409

    def __init__(self, *, current_stock: Decimal, requested: Decimal):
        max_removable = current_stock if current_stock > 0 else Decimal("0")
        super().__init__(
            f"Insufficient stock. Current stock: {current_stock}. Cannot remove {requested}.",
            current_stock=current_stock,
            max_removable=max_removable,
            requested=requested,
        )
        self.current_stock = current_stock
        self.max_removable = max_removable
        self.requested = requested


class ConflictError(LedgerError):
    """409-level concurrency conflict (optimistic retry budget exhausted or stale version)."""

    code = "conflict"
    http_status = 409
    retryable = True


class TransientError(LedgerError):
    """Storage timeout or unavailability."""

    code = "transient_error"
    http_status = 503
    retryable = True


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[LedgerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: LedgerError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value, re-raising the error for callers that prefer exceptions."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def service_boundary(func: Callable[..., T]) -> Callable[..., Result[T]]:
    """
    Convert LedgerError exceptions raised by func into Result values.

    A constraint violation that reaches the boundary (unique email raced by a
    concurrent insert, a CHECK constraint the store enforces) is reported as
    ConflictError rather than escaping to the caller.
    """

    @wraps(func)
    def wrapper(*args, **kwargs) -> Result[T]:
        try:
            return Result.success(func(*args, **kwargs))
        except IntegrityError as exc:
            db.session.rollback()
            err = ConflictError(f"{func.__name__} violated a storage constraint")
            current_app.logger.warning("%s failed: %s (%s)", func.__name__, err.code, exc.orig)
            return Result.failure(err)
        except LedgerError as err:
            db.session.rollback()
            level = "warning" if err.retryable else "info"
            getattr(current_app.logger, level)(
                "%s failed: %s (%s)", func.__name__, err.code, err.message
            )
            return Result.failure(err)

    # Undecorated access for composition inside the service layer
    wrapper.raw = func  # type: ignore[attr-defined]
    return wrapper
