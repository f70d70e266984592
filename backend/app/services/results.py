# Overview: uniform outcome type returned by every public service operation.

"""
Service outcomes.

Expected failure modes (bad input, missing records, store errors) come back
as a ServiceResult instead of an exception, so callers (routes, CLI, other
services) branch on ``result.success`` and show ``result.error`` verbatim.

error_kind is one of:
- "validation": rejected before any mutation
- "not_found": referenced record does not exist
- "store": database failure; the operation was not applied
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..validation import NotFoundError, ValidationError

KIND_VALIDATION = "validation"
KIND_NOT_FOUND = "not_found"
KIND_STORE = "store"


@dataclass(frozen=True)
class ServiceResult:
    success: bool
    data: Any = None
    error: str | None = None
    error_kind: str | None = None

    def to_dict(self) -> dict:
        body: dict = {"success": self.success}
        if self.success:
            body["data"] = self.data
        else:
            body["error"] = self.error
        return body


def ok(data: Any = None) -> ServiceResult:
    return ServiceResult(success=True, data=data)


def fail(message: str, kind: str = KIND_VALIDATION) -> ServiceResult:
    return ServiceResult(success=False, error=message, error_kind=kind)


def service_operation(failure_message: str):
    """
    Convert expected exceptions raised inside a service function into a
    failed ServiceResult.

    Anything else (programming errors) propagates unchanged.
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except ValidationError as exc:
                db.session.rollback()
                return fail(str(exc), KIND_VALIDATION)
            except NotFoundError as exc:
                db.session.rollback()
                return fail(str(exc), KIND_NOT_FOUND)
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception(failure_message)
                return fail(failure_message, KIND_STORE)
        return wrapper
    return decorator
