"""
Mortgage Match error taxonomy and FastAPI exception handlers.

Validation and not-found errors are caller mistakes and are never retried.
Source errors are isolated per reconciliation source. Persistence errors
propagate: a catalog mutation only counts once the store has saved it.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class MortgageMatchError(Exception):
    """Base class for all service errors."""

    code = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MortgageMatchError):
    """Malformed applicant profile or program record."""

    code = "validation_error"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(MortgageMatchError):
    """A program id that is not in the catalog."""

    code = "not_found"
    status_code = 404

    def __init__(self, program_id: str):
        super().__init__(f"Program not found: {program_id}")
        self.program_id = program_id


class ReconciliationSourceError(MortgageMatchError):
    """Fetching or parsing one reconciliation source failed."""

    code = "source_error"
    status_code = 502

    def __init__(self, source_id: str, message: str):
        super().__init__(f"{source_id}: {message}")
        self.source_id = source_id


class NoDataAvailableError(ReconciliationSourceError):
    """
    The source produced nothing usable.

    Distinct from a source that was read successfully and lists zero
    programs; only the latter may mark that source's programs outdated.
    """

    code = "no_data_available"


class PersistenceError(MortgageMatchError):
    """The catalog store could not load or save."""

    code = "persistence_error"
    status_code = 503


async def _handle_service_error(request: Request, exc: MortgageMatchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    body = {"error": exc.code, "detail": exc.message}
    field = getattr(exc, "field", None)
    if field:
        body["field"] = field
    return JSONResponse(status_code=exc.status_code, content=body)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register JSON handlers for the service error taxonomy."""
    app.add_exception_handler(MortgageMatchError, _handle_service_error)
