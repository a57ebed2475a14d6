"""Map reservation errors onto HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.domain.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "conflict": {
                "start_date": exc.conflict.start_date.isoformat(),
                "end_date": exc.conflict.end_date.isoformat(),
            },
        },
    )


async def _invalid_transition(
    request: Request, exc: InvalidTransitionError
) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def _validation(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(ConflictError, _conflict)
    app.add_exception_handler(InvalidTransitionError, _invalid_transition)
    app.add_exception_handler(ValidationError, _validation)
