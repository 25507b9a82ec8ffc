import logging
from http import HTTPStatus
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import StorageError, TodoNotFoundError
from .logging_config import setup_logging
from .routers import todos as todos_router
from .schemas import ErrorDocument, FieldValidationError
from .settings import get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "CRUD operations for Todo items and paged search by title/description.",
    },
]

_settings = get_settings()
setup_logging(_settings.log_level, _settings.log_format)

app = FastAPI(
    title="Todo API",
    description="REST API for adding, updating, deleting and searching todo entries.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# pydantic error types reported with the codes clients already know
_ERROR_CODES = {
    "missing": "NotEmpty",
    "string_too_short": "NotEmpty",
    "string_too_long": "Length",
}


def _error_response(
    status_code: int,
    message: str,
    validation_errors: Optional[List[FieldValidationError]] = None,
) -> JSONResponse:
    document = ErrorDocument(
        status=HTTPStatus(status_code).name,
        code=int(status_code),
        message=message,
        validation_errors=validation_errors,
    )
    return JSONResponse(
        status_code=status_code,
        content=document.model_dump(by_alias=True, exclude_none=True),
    )


def _field_name(loc: Any) -> str:
    parts = [str(p) for p in loc]
    # drop the location kind ("body", "query", "path") when a field name follows
    if len(parts) > 1 and parts[0] in {"body", "query", "path", "header", "cookie"}:
        parts = parts[1:]
    return ".".join(parts)


def _error_code(error: Dict[str, Any]) -> str:
    error_type = error.get("type", "")
    if error_type == "string_type" and error.get("input") is None:
        return "NotEmpty"
    return _ERROR_CODES.get(error_type, error_type)


# PUBLIC_INTERFACE
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return 400 with one entry per rejected field.

    Response format:
        {
            "status": "BAD_REQUEST",
            "code": 400,
            "message": "Validation failed. 2 error(s)",
            "validationErrors": [{"field": "title", "errorCode": "Length", "errorMessage": "..."}]
        }
    """
    by_field: Dict[str, FieldValidationError] = {}
    for error in exc.errors():
        field = _field_name(error.get("loc", ()))
        if field in by_field:
            continue
        by_field[field] = FieldValidationError(
            field=field,
            error_code=_error_code(error),
            error_message=str(error.get("msg", "Invalid value")),
        )
    logger.info("Rejected %s %s: %s", request.method, request.url.path, sorted(by_field))
    return _error_response(
        HTTPStatus.BAD_REQUEST,
        f"Validation failed. {len(by_field)} error(s)",
        list(by_field.values()),
    )


# PUBLIC_INTERFACE
@app.exception_handler(TodoNotFoundError)
async def not_found_exception_handler(request: Request, exc: TodoNotFoundError) -> JSONResponse:
    """Map a missing todo entry to 404."""
    logger.info("Todo entry not found: %s", exc.todo_id, extra={"todo_id": exc.todo_id})
    return _error_response(HTTPStatus.NOT_FOUND, str(exc))


# PUBLIC_INTERFACE
@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Map storage failures to a generic 500."""
    logger.error("Storage failure during %s %s (%s)", request.method, request.url.path, exc.operation)
    return _error_response(HTTPStatus.INTERNAL_SERVER_ERROR, "An unexpected error occurred")


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy", "backend": _settings.persistence_backend}


app.include_router(todos_router.router)
