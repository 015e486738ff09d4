"""HTTP error shaping.

WHAT:
    - Request validation failures -> 422 with a field error tree
    - Uncaught ClarityError subclasses -> JSON error responses

The tree mirrors the shape of the input so a form can attach each message to
its field:

    {
        "errors": [],                                  # errors on the body itself
        "properties": {
            "email": {"errors": ["value is not a valid email address"]},
            "config": {"errors": [], "properties": {"pixel_id": {"errors": [...]}}},
            "items": {"errors": [], "items": [{"errors": [...]}]},
        },
    }
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .exceptions import ConfigurationError, CredentialError, EventWriteError, InvalidStatusTransition

logger = logging.getLogger(__name__)

# Leading loc segment FastAPI adds to say where the value came from
_REQUEST_SOURCES = {"body", "query", "path", "header", "cookie"}

_PYDANTIC_PREFIXES = ("Value error, ", "Assertion failed, ")


def _node() -> Dict[str, Any]:
    return {"errors": []}


def _clean_message(message: str) -> str:
    for prefix in _PYDANTIC_PREFIXES:
        if message.startswith(prefix):
            return message[len(prefix):]
    return message


def build_error_tree(errors: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Fold pydantic-style errors ({"loc": (...), "msg": ...}) into a nested tree.

    String segments become `properties`, integer segments become `items`.
    """
    tree = _node()
    for error in errors:
        loc = list(error.get("loc", ()))
        if loc and loc[0] in _REQUEST_SOURCES:
            loc = loc[1:]

        node = tree
        for segment in loc:
            if isinstance(segment, int):
                items: List[Dict[str, Any]] = node.setdefault("items", [])
                while len(items) <= segment:
                    items.append(_node())
                node = items[segment]
            else:
                node = node.setdefault("properties", {}).setdefault(str(segment), _node())

        node["errors"].append(_clean_message(str(error.get("msg", "Invalid value"))))
    return tree


def validation_error_response(errors: Iterable[Mapping[str, Any]]) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation failed", "errors": build_error_tree(errors)},
    )


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("[VALIDATION] %s %s rejected: %d error(s)", request.method, request.url.path, len(exc.errors()))
    return validation_error_response(exc.errors())


async def _event_write_handler(request: Request, exc: EventWriteError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})


async def _conflict_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


async def _credential_handler(request: Request, exc: CredentialError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


async def _configuration_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("[CONFIG] %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Server misconfigured"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(EventWriteError, _event_write_handler)
    app.add_exception_handler(InvalidStatusTransition, _conflict_handler)
    app.add_exception_handler(CredentialError, _credential_handler)
    app.add_exception_handler(ConfigurationError, _configuration_handler)
