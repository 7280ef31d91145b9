"""Error taxonomy for the marketplace support API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ServiceError(Exception):
    code: str
    detail: str
    status_code: int = 400
    details: Any = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.detail}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ConfigurationError(ServiceError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=500)


class UpstreamError(ServiceError):
    def __init__(self, code: str, detail: str, upstream_status: int | None = None, details: Any = None):
        if details is None and upstream_status is not None:
            details = {"upstreamStatus": upstream_status}
        super().__init__(code=code, detail=detail, status_code=500, details=details)


class WebhookAuthError(ServiceError):
    def __init__(self, code: str = "webhook_unauthorized", detail: str = "Unauthorized"):
        super().__init__(code=code, detail=detail, status_code=401)


def _is_absent(error: dict[str, Any]) -> bool:
    if error.get("type") == "missing":
        return True
    # min_length=1 on strings rejects "" the same way as an absent field.
    return error.get("type") == "string_too_short" and error.get("input") == ""


def _field_phrase(fields: list[str], outcome: str) -> str:
    return f"{', '.join(fields)} {'is' if len(fields) == 1 else 'are'} {outcome}"


def describe_validation_error(exc: RequestValidationError) -> tuple[str, list[str]]:
    """Summarise a request validation failure as ``(message, fields)``.

    Absent or empty fields read "is required"; present but malformed ones
    read "is invalid".
    """
    missing: list[str] = []
    invalid: list[str] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        if not loc:
            continue
        field = ".".join(loc)
        (missing if _is_absent(error) else invalid).append(field)

    parts = []
    if missing:
        parts.append(_field_phrase(missing, "required"))
    if invalid:
        parts.append(_field_phrase(invalid, "invalid"))
    return "; ".join(parts) or "Invalid request body", missing + invalid


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def _service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error("request_failed path=%s code=%s detail=%s", request.url.path, exc.code, exc.detail)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError):
        detail, fields = describe_validation_error(exc)
        return JSONResponse(status_code=400, content={"error": detail, "details": fields})
