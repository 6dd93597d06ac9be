import logging
import math
from enum import Enum
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    VALIDATION = "VALIDATION"
    RATE_LIMIT = "RATE_LIMIT"
    API = "API"
    NETWORK = "NETWORK"
    AUTHENTICATION = "AUTHENTICATION"
    UNKNOWN = "UNKNOWN"


class AppError(Exception):
    """Categorised application error"""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.UNKNOWN,
        code: str = "UNKNOWN_ERROR",
        status_code: Optional[int] = None,
        is_operational: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code
        self.status_code = status_code
        self.is_operational = is_operational

    def to_dict(self):
        return {
            "type": self.error_type.value,
            "code": self.code,
            "message": self.message,
        }


def validation_error(field: str, message: str, status_code: int = 400) -> AppError:
    return AppError(
        f"Validation failed for {field}: {message}",
        ErrorType.VALIDATION,
        "VALIDATION_ERROR",
        status_code,
    )


def rate_limit_error(wait_seconds: float) -> AppError:
    return AppError(
        f"Rate limit exceeded. Please wait {math.ceil(wait_seconds)} seconds.",
        ErrorType.RATE_LIMIT,
        "RATE_LIMIT_EXCEEDED",
        429,
    )


def api_error(message: str, code: str, status_code: Optional[int] = None) -> AppError:
    return AppError(message, ErrorType.API, code, status_code)


def network_error(message: str, status_code: Optional[int] = None) -> AppError:
    return AppError(message, ErrorType.NETWORK, "NETWORK_ERROR", status_code)


def not_found_error(what: str) -> AppError:
    return AppError(f"{what} not found", ErrorType.VALIDATION, "NOT_FOUND", 404)


# Exception handlers

async def app_error_exception_handler(request: Request, exc: AppError):
    status_code = exc.status_code or 500
    if status_code >= 500:
        logger.error(f"❌ {exc.error_type.value} error on {request.url.path}: {exc.message}")
        message = "Request processing failed"
    else:
        logger.warning(f"⚠️ {exc.error_type.value} error on {request.url.path}: {exc.message}")
        message = exc.message
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "error": {"type": exc.error_type.value, "code": exc.code},
        },
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(loc) for loc in err.get("loc", [])), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Invalid request parameters",
            "error": {"type": ErrorType.VALIDATION.value, "code": "VALIDATION_ERROR", "details": errors},
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail, "error": {"code": "HTTP_ERROR"}},
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Request processing failed",
            "error": {"type": ErrorType.UNKNOWN.value, "code": "INTERNAL_ERROR"},
        },
    )
