import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from exceptions import AppError, ErrorType
from schemas.openai_schemas import ChatCompletionRequestSchema
from services import openai_service
from utils.environment import get_settings, has_valid_openai_key
from utils.security import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["OpenAI"])

_settings = get_settings()
ip_rate_limiter = FixedWindowRateLimiter(
    max_requests=_settings.rate_limit_max_requests,
    window_seconds=_settings.rate_limit_window_seconds,
)


def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/openai")
async def proxy_chat_completion(request: Request):
    """Chat completion passthrough with validation, per-client rate limiting and safe defaults"""
    if not has_valid_openai_key():
        logger.error("❌ OpenAI API key not configured")
        return _error(500, "Service configuration error")

    if not ip_rate_limiter.check(client_identifier(request)):
        return _error(429, "Rate limit exceeded. Please wait before making another request.")

    try:
        payload = ChatCompletionRequestSchema.model_validate(await request.json())
    except (ValidationError, json.JSONDecodeError, ValueError) as e:
        logger.warning(f"⚠️ Rejected completion request: {e}")
        return _error(400, "Invalid request parameters")

    messages = [m.model_dump() for m in payload.messages]
    options = openai_service.build_request_options(
        payload.model, payload.temperature, payload.max_tokens, payload.response_format
    )

    try:
        response = await openai_service.request_completion(messages, options, retries=0)
    except AppError as e:
        logger.error(f"❌ OpenAI API error: {e.message}")
        if e.error_type == ErrorType.AUTHENTICATION and e.status_code == 401:
            return _error(401, "Authentication failed")
        if e.status_code == 429:
            return _error(429, "Rate limit exceeded")
        if e.status_code == 400:
            return _error(400, "Invalid request parameters")
        return _error(500, "Request processing failed")

    return JSONResponse(status_code=200, content=response.model_dump())
