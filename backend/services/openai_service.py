import asyncio
import copy
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from exceptions import AppError, ErrorType, api_error, network_error, rate_limit_error, validation_error
from schemas.wizard_schemas import ValidationReportSchema
from utils.constant import (
    ALLOWED_MODELS,
    DEFAULT_TONE,
    DOUBTS_SYSTEM_PROMPT,
    FALLBACK_DOUBTS,
    FALLBACK_OPTIONS,
    FALLBACK_REPORT,
    MAX_SUGGESTIONS,
    NO_IDEA_TEXT,
    QUESTIONS,
    REPORT_SYSTEM_PROMPT,
    SUGGESTION_SYSTEM_PROMPT,
)
from utils.environment import get_openai_key, get_settings
from utils.logging_config import ErrorLogger
from utils.security import SlidingWindowRateLimiter, sanitize_input, validate_input

logger = logging.getLogger(__name__)
error_logger = ErrorLogger.get_instance()

RATE_LIMIT_IDENTIFIER = "api_client"
MAX_BACKOFF_SECONDS = 5
JSON_RESPONSE_FORMAT = {"type": "json_object"}

_settings = get_settings()
rate_limiter = SlidingWindowRateLimiter(
    max_requests=_settings.rate_limit_max_requests,
    window_seconds=_settings.rate_limit_window_seconds,
)

# Swapped out in tests to skip the backoff delay
backoff_sleep = asyncio.sleep

_client: Optional[AsyncOpenAI] = None


def get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        # Retries are handled by request_completion
        _client = AsyncOpenAI(api_key=get_openai_key(), max_retries=0)
    return _client


def build_request_options(
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    response_format: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Clamp caller options into the ranges the API accepts"""
    settings = get_settings()
    if model not in ALLOWED_MODELS:
        model = settings.openai_model if settings.openai_model in ALLOWED_MODELS else ALLOWED_MODELS[0]

    options = {
        "model": model,
        "temperature": max(0.0, min(temperature if temperature is not None else 0.7, 1.0)),
        "max_tokens": max(1, min(max_tokens or 1000, 2000)),
    }
    if response_format:
        options["response_format"] = response_format
    return options


def validate_messages(messages: List[Dict[str, Any]]) -> None:
    if not isinstance(messages, list) or not messages:
        raise validation_error("messages", "Messages must be a non-empty array")

    for msg in messages:
        if not isinstance(msg, dict) or not msg.get("role") or not msg.get("content"):
            raise validation_error("messages", "Each message must have role and content")
        if isinstance(msg["content"], str):
            is_valid, error = validate_input(msg["content"])
            if not is_valid:
                raise validation_error("messages", error)


def sanitize_messages(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {**msg, "content": sanitize_input(msg["content"]) if isinstance(msg["content"], str) else msg["content"]}
        for msg in messages
    ]


def _map_openai_error(e: Exception) -> AppError:
    if isinstance(e, openai.AuthenticationError):
        return AppError("Authentication failed", ErrorType.AUTHENTICATION, "AUTHENTICATION_FAILED", 401)
    if isinstance(e, openai.RateLimitError):
        return api_error("Rate limit exceeded by server", "SERVER_RATE_LIMIT", 429)
    if isinstance(e, openai.BadRequestError):
        return api_error("Invalid request parameters", "INVALID_REQUEST", 400)
    if isinstance(e, openai.APITimeoutError):
        return network_error("Request timeout", 408)
    if isinstance(e, openai.APIConnectionError):
        return network_error("Could not reach the completion service")
    if isinstance(e, openai.APIStatusError):
        if e.status_code >= 500:
            return network_error(f"Server error: {e.status_code}", e.status_code)
        return api_error(f"Request failed: {e.status_code}", "API_ERROR", e.status_code)
    return AppError(str(e) or type(e).__name__, ErrorType.UNKNOWN, "UNKNOWN_ERROR")


async def request_completion(messages: List[Dict[str, Any]], options: Dict[str, Any], retries: Optional[int] = None):
    """Send one chat completion, retrying transient failures with exponential backoff"""
    settings = get_settings()
    if not get_openai_key():
        raise AppError("Service configuration error", ErrorType.AUTHENTICATION, "MISSING_API_KEY", 500)

    retries = settings.max_retries if retries is None else retries
    last_error: Optional[AppError] = None

    for attempt in range(retries + 1):
        try:
            return await get_client().chat.completions.create(
                messages=messages,
                timeout=settings.request_timeout_seconds,
                **options,
            )
        except Exception as e:
            last_error = _map_openai_error(e)

            # Timeouts, bad requests and auth failures will not improve on retry
            if last_error.error_type == ErrorType.AUTHENTICATION or last_error.status_code in (400, 408):
                break
            if attempt == retries:
                break

            delay = min(2 ** attempt, MAX_BACKOFF_SECONDS)
            logger.warning(f"🔁 Completion attempt {attempt + 1} failed ({last_error.code}), retrying in {delay}s")
            await backoff_sleep(delay)

    error_logger.log_error(last_error, {"endpoint": "openai", "model": options.get("model"), "retries": retries})
    raise last_error


async def call_openai_api(
    messages: List[Dict[str, Any]],
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    response_format: Optional[Dict[str, Any]] = None,
):
    """Validate, sanitize and rate limit messages, then request a completion"""
    validate_messages(messages)
    sanitized_messages = sanitize_messages(messages)
    options = build_request_options(model, temperature, max_tokens, response_format)

    if not rate_limiter.is_allowed(RATE_LIMIT_IDENTIFIER):
        raise rate_limit_error(rate_limiter.retry_after(RATE_LIMIT_IDENTIFIER))

    logger.info(f"🚀 Requesting completion with {len(sanitized_messages)} messages ({options['model']})")
    return await request_completion(sanitized_messages, options)


def extract_content(response) -> str:
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        raise api_error("Completion response had no choices", "INVALID_RESPONSE")
    if not isinstance(content, str) or not content.strip():
        raise api_error("Completion response was empty", "INVALID_RESPONSE")
    return content


def parse_json_content(content: Optional[str]) -> Optional[Any]:
    """Parse model output as JSON, tolerating ```json fences"""
    if not isinstance(content, str):
        return None
    text = content.strip()
    fenced = re.match(r"^```(?:json)?\s*(.*?)\s*```$", text, re.DOTALL)
    if fenced:
        text = fenced.group(1)
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def parse_options(content: Optional[str], limit: int = MAX_SUGGESTIONS) -> List[str]:
    parsed = parse_json_content(content)
    if not isinstance(parsed, dict) or not isinstance(parsed.get("options"), list):
        raise api_error("Invalid response format from API", "INVALID_RESPONSE")

    options = [sanitize_input(option) for option in parsed["options"] if isinstance(option, str)]
    options = [option for option in options if option]
    if not options:
        raise api_error("Response contained no usable options", "INVALID_RESPONSE")
    return options[:limit]


def _with_tone(prompt: str, tone: Optional[str]) -> str:
    return prompt.replace("{tone}", tone or DEFAULT_TONE)


async def generate_question_options(
    question: Dict[str, Any],
    user_idea: str,
    advisor_tone: Optional[str] = None,
    draft: Optional[str] = None,
) -> List[str]:
    """AI phrasing suggestions for one question. Falls back to FALLBACK_OPTIONS on any failure."""
    is_valid, error = validate_input(user_idea)
    if not is_valid:
        logger.warning(f"⚠️ Invalid user idea provided ({error}), using fallback options")
        return list(FALLBACK_OPTIONS)

    user_content = f'User idea: "{sanitize_input(user_idea, 1500)}". Generate options for: "{question["text"]}"'
    messages = [
        {"role": "system", "content": _with_tone(SUGGESTION_SYSTEM_PROMPT, advisor_tone)},
        {"role": "user", "content": user_content},
        {"role": "user", "content": question["prompt"]},
    ]
    if draft and validate_input(draft)[0]:
        messages.append({"role": "user", "content": f'My current draft answer: "{sanitize_input(draft, 1000)}"'})

    try:
        response = await call_openai_api(
            messages,
            model=get_settings().openai_model,
            temperature=0.7,
            max_tokens=500,
            response_format=JSON_RESPONSE_FORMAT,
        )
        options = parse_options(extract_content(response))
        logger.info(f"✅ Generated {len(options)} options for question {question['id']}")
        return options
    except Exception as e:
        error_logger.log_error(e, {"function": "generate_question_options", "question_id": question.get("id")})
        return list(FALLBACK_OPTIONS)


async def fetch_founder_doubts(idea: str, audience: str, problem: str, solution: str) -> List[str]:
    """Doubts a founder should weigh. Falls back to FALLBACK_DOUBTS on any failure."""
    inputs = {"idea": idea, "audience": audience, "problem": problem, "solution": solution}
    for key, value in inputs.items():
        is_valid, _ = validate_input(value)
        if not is_valid:
            logger.warning(f"⚠️ Invalid {key} provided, using fallback doubts")
            return list(FALLBACK_DOUBTS)

    sanitized = {key: sanitize_input(value, 400) for key, value in inputs.items()}
    messages = [
        {"role": "system", "content": DOUBTS_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f'Idea: "{sanitized["idea"]}"\n'
                f'Audience: "{sanitized["audience"]}"\n'
                f'Problem: "{sanitized["problem"]}"\n'
                f'Solution: "{sanitized["solution"]}".\n'
                "What are the top 3-5 doubts a founder should have about this business?"
            ),
        },
    ]

    try:
        response = await call_openai_api(
            messages,
            model=get_settings().openai_model,
            temperature=0.5,
            max_tokens=800,
            response_format=JSON_RESPONSE_FORMAT,
        )
        return parse_options(extract_content(response))
    except Exception as e:
        error_logger.log_error(e, {"function": "fetch_founder_doubts"})
        return list(FALLBACK_DOUBTS)


def fallback_report(advisor_id: Optional[str] = None) -> Dict[str, Any]:
    report = copy.deepcopy(FALLBACK_REPORT)
    report.update({
        "advisor_id": advisor_id,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "is_fallback": True,
    })
    return report


def parse_report(content: Optional[str]) -> Dict[str, Any]:
    parsed = parse_json_content(content)
    if not isinstance(parsed, dict):
        raise api_error("Invalid report format from API", "INVALID_RESPONSE")

    def text(*keys):
        for key in keys:
            value = parsed.get(key)
            if isinstance(value, str):
                return sanitize_input(value)
        return ""

    def items(key):
        value = parsed.get(key)
        if not isinstance(value, list):
            return []
        return [sanitize_input(item, 500) for item in value if isinstance(item, str)]

    try:
        report = ValidationReportSchema(
            idea_summary=text("ideaSummary", "idea_summary", "summary"),
            strengths=items("strengths"),
            concerns=items("concerns"),
            insights=text("insights"),
            next_steps=text("nextSteps", "next_steps"),
        )
    except ValidationError as e:
        raise api_error(f"Incomplete report from API: {e.error_count()} invalid fields", "INVALID_RESPONSE")
    return report.model_dump()


def build_report_messages(answers: Dict[int, str], advisor_tone: Optional[str], user_idea: str) -> List[Dict[str, str]]:
    messages = [
        {"role": "system", "content": _with_tone(REPORT_SYSTEM_PROMPT, advisor_tone)},
        {"role": "user", "content": f'My idea: "{sanitize_input(user_idea, 1500)}"'},
    ]
    # One message per answer keeps every message inside the input limit
    for question in QUESTIONS:
        answer = answers.get(question["id"])
        if not answer:
            continue
        messages.append({
            "role": "user",
            "content": f"Question: {question['text']}\nMy answer: {sanitize_input(answer, 1500)}",
        })
    messages.append({"role": "user", "content": "Please generate my validation report."})
    return messages


async def generate_validation_report(
    answers: Dict[int, str],
    advisor_tone: Optional[str],
    user_idea: Optional[str] = None,
    advisor_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Synthesise the validation report from all answers. Falls back to FALLBACK_REPORT on any failure."""
    user_idea = user_idea or answers.get(1) or NO_IDEA_TEXT
    logger.info(f"📝 Generating validation report from {len(answers)} answers")

    try:
        response = await call_openai_api(
            build_report_messages(answers, advisor_tone, user_idea),
            model=get_settings().openai_model,
            temperature=0.7,
            max_tokens=1500,
            response_format=JSON_RESPONSE_FORMAT,
        )
        report = parse_report(extract_content(response))
    except Exception as e:
        error_logger.log_error(e, {"function": "generate_validation_report", "answers": len(answers)})
        return fallback_report(advisor_id)

    report.update({
        "advisor_id": advisor_id,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "is_fallback": False,
    })
    logger.info("✅ Validation report generated")
    return report
