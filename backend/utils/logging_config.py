"""
Logging setup and the de-duplicating error logger used at LLM call sites
"""
import logging
import sys
from typing import Any, Dict, Optional

from exceptions import AppError

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

SENSITIVE_KEYS = ["password", "token", "apikey", "api_key", "secret", "authorization"]
MAX_CONTEXT_VALUE_LENGTH = 1000


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stdout,
    )
    # httpx logs every OpenAI request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


class ErrorLogger:
    """Logs errors with redacted context, at most max_log_frequency times per distinct error"""

    _instance: Optional["ErrorLogger"] = None

    def __init__(self, max_log_frequency: int = 5, logger: Optional[logging.Logger] = None):
        self.max_log_frequency = max_log_frequency
        self.error_count: Dict[str, int] = {}
        self.logger = logger or logging.getLogger("idea_validator.errors")

    @classmethod
    def get_instance(cls) -> "ErrorLogger":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def log_error(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> bool:
        """Returns False when the error was suppressed as a repeat"""
        error_key = f"{type(error).__name__}:{error}"
        current_count = self.error_count.get(error_key, 0)
        if current_count >= self.max_log_frequency:
            return False
        self.error_count[error_key] = current_count + 1

        sanitized_context = self.sanitize_context(context)

        if isinstance(error, AppError):
            status = f" status={error.status_code}" if error.status_code else ""
            self.logger.error(
                f"🚨 [{error.error_type.value}] {error.message} code={error.code}{status} context={sanitized_context}"
            )
        else:
            self.logger.error(f"🚨 [ERROR] {type(error).__name__}: {error} context={sanitized_context}")
        return True

    def reset(self) -> None:
        self.error_count.clear()

    @staticmethod
    def sanitize_context(context: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not context:
            return None

        sanitized = {}
        for key, value in context.items():
            lower_key = key.lower()
            if any(sensitive in lower_key for sensitive in SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, str) and len(value) > MAX_CONTEXT_VALUE_LENGTH:
                sanitized[key] = f"[TRUNCATED:{len(value)}chars]"
            else:
                sanitized[key] = value
        return sanitized
