"""
Input sanitization, validation, rate limiting and response hardening
"""
import re
import time
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

MAX_INPUT_LENGTH = 2000
MIN_INPUT_LENGTH = 3
MAX_MESSAGE_LENGTH = 5000

MAX_REQUESTS_PER_MINUTE = 20
RATE_LIMIT_WINDOW_SECONDS = 60

ALLOWED_DOMAINS = ["api.openai.com", "api.anthropic.com"]

CSP_DIRECTIVES = {
    "default-src": "'self'",
    "script-src": "'self' 'unsafe-inline'",
    "style-src": "'self' 'unsafe-inline'",
    "img-src": "'self' data: https:",
    "connect-src": "'self' https://api.openai.com",
    "font-src": "'self'",
    "object-src": "'none'",
    "base-uri": "'self'",
    "form-action": "'self'",
}

SCRIPT_BLOCK_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
HTML_TAG_RE = re.compile(r"<[^>]*>")
JAVASCRIPT_SCHEME_RE = re.compile(r"javascript:", re.IGNORECASE)
INLINE_HANDLER_RE = re.compile(r"on\w+\s*=", re.IGNORECASE)
DATA_URI_RE = re.compile(r"data:(?!image/[a-z]+;base64,)[^;]*;base64,", re.IGNORECASE)

SUSPICIOUS_PATTERNS = [
    re.compile(r"eval\s*\(", re.IGNORECASE),
    re.compile(r"function\s*\(", re.IGNORECASE),
    re.compile(r"setTimeout\s*\(", re.IGNORECASE),
    re.compile(r"setInterval\s*\(", re.IGNORECASE),
    re.compile(r"<iframe", re.IGNORECASE),
    re.compile(r"<object", re.IGNORECASE),
    re.compile(r"<embed", re.IGNORECASE),
    re.compile(r"data:.*base64", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"onload\s*=", re.IGNORECASE),
    re.compile(r"onerror\s*=", re.IGNORECASE),
]


def sanitize_html(text: str) -> str:
    """Remove script blocks, tags, javascript: schemes, inline handlers and non-image data URIs"""
    text = SCRIPT_BLOCK_RE.sub("", text)
    text = HTML_TAG_RE.sub("", text)
    text = JAVASCRIPT_SCHEME_RE.sub("", text)
    text = INLINE_HANDLER_RE.sub("", text)
    text = DATA_URI_RE.sub("", text)
    return text.strip()


def sanitize_input(text: Any, max_length: int = MAX_INPUT_LENGTH) -> str:
    if not isinstance(text, str):
        return ""
    return sanitize_html(text)[:max_length]


def validate_input(text: Any) -> Tuple[bool, Optional[str]]:
    if not text or not isinstance(text, str):
        return False, "Input must be a non-empty string"

    if len(text) < MIN_INPUT_LENGTH:
        return False, f"Minimum {MIN_INPUT_LENGTH} characters required"

    if len(text) > MAX_INPUT_LENGTH:
        return False, f"Maximum {MAX_INPUT_LENGTH} characters allowed"

    if any(pattern.search(text) for pattern in SUSPICIOUS_PATTERNS):
        return False, "Input contains potentially unsafe content"

    return True, None


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError):
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    return any(parsed.hostname.endswith(domain) for domain in ALLOWED_DOMAINS)


def sanitize_for_storage(data: Any) -> Any:
    if isinstance(data, str):
        text = SCRIPT_BLOCK_RE.sub("", data)
        return HTML_TAG_RE.sub("", text)[:10000]

    if isinstance(data, list):
        return [sanitize_for_storage(item) for item in data[:100]]

    if isinstance(data, dict):
        sanitized = {}
        for key in list(data.keys())[:50]:
            if len(str(key)) > 100:
                continue
            sanitized[key] = sanitize_for_storage(data[key])
        return sanitized

    return data


def get_security_headers() -> Dict[str, str]:
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Content-Security-Policy": "; ".join(f"{name} {value}" for name, value in CSP_DIRECTIVES.items()),
    }


class SlidingWindowRateLimiter:
    """Allows max_requests per identifier within any window_seconds span"""

    def __init__(
        self,
        max_requests: int = MAX_REQUESTS_PER_MINUTE,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.requests: Dict[str, List[float]] = {}

    def _recent(self, identifier: str, now: float) -> List[float]:
        window_start = now - self.window_seconds
        return [t for t in self.requests.get(identifier, []) if t > window_start]

    def is_allowed(self, identifier: str = "default") -> bool:
        now = self.clock()
        recent = self._recent(identifier, now)
        if len(recent) >= self.max_requests:
            self.requests[identifier] = recent
            return False
        recent.append(now)
        self.requests[identifier] = recent
        return True

    def remaining(self, identifier: str = "default") -> int:
        return max(0, self.max_requests - len(self._recent(identifier, self.clock())))

    def retry_after(self, identifier: str = "default") -> float:
        """Seconds until the next request for identifier would be accepted"""
        now = self.clock()
        recent = self._recent(identifier, now)
        if len(recent) < self.max_requests:
            return 0.0
        if not recent:
            return float(self.window_seconds)
        return max(0.0, self.window_seconds - (now - min(recent)))

    def reset(self) -> None:
        self.requests.clear()


class FixedWindowRateLimiter:
    """Counts requests per identifier in windows that start with the first request"""

    def __init__(
        self,
        max_requests: int = MAX_REQUESTS_PER_MINUTE,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.limits: Dict[str, Dict[str, float]] = {}

    def check(self, identifier: str) -> bool:
        now = self.clock()
        for key in [k for k, v in self.limits.items() if now > v["reset_time"]]:
            del self.limits[key]

        limit = self.limits.get(identifier)

        if limit is None or now > limit["reset_time"]:
            limit = {"count": 1, "reset_time": now + self.window_seconds}
        else:
            limit["count"] += 1

        self.limits[identifier] = limit
        return limit["count"] <= self.max_requests

    def reset(self) -> None:
        self.limits.clear()
