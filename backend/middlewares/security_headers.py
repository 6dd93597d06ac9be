from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from utils.security import get_security_headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds hardening headers to every response"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in get_security_headers().items():
            response.headers.setdefault(name, value)
        return response
