from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.environment import get_settings
from utils.logging_config import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

# Routers
from routers.wizard_router import router as wizard_router
from routers.openai_router import router as openai_router

# Middlewares
from middlewares.security_headers import SecurityHeadersMiddleware

# Exceptions
from exceptions import (
    AppError,
    app_error_exception_handler,
    global_exception_handler,
    validation_exception_handler,
    http_exception_handler,
)

app = FastAPI(title="Idea Validator API")

# ✅ CORS Support
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials="*" not in settings.allowed_origins_list,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)

# ✅ Root route for health check
@app.get("/")
async def root():
    return {
        "status": "ok",
        "message": "Idea Validator API is running",
        "version": "1.0.0",
        "ai_enabled": settings.openai_api_key is not None,
    }

# ✅ Routers
app.include_router(wizard_router, prefix="/wizard")
app.include_router(openai_router, prefix="/api")

# ✅ Global Exception Handlers
app.add_exception_handler(AppError, app_error_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
