import logging
import os
import sys

from dotenv import load_dotenv
from mangum import Mangum

# Environment has to be in place before settings are cached
load_dotenv()

# Serverless entrypoint lives one level below the backend modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logger = logging.getLogger("idea_validator.api")

try:
    from main import app as fastapi_app
    from utils.environment import has_valid_openai_key

    if not has_valid_openai_key():
        logger.warning("⚠️ OPENAI_API_KEY missing or malformed, AI features will serve fallbacks")

    handler = Mangum(fastapi_app, lifespan="off")
    app = handler

except Exception as e:
    logger.exception(f"❌ Idea Validator API failed to initialise: {e}")

    from fastapi import FastAPI
    from fastapi.responses import JSONResponse

    error_app = FastAPI(title="Idea Validator API (unavailable)")
    init_error = str(e)

    @error_app.api_route("/{path:path}", methods=["GET", "POST", "DELETE"])
    async def catch_all(path: str):
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": f"Initialization failed: {init_error}"},
        )

    app = Mangum(error_app, lifespan="off")
