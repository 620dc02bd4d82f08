"""
FastAPI application hosting the completion gateway.

Open to any origin: every response carries permissive CORS headers and
pre-flight ``OPTIONS`` requests are answered with an empty 200.
"""

from dotenv import load_dotenv

# Load .env file before any other imports that might need env vars
load_dotenv()

import logging

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from api.routes import router
from tiacher.settings import get_settings

settings = get_settings()
logging.basicConfig(level=logging.DEBUG if settings.debug else settings.log_level)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Answer pre-flight requests and stamp CORS headers on every response."""

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        response: Response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response


def get_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="TIAcher Completion Gateway",
        description="Style-conditioned AI tutor completions",
        version="0.1.0",
        debug=get_settings().debug,
    )

    app.add_middleware(CORSHeadersMiddleware)
    app.include_router(router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


# Create the app instance
app = get_app()
