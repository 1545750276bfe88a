import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chat_relay.api import chat, conversations
from chat_relay.core.config import settings
from chat_relay.core.database import init_db
from chat_relay.core.rate_limit import RateLimiter
from chat_relay.core.security import API_KEY_HEADER, api_key_matches

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure logging based on mode
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s" if settings.debug
        else "%(levelname)-8s %(name)s: %(message)s",
    )

    init_db()

    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.state.rate_limiter = RateLimiter(settings.rate_limit_max, settings.rate_limit_window_seconds)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
    else:
        message = "Invalid request body"
    return JSONResponse({"error": message}, status_code=400)


# Middleware added later wraps earlier ones: CORS runs first, then auth, then rate limiting.

@app.middleware("http")
async def rate_limit(request: Request, call_next):
    client = request.client.host if request.client else "unknown"
    if not request.app.state.rate_limiter.allow(client):
        logger.debug(f"Rate limit exceeded for {client}")
        return JSONResponse({"error": "Too many requests"}, status_code=429)
    return await call_next(request)


@app.middleware("http")
async def require_api_key(request: Request, call_next):
    if not api_key_matches(settings.server_api_key, request.headers.get(API_KEY_HEADER)):
        logger.warning(f"Rejected request to {request.url.path}: bad or missing {API_KEY_HEADER}")
        return JSONResponse({"error": "Unauthorized"}, status_code=401)
    return await call_next(request)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_origins != ["*"],
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    allow_headers=["Origin", "Content-Length", "Content-Type", "Authorization", API_KEY_HEADER],
)

app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(conversations.router, prefix="/api/conversations", tags=["conversations"])


@app.get("/api/health")
async def health():
    return {"status": "ok"}


def run():
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "chat_relay.main:app",
        host=settings.host,
        port=settings.port,
        timeout_keep_alive=60,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    run()
