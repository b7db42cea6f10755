import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from insight_api.api.v1.ai_tools import router as ai_tools_router
from insight_api.api.v1.bot import router as bot_router
from insight_api.api.v1.chatpdf import router as chatpdf_router
from insight_api.api.v1.courses import content_router as course_content_router
from insight_api.api.v1.courses import listing_router as course_listing_router
from insight_api.api.v1.courses import router as courses_router
from insight_api.api.v1.enrollments import progress_router
from insight_api.api.v1.enrollments import router as enroll_router
from insight_api.api.v1.quiz import router as quiz_router
from insight_api.api.v1.resources import router as resources_router
from insight_api.api.v1.summarize import router as summarize_router
from insight_api.api.v1.thumbnails import router as thumbnails_router
from insight_api.api.v1.users import router as users_router
from insight_api.core.config import get_settings
from insight_api.core.dependencies import SessionLocal
from insight_api.services.ai.common.breaker import BreakerRegistry
from insight_api.services.ai.common.errors import AIGenerationError, MissingCredentialError
from insight_api.utils.rate_limit import get_client_ip, is_ai_route, rate_limiter

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="AI Insight API",
    version="1.0.0",
    docs_url="/docs" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.openapi_enabled else None,
)
app.state.ai_breakers = BreakerRegistry()


@app.on_event("startup")
async def _validate_config():
    problems = get_settings().validate_required_config()
    if not problems:
        return
    if get_settings().is_production:
        raise RuntimeError("Invalid configuration: " + "; ".join(problems))
    for problem in problems:
        logger.warning("Config: %s", problem)


if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials="*" not in settings.cors_allow_origins,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

app.include_router(users_router, prefix="/user", tags=["users"])
app.include_router(bot_router, prefix="/bot", tags=["ai"])
app.include_router(ai_tools_router, prefix="/api/ai-tools", tags=["ai"])
app.include_router(courses_router, prefix="/api/courses", tags=["courses"])
app.include_router(course_content_router, prefix="/api/generate-course-content", tags=["courses"])
app.include_router(course_listing_router, prefix="/api/get-courses", tags=["courses"])
app.include_router(enroll_router, prefix="/api/enroll", tags=["enrollments"])
app.include_router(progress_router, prefix="/api/course-progress", tags=["enrollments"])
app.include_router(quiz_router, prefix="/api/generate-quiz", tags=["quiz"])
app.include_router(chatpdf_router, prefix="/api/chatpdf", tags=["chatpdf"])
app.include_router(resources_router, prefix="/api/resources", tags=["resources"])
app.include_router(summarize_router, prefix="/api", tags=["ai"])
app.include_router(thumbnails_router, prefix="/api/thumbnails", tags=["ai"])


@app.exception_handler(AIGenerationError)
async def _ai_generation_error_handler(request: Request, exc: AIGenerationError):
    content: dict = {"success": False, "message": exc.message}
    headers = {}
    if exc.retry_after is not None:
        content["retryAfter"] = exc.retry_after
        headers["Retry-After"] = str(exc.retry_after)
    if exc.detail and settings.expose_error_details:
        content["error"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(MissingCredentialError)
async def _missing_credential_handler(request: Request, exc: MissingCredentialError):
    logger.error("%s", exc)
    return JSONResponse(
        status_code=503,
        content={"success": False, "message": "AI service is not configured for this feature"},
    )


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Hide internal details for 5xx unless explicitly enabled.
    if exc.status_code >= 500 and not settings.expose_error_details:
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": "Internal server error"})
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    if settings.expose_error_details:
        return JSONResponse(status_code=500, content={"success": False, "message": str(exc)})
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


@app.middleware("http")
async def _ai_rate_limit(request: Request, call_next):
    current = get_settings()
    if current.rate_limit_ai_enabled and request.method == "POST" and is_ai_route(request.url.path):
        ip = get_client_ip(request) or "unknown"
        key = f"ai:{ip}"
        allowed, _ = rate_limiter.allow(key, current.rate_limit_ai_per_min, 60)
        if not allowed:
            retry_after = rate_limiter.retry_after(key, 60)
            logger.info("AI rate limit hit for %s on %s", ip, request.url.path)
            return JSONResponse(
                status_code=429,
                content={"success": False, "message": "Too many AI requests. Please slow down.", "retryAfter": retry_after},
                headers={"Retry-After": str(retry_after)},
            )
    return await call_next(request)


@app.get("/fast-ping")
def fast_ping():
    return {"success": True, "message": "Server reached", "time": datetime.now(timezone.utc).isoformat()}


@app.get("/")
def root():
    return {"message": "AI Insight API is online", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/status")
def status():
    if SessionLocal is None:
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Backend is running but Database is not configured"},
        )
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.exception("Status check failed")
        content = {"success": False, "message": "Backend is running but Database is failing"}
        if settings.expose_error_details:
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)
    finally:
        db.close()
    return {
        "success": True,
        "message": "Backend and Database are running",
        "dbTime": datetime.now(timezone.utc).isoformat(),
        "env": settings.environment,
    }


@app.get("/health")
def health():
    return {"status": "ok"}
