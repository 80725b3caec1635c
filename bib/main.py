import logging
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from bib.config import settings
from bib.core.errors import CodedHTTPException
from bib.core.rate_limit import limiter
from bib.modules.auth import routes as auth_routes
from bib.modules.users import routes as users_routes
from bib.modules.friends import routes as friends_routes
from bib.modules.recommendations import routes as recommendations_routes
from bib.modules.watch_reminders import routes as watch_reminders_routes
from bib.modules.group_watch import routes as group_watch_routes
from bib.modules.nudges import routes as nudges_routes
from bib.modules.push import routes as push_routes
from bib.modules.tmdb import routes as tmdb_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(CodedHTTPException)
async def coded_http_exception_handler(request: Request, exc: CodedHTTPException):
    if not exc.code:
        return await http_exception_handler(request, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"Referrer-Policy", b"strict-origin-when-cross-origin"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(users_routes.router, prefix="/api/v1")
app.include_router(friends_routes.router, prefix="/api/v1")
app.include_router(recommendations_routes.router, prefix="/api/v1")
app.include_router(watch_reminders_routes.router, prefix="/api/v1")
app.include_router(group_watch_routes.router, prefix="/api/v1")
app.include_router(nudges_routes.router, prefix="/api/v1")
app.include_router(push_routes.router, prefix="/api/v1")
app.include_router(tmdb_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")
    if not settings.is_supabase_configured:
        logger.warning("Supabase is not configured; data routes will answer 503")
    if not settings.is_tmdb_configured:
        logger.warning("TMDB API key not configured; metadata lookups are disabled")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to bib-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: reports which backends are configured."""
    return {
        "status": "ready",
        "supabase": settings.is_supabase_configured,
        "tmdb": settings.is_tmdb_configured,
    }
