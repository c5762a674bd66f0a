import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import get_settings
from app.core.container import build_gateway, build_orchestrator
from app.core.redis import close_redis, connect_redis, ping_status
from app.database import SessionLocal
from app.routers import analysis, feedback, usage
from app.services.redis_analysis_cache import RedisAnalysisCache

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fails fast (ConfigurationError) when GEMINI_API_KEY is missing
    gateway = build_gateway(settings, SessionLocal)
    # One client for both the cache and /api/health
    client = await connect_redis(settings.redis_url, settings.redis_connect_timeout_seconds)
    redis_cache = RedisAnalysisCache(client, settings.analysis_cache_ttl_seconds) if client else None
    app.state.redis = client
    app.state.gateway = gateway
    app.state.orchestrator = build_orchestrator(settings, SessionLocal, gateway, redis_cache)
    logger.info("Analysis API started (environment=%s)", settings.environment)
    try:
        yield
    finally:
        await gateway.drain()
        await close_redis(client)
        app.state.redis = None


app = FastAPI(title="Handtrap Analysis API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url, "https://handtrap.vercel.app"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analysis.router)
app.include_router(usage.router)
app.include_router(feedback.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation Error", "message": "Invalid request data", "details": details},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"error": "Internal Error"}
    if not settings.is_production:
        content["details"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


@app.get("/")
def root():
    return {"message": "Master Duel AI Backend is running", "docs": "/docs"}


@app.get("/api/health")
async def health(request: Request):
    """Liveness plus the status of the Redis client the analysis cache uses. DB not checked here."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "redis": await ping_status(getattr(request.app.state, "redis", None)),
    }
