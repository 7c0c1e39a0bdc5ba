from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.db.base import Base
from app.db.session import engine
from app.realtime.socket_server import build_socket_app, game_engine
from app.services.rate_limit_service import rate_limit_service

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if engine is not None:
        Base.metadata.create_all(bind=engine)
    else:
        logger.warning("DATABASE_URL is not set; match results will not be stored")
    logger.info("%s starting up", settings.app_name)
    yield
    await game_engine.shutdown()
    logger.info("%s shut down", settings.app_name)


api_app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)


class ApiRateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        if not settings.rate_limit_enabled or request.url.path.endswith("/health"):
            return await call_next(request)

        client_ip = request.client.host if request.client and request.client.host else "unknown"
        decision = rate_limit_service.check(
            f"api:{client_ip}",
            limit=settings.rate_limit_api_limit,
            window_seconds=settings.rate_limit_api_window_seconds,
        )
        headers = {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
        }
        if not decision.allowed:
            headers["Retry-After"] = str(decision.retry_after_seconds)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded"},
                headers=headers,
            )

        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response


api_app.add_middleware(ApiRateLimitMiddleware)
api_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
api_app.include_router(api_router, prefix=settings.api_prefix)

app = build_socket_app(api_app)
