from dotenv import load_dotenv
load_dotenv()
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from app.actions.dispatcher import ActionDispatcher
from app.actions.register import ActionDependencies, build_dispatcher
from app.core.config import settings
from app.core.errors import DomainError
from app.core.rate_limit import limiter
from app.api import router as api_router
from app.schemas.envelope import error_response
from app import __version__

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def create_app(
    dispatcher: Optional[ActionDispatcher] = None,
    deps: Optional[ActionDependencies] = None,
) -> FastAPI:
    """
    Build the application. Tests pass a dispatcher wired to fakes.

    When the dispatcher is built here, its dependencies are closed on shutdown.
    """
    if dispatcher is None:
        deps = deps or ActionDependencies()
        dispatcher = build_dispatcher(deps)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if deps is not None:
            deps.close()
            logger.info("Closed action dependencies")

    app = FastAPI(title="Accounts Service", version=__version__, lifespan=lifespan)

    app.state.limiter = limiter
    app.state.dispatcher = dispatcher

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request_id = (request.headers.get("X-Request-Id") or "").strip() or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        if exc.status_code >= 500:
            logger.error("%s: %s (request_id=%s)", exc.code, exc.message, _request_id(request))
        else:
            logger.warning("%s: %s (request_id=%s)", exc.code, exc.message, _request_id(request))
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.code, exc.message, _request_id(request), exc.details),
        )

    # Custom rate limit exceeded handler
    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content=error_response("RATE_LIMITED", "Too many requests", _request_id(request)),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error (request_id=%s)", _request_id(request))
        return JSONResponse(
            status_code=500,
            content=error_response("INTERNAL_ERROR", "Internal server error", _request_id(request)),
        )

    app.include_router(api_router)
    return app


app = create_app()
