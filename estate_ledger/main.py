"""Estate Ledger API - Main Application"""
import structlog
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from estate_ledger.config import Settings, get_settings
from estate_ledger.api.v1.router import api_router
from estate_ledger.exceptions import LedgerError
from estate_ledger.services.ledger import Ledger

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings: Settings = app.state.settings
    logger.info("Starting Estate Ledger API", version=settings.app_version)

    owns_ledger = getattr(app.state, "ledger", None) is None
    if owns_ledger:
        app.state.ledger = Ledger.from_settings(settings)
    await app.state.ledger.init_schema()
    logger.info("Database initialized", database_url=settings.database_url)

    yield

    if owns_ledger:
        await app.state.ledger.close()
    logger.info("Estate Ledger API shutdown complete")


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Map a rejected operation to its HTTP status; nothing was committed"""
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({"detail": exc.message, "error": type(exc).__name__, **exc.context}),
    )


def create_app(settings: Optional[Settings] = None, ledger: Optional[Ledger] = None) -> FastAPI:
    """Create FastAPI application"""
    settings = settings or get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="API for the Estate Ledger real estate tokenization platform",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.ledger = ledger

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": settings.app_version,
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "estate_ledger.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
