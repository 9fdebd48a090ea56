"""
Content Search Service
FastAPI Application Entry Point
"""

import logging
import logging.handlers
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables before module-level managers read them
load_dotenv()

from . import __version__
from .api.v1.health import get_gateway_dep, router as health_router
from .api.v1.search import get_orchestrator_dep, router as search_router
from .database.redis_client import close_redis
from .middleware import LoggingMiddleware
from .services.config.configuration_service import get_config_service
from .services.llm import create_gateway
from .services.llm.base import GenerationGateway
from .services.search.cache import create_result_cache
from .services.search.errors import SearchServiceError
from .services.search.orchestrator import SearchOrchestrator
from .services.search.strategy_factory import StrategyFactory, create_search_orchestrator
from .utils.logging_context import log_performance


def configure_logging():
    """
    Configure structured logging using structlog.

    - Production (ENV=production): JSON output for log aggregation
    - Development (ENV=development): Human-readable console output
    - Context bound through structlog.contextvars (correlation_id, search_id)
      is merged into every record, including stdlib loggers
    """
    env = os.getenv("ENV", "development").lower()
    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    timestamper = structlog.processors.TimeStamper(fmt="iso")

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.contextvars.merge_contextvars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        timestamper,
    ]

    if env == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback
        )

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # Default log path: <project root>/logs/search-service.log
    project_root = Path(__file__).resolve().parent.parent.parent.parent
    default_log_path = project_root / "logs" / "search-service.log"
    log_file_path = str(Path(os.getenv("LOG_FILE_PATH", str(default_log_path))).resolve())

    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_file_path,
        maxBytes=10 * 1024 * 1024,  # 10MB per file
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(log_level)

    # Reduce noise from verbose libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return structlog.get_logger(__name__)


logger = configure_logging()

# Global instances
gateway: Optional[GenerationGateway] = None
search_orchestrator: Optional[SearchOrchestrator] = None
strategy_factory: Optional[StrategyFactory] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown"""
    global gateway, search_orchestrator, strategy_factory

    logger.info("Starting content search service...")

    with log_performance("service_startup", logger):
        config_service = get_config_service()

        cache = await create_result_cache(config_service.get_cache_config())

        gateway = create_gateway(config_service)
        logger.info(f"✓ Generation gateway initialized ({type(gateway).__name__})")

        strategy_factory = StrategyFactory(config_service, gateway)
        search_orchestrator = create_search_orchestrator(
            config_service,
            gateway=gateway,
            cache=cache,
            factory=strategy_factory
        )
        logger.info(
            f"✓ SearchOrchestrator initialized with strategies: "
            f"{search_orchestrator.registry.list_strategy_names()}"
        )

    yield

    logger.info("Shutting down content search service...")

    for name, closeable in (
        ("generation gateway", gateway),
        ("vector store", strategy_factory.vector_store),
        ("keyword index", strategy_factory.keyword_index),
    ):
        try:
            await closeable.close()
            logger.info(f"✓ {name} closed")
        except Exception as e:
            logger.error(f"Error closing {name}: {e}")

    try:
        await close_redis()
        logger.info("✓ Redis closed")
    except Exception as e:
        logger.error(f"Error closing Redis: {e}")

    logger.info("Shutdown complete")


app = FastAPI(
    title="Content Search Service",
    description="Keyword, semantic, hybrid and RAG search over educational content",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Update for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)


@app.exception_handler(SearchServiceError)
async def search_service_error_handler(request: Request, exc: SearchServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def get_orchestrator() -> SearchOrchestrator:
    """Get orchestrator instance for dependency injection"""
    return search_orchestrator


def get_gateway() -> Optional[GenerationGateway]:
    return gateway


app.include_router(search_router)
app.include_router(health_router)

app.dependency_overrides[get_orchestrator_dep] = get_orchestrator
app.dependency_overrides[get_gateway_dep] = get_gateway


@app.get("/")
async def root():
    """Root endpoint - service descriptor"""
    return {
        "service": "content-search",
        "version": __version__,
        "description": "Multi-strategy search over courses, modules and content",
        "endpoints": {
            "search": "/api/v1/search",
            "rag": "/api/v1/search/rag",
            "strategies": "/api/v1/search/strategies",
            "health": "/api/v1/health",
            "docs": "/docs"
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "search_service.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "3004")),
        reload=True,
        log_level="info"
    )
