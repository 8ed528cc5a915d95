"""
Arvalo agents FastAPI application
Hosts the purchase-assistant agents behind a thin HTTP surface
"""
import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from arvalo.agent_routes import router as agent_router
from arvalo.bootstrap import build_agent_suite
from arvalo.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Arvalo agents on %s:%s", settings.host, settings.port)
    logger.info("Model provider: %s", settings.agent_provider)
    if getattr(app.state, "suite", None) is None:
        app.state.suite = build_agent_suite(settings)

    sweeper = None
    if settings.cache_cleanup_interval_s > 0:
        sweeper = asyncio.create_task(app.state.suite.cache.sweep(settings.cache_cleanup_interval_s))
    app.state.cache_sweeper = sweeper

    yield

    # Shutdown
    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper

    stats = app.state.suite.monitor.get_stats()
    logger.info(
        "Shutting down Arvalo agents (%d executions, $%.4f total cost)",
        stats["total_executions"],
        stats["total_cost"],
    )


# Create FastAPI application
app = FastAPI(
    title="Arvalo Agents",
    description="Agentic purchase assistant: receipts, return policies, price drops, recurring purchases and warranties",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(agent_router)


@app.get("/health")
async def health_check():
    """Basic health check endpoint"""
    suite = getattr(app.state, "suite", None)
    return {
        "status": "healthy",
        "service": "arvalo-agents",
        "version": "1.0.0",
        "provider": settings.agent_provider,
        "agents": suite.orchestrator.agent_names() if suite else [],
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "arvalo.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
