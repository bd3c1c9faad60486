"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("picows").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from app.api import router
from app.clients import BinanceRestClient
from app.config import get_settings
from app.services import HistoryProvider, MarketSession
from app.storage import ResultCache

logger = logging.getLogger(__name__)


def build_session() -> MarketSession:
    """Wire REST client, cache, provider and session from settings."""
    settings = get_settings()
    rest_client = BinanceRestClient(
        spot_url=settings.spot_rest_url,
        futures_url=settings.futures_rest_url,
        timeout=settings.http_timeout,
    )
    cache = ResultCache(ttl=settings.cache_ttl_seconds)
    provider = HistoryProvider(rest_client, cache)
    return MarketSession(provider, settings=settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    session: MarketSession = getattr(app.state, "session", None) or build_session()
    app.state.session = session

    logger.info("Starting market analytics engine...")
    await session.select(
        settings.default_symbol,
        settings.default_interval,
        settings.default_market_type,
    )

    yield

    logger.info("Shutting down...")
    await session.close()
    await session.provider.rest_client.close()
    logger.info("Shutdown complete")


def create_app(session: MarketSession | None = None) -> FastAPI:
    """Create the FastAPI app, optionally around an existing session."""
    app = FastAPI(
        title="Market Analytics Engine",
        description="Indicators, rule-based signals and walk-forward backtests",
        version="0.1.0",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )
    app.state.session = session

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
