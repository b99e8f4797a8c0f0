from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from contextlib import asynccontextmanager

from config.app import settings
from orchestration.upsell_engine import UpsellEngine
from routers.upsell import router as upsell_router

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine on startup, release its client on shutdown"""
    logger.info("Initializing Upsell Engine...")

    try:
        engine = UpsellEngine.from_settings(settings)
        app.state.engine = engine
        logger.info(f"Upsell engine ready - lookups via {settings.GUEST_API_BASE_URL}, "
                    f"configured properties: {engine.store.property_ids()}")
    except Exception as e:
        logger.error(f"Failed to initialize upsell engine: {e}")
        raise

    yield

    # Cleanup on shutdown
    logger.info("Shutting down Upsell Engine...")
    app.state.engine.close()

# Create FastAPI app
app = FastAPI(
    title="Upsell Engine API",
    description="Rules-driven upsell recommendations for hotel guests",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(upsell_router)

@app.get("/health")
async def health_check():
    """Simple health check endpoint"""
    engine = getattr(app.state, "engine", None)
    return {
        "status": "healthy",
        "system": "Upsell Engine",
        "version": "1.0.0",
        "components": {
            "engine": engine is not None,
            "configured_properties": len(engine.store.property_ids()) if engine else 0,
        }
    }
