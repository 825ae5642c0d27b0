from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from leadminer import __version__
from leadminer.cache import CacheManager
from leadminer.database import LeadRepository, create_tables, get_db_session, get_redis
from leadminer.routes import scraping_router
from leadminer.scraping import build_scraping_manager
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Leadminer API",
    version=__version__,
    description="Lead discovery pipeline: multi-source search, extraction and verification"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        os.getenv("FRONTEND_URL", "")
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Initialize database and services on startup"""
    create_tables()

    redis_client = get_redis()
    if redis_client:
        logger.info("Redis connection established")
    else:
        logger.warning("Redis not available - cache disabled")

    app.state.db_session = get_db_session()
    app.state.cache_manager = CacheManager(redis_client)
    app.state.scraping_manager = build_scraping_manager(
        repository=LeadRepository(app.state.db_session),
        cache_manager=app.state.cache_manager,
    )
    logger.info("Scraping manager ready")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop running jobs and release connections"""
    manager = getattr(app.state, "scraping_manager", None)
    if manager:
        await manager.close()
    db_session = getattr(app.state, "db_session", None)
    if db_session:
        db_session.close()


app.include_router(scraping_router)


@app.get("/")
def root():
    return {
        "message": "Leadminer API",
        "version": __version__,
        "status": "running",
        "description": "Lead discovery pipeline"
    }


@app.get("/health")
def health_check():
    """Health check endpoint for monitoring"""
    cache_manager = getattr(app.state, "cache_manager", None) or CacheManager(get_redis())
    cache_health = cache_manager.health_check()
    manager = getattr(app.state, "scraping_manager", None)

    return {
        "status": "healthy",
        "redis": "connected" if cache_health["redis_available"] else "disconnected",
        "cache": cache_health,
        "scraping": "available" if manager else "unavailable",
        "version": __version__,
        "features": {
            "caching": cache_health["redis_available"],
            "ai_extraction": bool(manager and manager.extraction.ai_extractor),
            "scraping": manager is not None
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
