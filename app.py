"""
FastAPI backend for TenderMatch.

MODULAR STRUCTURE:
==================
1. core/config.py          - Environment-driven engine settings
2. core/dependencies.py    - Shared FastAPI dependencies (get_db, caller id, vector cache)
3. services/recommendation - Vectorizer, similarity index, ranker, trending, competition analysis
4. api/routes/recommendations.py - Recommendations, similar tenders, trending, preferences
5. api/routes/tenders.py   - Tender/proposal CRUD and free-text search
"""

from fastapi import FastAPI, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging

# Load environment variables from .env file before config is imported
from dotenv import load_dotenv
load_dotenv()

from database import create_tables
from core import config
from core.dependencies import get_db
from core.redis_client import is_redis_available

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(title="TenderMatch", description="Tender similarity and recommendation service")


# Startup event to initialize database tables
@app.on_event("startup")
async def startup_event():
    """Initialize database tables on application startup."""
    try:
        logger.info("Application startup: Ensuring database tables exist...")
        create_tables()
        logger.info("✓ Database tables verified/created successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database tables on startup: {e}", exc_info=True)


# Import and mount API routers
from api.routes import recommendations as recommendations_router
from api.routes import tenders as tenders_router
app.include_router(recommendations_router.router)
app.include_router(tenders_router.router)


# Health check endpoint
@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint."""
    db_status = "ok"
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database probe failed: {e}", exc_info=True)
        db_status = f"error: {str(e)}"

    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "database": db_status,
        "redis": "ok" if is_redis_available() else "unavailable",
        "vector_dimensions": config.VECTOR_DIMENSIONS,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=5001, reload=True)
