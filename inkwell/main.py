# inkwell/main.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from inkwell.config import settings
from inkwell.middleware.cors import setup_cors
from inkwell.database.connection import DatabaseConnection, get_db_connection, release_db_connection
from inkwell.routes.send import router as send_router
from inkwell.routes.webhooks import router as webhooks_router
from inkwell.routes.newsletter import router as newsletter_router
from inkwell.routes.links import router as links_router
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Inkwell API...")
    try:
        await DatabaseConnection.get_pool()
        logger.info("Database connection pool initialized")
    except Exception as e:
        if settings.environment == "development":
            logger.warning(f"Database connection failed (development mode): {e}")
        else:
            logger.error(f"Failed to initialize database: {e}")
            raise

    yield

    logger.info("Shutting down Inkwell API...")
    try:
        await DatabaseConnection.close_pool()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning(f"Error closing database connections: {e}")

app = FastAPI(
    title="Inkwell API",
    description="Newsletter campaign send pipeline",
    version="1.0.0",
    lifespan=lifespan
)

setup_cors(app)

app.include_router(send_router)
app.include_router(webhooks_router)
app.include_router(newsletter_router)
app.include_router(links_router)

@app.get("/health")
async def health_check():
    connection = None
    try:
        connection = await get_db_connection()
        await connection.fetchval("SELECT 1")
        db_healthy = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_healthy = False
    finally:
        if connection:
            await release_db_connection(connection)

    return {
        "status": "healthy" if db_healthy else "degraded",
        "environment": settings.environment,
        "email_provider": settings.email_provider,
        "database_healthy": db_healthy
    }

# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )
