"""
Warehouse Inventory FastAPI Main Application
Entry point for the inventory REST API
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
import logging

from inventory_app.api.v1.api_router import api_router
from inventory_app.core.config import settings
from inventory_app.core.database import check_db_connection, init_db
from inventory_app.core.exceptions import InventoryAppException, ReferentialIntegrityError
from inventory_app.core.logging import setup_logging
from inventory_app.schemas.common import ErrorResponse

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## Warehouse Inventory API

    Inventory of items across warehouses, reconciled against physical counts.

    ### Key Features:
    - **Master Data**: Products, items, pack sizes, warehouses and lookups
    - **Count Reconciliation**: Snapshot, count, variance review, adjustment
    - **Transactions**: Inbound, outbound, adjustments and transfers
    - **Reports**: Customer, item, product, warehouse, negative and manual reports
    """,
    docs_url=settings.DOCS_URL,
    redoc_url=settings.REDOC_URL,
    openapi_url=settings.OPENAPI_URL,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add trusted host middleware for production
if not settings.DEBUG and settings.ALLOWED_HOSTS != ["*"]:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS
    )


@app.exception_handler(InventoryAppException)
async def inventory_exception_handler(request: Request, exc: InventoryAppException):
    """
    Map application exceptions to their HTTP status and error body
    """
    if exc.status_code >= 500:
        logger.error(f"{exc.error_type} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.error_type} on {request.url.path}: {exc.message}")

    error = ErrorResponse(error=exc.error_type, detail=exc.message)
    if isinstance(exc, ReferentialIntegrityError):
        error.blocking_references = exc.blocking_references
    return JSONResponse(status_code=exc.status_code, content=error.model_dump(exclude_none=True))


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "server_error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        }
    )


@app.get("/", tags=["System"])
async def root():
    return {
        "application": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs_url": settings.DOCS_URL,
    }


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers

    Returns system status and database connectivity
    """
    try:
        db_status = check_db_connection()

        return {
            "status": "healthy" if db_status else "degraded",
            "version": settings.APP_VERSION,
            "database": "connected" if db_status else "disconnected",
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")


# System information endpoint
@app.get("/info", tags=["System"])
async def system_info():
    """
    System information endpoint
    """
    return {
        "application": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "api_version": "v1",
        "docs_url": settings.DOCS_URL,
        "features": [
            "Master Data Management",
            "Physical Count Reconciliation",
            "Inventory Transactions and Transfers",
            "Inventory Reports",
            "Manual Report Builder",
        ],
    }


# Application startup event
@app.on_event("startup")
async def startup_event():
    """
    Verify the database and create missing tables
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if not check_db_connection():
        logger.error("Failed to connect to database on startup")
        return

    logger.info("Database connection established")
    if settings.AUTO_CREATE_TABLES:
        init_db()

    logger.info("Application startup completed successfully")


# Application shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application")


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "inventory_app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
