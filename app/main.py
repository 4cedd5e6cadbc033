"""
AgriTech BFF - Agricultural IoT backend-for-frontend
Main FastAPI Application
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
import logging

from app.core.config import settings
from app.api import api_router
from app.models import init_db
from app.models.database import async_session_maker
from app.services import (
    storage_service, ecowitt_service, weather_service, pdf_reader, ai_service, email_service
)
from app.services.seed_service import seed_reference_data, create_admin

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def seed_database():
    """Create roles, countries and the configured admin if missing"""
    try:
        async with async_session_maker() as session:
            await seed_reference_data(session)
            if settings.DEFAULT_ADMIN_EMAIL and settings.DEFAULT_ADMIN_PASSWORD:
                await create_admin(session, settings.DEFAULT_ADMIN_EMAIL, settings.DEFAULT_ADMIN_PASSWORD)
            await session.commit()
    except Exception as e:
        logger.error(f"Error seeding database: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting AgriTech BFF...")
    await init_db()
    logger.info("Database initialized")
    await seed_database()
    storage_service.configure()
    yield
    # Shutdown
    logger.info("Shutting down AgriTech BFF...")
    await ecowitt_service.close()
    await weather_service.close()
    await pdf_reader.close()
    await ai_service.close()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## AgriTech BFF

    Backend for the agricultural monitoring frontend. Wraps the EcoWitt
    weather-station cloud API and adds users, device registry, reports and an
    AI assistant.

    ### Features
    - Registration of EcoWitt stations and soil sensors per user
    - Realtime and historical readings, device groups and comparisons
    - PDF/JSON weather reports with OpenWeather data, stored in Cloudinary
    - Chats with an assistant that can read attached PDF reports

    ### Security
    - JWT bearer authentication
    - Email verification and password reset links
    - Admin role for user and country management
    """,
    docs_url=f"{settings.API_PREFIX}/docs" if settings.DEBUG else None,
    redoc_url=f"{settings.API_PREFIX}/redoc" if settings.DEBUG else None,
    openapi_url=f"{settings.API_PREFIX}/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal error occurred"}
    )


# Include API routes
app.include_router(api_router, prefix=settings.API_PREFIX)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint with the state of external integrations"""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "integrations": {
            "ecowitt": settings.ECOWITT_API_BASE,
            "openweather": bool(settings.OPENWEATHER_API_KEY),
            "cloudinary": storage_service.configured,
            "openai": bool(settings.OPENAI_API_KEY),
            "email": email_service.is_configured,
        }
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_PREFIX}/docs" if settings.DEBUG else "Disabled in production",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
