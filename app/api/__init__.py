"""
API routes package
"""
from fastapi import APIRouter
from app.api.routes import (
    auth,
    users,
    countries,
    devices,
    groups,
    comparison,
    reports,
    weather,
    chats,
    messages,
    files,
)

api_router = APIRouter()

# Include all route modules
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(countries.router)
api_router.include_router(devices.router)
api_router.include_router(groups.router)
api_router.include_router(comparison.router)
api_router.include_router(reports.router)
api_router.include_router(weather.router)
api_router.include_router(chats.router)
api_router.include_router(messages.router)
api_router.include_router(files.router)
