"""API route modules."""

from routes.activity_routes import router as activity_router
from routes.health_routes import router as health_router
from routes.streak_routes import router as streak_router

__all__ = [
    "activity_router",
    "health_router",
    "streak_router",
]
