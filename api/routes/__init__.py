"""API route modules."""

from routes.entries_routes import router as entries_router
from routes.exports_routes import router as exports_router
from routes.geojson_routes import router as geojson_router
from routes.health_routes import router as health_router
from routes.inventories_routes import router as inventories_router
from routes.me_routes import router as me_router
from routes.reference_routes import routers as reference_routers
from routes.species_routes import router as species_router

__all__ = [
    "entries_router",
    "exports_router",
    "geojson_router",
    "health_router",
    "inventories_router",
    "me_router",
    "reference_routers",
    "species_router",
]
