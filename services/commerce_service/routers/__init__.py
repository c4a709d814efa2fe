"""Commerce service routers package."""

from services.commerce_service.routers.admin_catalog import router as admin_catalog_router
from services.commerce_service.routers.admin_orders import router as admin_orders_router
from services.commerce_service.routers.brands import router as brands_router
from services.commerce_service.routers.categories import router as categories_router
from services.commerce_service.routers.orders import router as orders_router
from services.commerce_service.routers.products import router as products_router
from services.commerce_service.routers.promotions import router as promotions_router
from services.commerce_service.routers.reviews import router as reviews_router

__all__ = [
    "admin_catalog_router",
    "admin_orders_router",
    "brands_router",
    "categories_router",
    "orders_router",
    "products_router",
    "promotions_router",
    "reviews_router",
]
