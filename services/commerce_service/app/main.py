"""FastAPI application for the Commerce Service."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.commerce_service.routers import (
    admin_catalog_router,
    admin_orders_router,
    brands_router,
    categories_router,
    orders_router,
    products_router,
    promotions_router,
    reviews_router,
)
from slowapi.errors import RateLimitExceeded


def create_app() -> FastAPI:
    """Create and configure the Commerce Service FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="Commerce Service",
        version="0.1.0",
        description="Product catalog, category hierarchy, orders and fulfillment.",
    )

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Add global exception handlers for consistent error responses
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "commerce"}

    # Public catalog routes
    app.include_router(categories_router)
    app.include_router(brands_router)
    app.include_router(products_router)
    app.include_router(promotions_router)

    # Authenticated customer routes
    app.include_router(orders_router)
    app.include_router(reviews_router)

    # Admin routes (catalog maintenance, order management)
    app.include_router(admin_catalog_router, prefix="/admin")
    app.include_router(admin_orders_router, prefix="/admin")

    return app


app = create_app()
