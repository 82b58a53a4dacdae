import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from atorwala.core.config import settings
from atorwala.api import products, cart, checkout, orders

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=f"{settings.SHOP_NAME} - Storefront",
    description="Storefront API: catalog, cart and cash-on-delivery checkout",
    version="1.0.0",
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

# Cart, promo code and order form draft live in the session
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET_KEY,
    max_age=settings.SESSION_MAX_AGE_SECONDS
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(products.router)
app.include_router(cart.router)
app.include_router(checkout.router)
app.include_router(orders.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "shop_name": settings.SHOP_NAME,
        "backend_mode": settings.BACKEND_MODE
    }


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.SHOP_NAME} storefront with {settings.BACKEND_MODE} backend")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down storefront application")
    from atorwala.core.backend_client import backend_client
    await backend_client.close()
    if settings.BACKEND_MODE == "database":
        from atorwala.db.session import engine
        await engine.dispose()
