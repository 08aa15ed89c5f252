from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings
from core.exceptions import register_exception_handlers
from core.logging_config import configure_logging
from app.startup import run_startup_checks

# ========== Orders & Kitchen ==========
from modules.orders.routes.order_routes import router as order_router
from modules.orders.routes.kitchen_routes import router as kitchen_router

# ========== Table Management ==========
from modules.tables.routes.table_routes import router as table_router

# ========== Settings & Configuration ==========
from modules.settings.routes.workflow_settings_routes import router as workflow_settings_router

# ========== Menu Management ==========
from modules.menu.routes.menu_routes import router as menu_router

settings = get_settings()

app = FastAPI(
    title="Restaurant POS - Order Workflow API",
    description="""
    Order workflow backend for restaurant point-of-sale terminals.

    ## Features

    * **Order Lifecycle** - Configurable status flows with payment gating
    * **Payments** - Full, partial and split payments with settlement tracking
    * **Kitchen** - Item preparation tracking, kitchen queue and KOT printing
    * **Table Management** - Occupancy, reservations, merge, transfer and swap
    * **Workflow Settings** - Operating mode presets and printer configuration

    ## Authentication

    Requests carry the acting staff member in the `X-Actor-Id`,
    `X-Actor-Name` and `X-Actor-Role` headers set by the terminal gateway.
    """,
    version="1.0.0",
)

# Register exception handlers for consistent error responses
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ========== Include all routers ==========

app.include_router(order_router)
app.include_router(kitchen_router)
app.include_router(table_router)
app.include_router(workflow_settings_router)
app.include_router(menu_router)


@app.on_event("startup")
async def startup_event():
    """Initialize services on application startup"""
    configure_logging()
    run_startup_checks()


@app.get("/")
def read_root():
    return {"message": "POS order workflow backend is running"}


@app.get("/health")
def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.is_development)
