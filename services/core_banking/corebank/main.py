from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from corebank.config import settings
from corebank.database import init_db
from corebank.routes import core_banking, health, metrics

# Import observability components
from corebank.obs.logging import setup_logging, get_logger
from corebank.obs.middleware import ObservabilityMiddleware
from corebank.obs.errors import register_error_handlers

# Setup observability
setup_logging()

logger = get_logger(__name__)

app = FastAPI(title="Core Banking Adapter API")

# Register error handlers
register_error_handlers(app)

# CORS middleware configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials="*" not in settings.ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Observability middleware (must be early in the stack)
app.add_middleware(ObservabilityMiddleware)

# Include routers
app.include_router(health.router)  # Health checks first
app.include_router(metrics.router)
app.include_router(core_banking.router)


@app.on_event("startup")
async def startup_event():
    init_db()
    logger.info(f"Core banking adapter started (environment={settings.ENVIRONMENT})")
