"""
Main FastAPI application for the Secure Transaction API.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from secure_tx.config import settings
from secure_tx.routes import health, transactions
from secure_tx.routes.error_handlers import register_error_handlers
from secure_tx.middleware.logging import RequestLoggingMiddleware
from secure_tx.schemas.secure_record import ServiceInfo
from secure_tx.services.envelope_cipher import create_envelope_cipher
from secure_tx.services.errors import InvalidKeyLength
from secure_tx.services.record_store import InMemoryRecordStore
from secure_tx.utils.logger import get_logger

logger = get_logger("main")

SERVICE_NAME = "Secure Transaction API"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {SERVICE_NAME}")
    logger.info(f"Environment: {'DEBUG' if settings.DEBUG else 'PRODUCTION'}")

    # Load master key (required - app fails without a valid 32-byte key)
    try:
        app.state.master_key = settings.master_key
    except InvalidKeyLength as e:
        logger.critical("MASTER_KEY_HEX must be 32 bytes (64 hex chars)")
        raise RuntimeError(f"Cannot start application: {e}") from e

    app.state.envelope_cipher = create_envelope_cipher()
    app.state.record_store = InMemoryRecordStore()
    logger.info(
        "Envelope encryption initialized",
        key_version=settings.MASTER_KEY_VERSION,
        bind_record_aad=settings.BIND_RECORD_AAD,
    )

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")
    app.state.envelope_cipher = None
    app.state.master_key = None
    app.state.record_store.clear()


app = FastAPI(
    title=SERVICE_NAME,
    description="Envelope-encrypted transaction records (AES-256-GCM)",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.cors_origins_list != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

register_error_handlers(app)

app.include_router(health.router, tags=["Health"])
app.include_router(
    transactions.router,
    prefix="/tx",
    tags=["Transactions"]
)


@app.get("/", response_model=ServiceInfo)
async def root() -> ServiceInfo:
    """Service identification."""
    return ServiceInfo(status="ok", service=SERVICE_NAME)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "secure_tx.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
