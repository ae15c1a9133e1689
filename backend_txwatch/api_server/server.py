"""
FastAPI server — webhook intake and transfer lookup.

POST /webhook authenticates and ingests Alchemy notifications.
GET /transaction/{tx_hash} returns a stored transfer.
Settings, store and RPC client are built in the lifespan unless injected
through create_app (tests inject settings and a store directly).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend_txwatch.config import Settings, get_settings
from backend_txwatch.core.exceptions import PayloadValidationError, TransferLookupError
from backend_txwatch.pipeline import IngestionOrchestrator, NotificationStatus
from backend_txwatch.rpc import build_rpc_client
from backend_txwatch.storage import InMemoryTransferStore, TransferStore
from backend_txwatch.txwatch_logging import bind_request, get_logger
from backend_txwatch.webhook import SIGNATURE_HEADER

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------


class WebhookResponse(BaseModel):
    """POST /webhook success body."""

    message: str = Field("Webhook processed successfully")
    stored: int = Field(0, ge=0, description="Items that produced a transfer record")
    filtered: int = Field(0, ge=0, description="Items ignored by asset/recipient/delta filters")
    failed: int = Field(0, ge=0, description="Items that could not be processed (logged only)")


class TransferResponse(BaseModel):
    """GET /transaction/{tx_hash} response."""

    amount: float
    assetIdentifier: str = Field(..., description="Token mint, or SOL for native transfers")
    from_: str = Field(..., alias="from")
    to: str
    timestamp: str = Field(..., description="ISO-8601")
    transactionHash: str

    model_config = {"populate_by_name": True}


# -----------------------------------------------------------------------------
# Wiring
# -----------------------------------------------------------------------------


def build_orchestrator(settings: Settings, store: TransferStore) -> IngestionOrchestrator:
    return IngestionOrchestrator(
        store,
        signing_key=settings.webhook_signing_key,
        monitored_address=settings.monitored_address,
        monitored_asset=settings.monitored_asset,
        native_units_per_whole=settings.native_units_per_whole,
        logger=get_logger("backend_txwatch.pipeline.ingestion"),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load settings, build store/orchestrator if not injected, and construct the RPC client."""
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    app.state.settings = settings
    if getattr(app.state, "orchestrator", None) is None:
        store = getattr(app.state, "store", None) or InMemoryTransferStore()
        app.state.orchestrator = build_orchestrator(settings, store)
    app.state.rpc_client = build_rpc_client(settings)
    logger.info(
        "server_started",
        monitored_address=settings.monitored_address,
        monitored_asset=settings.monitored_asset,
        network=settings.solana_network,
    )
    yield
    logger.info("server_stopped")


def get_orchestrator(request: Request) -> IngestionOrchestrator:
    """Dependency: app-scoped orchestrator."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        logger.error("orchestrator_not_initialized")
        raise HTTPException(status_code=500, detail="Internal server error")
    return orchestrator


def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
    """Consistent JSON error response for HTTPException."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    store: TransferStore | None = None,
) -> FastAPI:
    """
    Build the ASGI app.

    When settings are given the orchestrator is wired immediately (store
    defaults to a fresh InMemoryTransferStore); otherwise the lifespan
    loads settings from the environment.
    """
    app = FastAPI(
        title="Backend TxWatch API",
        description="Alchemy webhook intake and transfer lookup for a monitored Solana address.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.orchestrator = None
    if settings is not None:
        app.state.orchestrator = build_orchestrator(settings, store or InMemoryTransferStore())

    @app.post("/webhook", response_model=WebhookResponse)
    async def handle_webhook(
        request: Request,
        orchestrator: IngestionOrchestrator = Depends(get_orchestrator),
    ) -> JSONResponse:
        """
        Authenticate and ingest one webhook notification.

        401 on missing/invalid signature, 400 on malformed payload, 200 otherwise.
        Per-item processing failures are logged, not returned as errors.
        """
        bind_request()
        raw_body = await request.body()
        signature = request.headers.get(SIGNATURE_HEADER)
        if not signature:
            logger.error("webhook_signature_missing")
            raise HTTPException(status_code=401, detail="Missing signature")

        try:
            result = orchestrator.ingest(raw_body, signature)
        except Exception as e:
            logger.exception("webhook_processing_failed", error=str(e))
            raise HTTPException(status_code=500, detail="Internal server error") from e

        if result.status is NotificationStatus.UNAUTHORIZED:
            raise HTTPException(status_code=401, detail="Invalid signature")
        if result.status is NotificationStatus.INVALID:
            error = result.error
            content: dict[str, Any] = (
                error.to_dict() if isinstance(error, PayloadValidationError) else {"error": "Invalid payload"}
            )
            return JSONResponse(status_code=400, content=content)

        summary = result.summary()
        logger.info("webhook_accepted", **summary)
        return JSONResponse(status_code=200, content=WebhookResponse(**summary).model_dump())

    @app.get("/transaction/{tx_hash}", response_model=TransferResponse, response_model_by_alias=True)
    def query_transaction(
        tx_hash: str,
        orchestrator: IngestionOrchestrator = Depends(get_orchestrator),
    ) -> TransferResponse:
        """Return the stored transfer for tx_hash; 404 when unknown."""
        try:
            record = orchestrator.query_by_hash(tx_hash)
        except TransferLookupError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        if record is None:
            raise HTTPException(status_code=404, detail="Transaction not found")
        return TransferResponse.model_validate(record.to_dict())

    @app.get("/health")
    def health() -> dict[str, str]:
        """Liveness check: API is up."""
        return {"status": "healthy"}

    app.add_exception_handler(HTTPException, http_exception_handler)
    return app
