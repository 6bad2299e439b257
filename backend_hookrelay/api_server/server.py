"""
FastAPI server: inbound delivery endpoint and state inspection.

POST /api/events receives one pushed batch. The status code is the only
signal the sender sees:
    200  processed (handler failures and anomalies are internal)
    400  malformed batch (StructuralError) or non-JSON body; do not retry as-is
    401  bad or missing bearer token (when HOOK_AUTH_TOKEN is set)
    500  storage or unexpected failure; the sender retries the whole batch
    503  processing deadline exceeded; the sender retries
"""

from __future__ import annotations

import hmac
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from backend_hookrelay import __version__
from backend_hookrelay.config.settings import Settings, get_settings
from backend_hookrelay.core.exceptions import DispatchTimeout, StorageError, StructuralError
from backend_hookrelay.dispatch.factory import RelayRuntime, build_runtime
from backend_hookrelay.relay_logging import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------

class BatchAckResponse(BaseModel):
    """POST /api/events response."""

    status: str = Field("ok", description="Always 'ok' on a 200 response")
    subscription_id: str = Field(..., description="Subscription the batch was delivered for")
    handlers: int = Field(..., ge=0, description="Number of handlers the batch was routed to")
    anomaly: bool = Field(False, description="True if reconciliation flagged an ordering anomaly")


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = __version__


class BlockIdentifierModel(BaseModel):
    index: int
    hash: str


class SubscriptionStateResponse(BaseModel):
    """GET /api/subscriptions/{subscription_id}/state response."""

    subscription_id: str
    last_confirmed_height: int
    last_confirmed_hash: str | None = None
    history: list[BlockIdentifierModel] = Field(default_factory=list)
    updated_at: int | None = None


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = request.app.state.settings = get_settings()
    return settings


def get_runtime(request: Request, settings: Settings = Depends(get_app_settings)) -> RelayRuntime:
    """Dependency: the app-scoped runtime, built from settings on first use."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        runtime = request.app.state.runtime = build_runtime(settings)
    return runtime


def _check_auth(request: Request, settings: Settings) -> None:
    expected = settings.hook_auth_token
    if not expected:
        return
    supplied = (request.headers.get("authorization") or "").strip()
    if supplied.lower().startswith("bearer "):
        supplied = supplied[7:].strip()
    if not hmac.compare_digest(supplied.encode(), expected.encode()):
        logger.warning("delivery_unauthorized", client=request.client.host if request.client else None)
        raise HTTPException(status_code=401, detail="invalid authorization")


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse()


@router.post("/api/events", response_model=BatchAckResponse)
async def receive_batch(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    runtime: RelayRuntime = Depends(get_runtime),
) -> BatchAckResponse:
    """Accept one pushed apply/rollback batch and dispatch it."""
    _check_auth(request, settings)
    try:
        payload: Any = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="body must be valid JSON")
    try:
        outcome = await runtime.engine.process(payload)
    except StructuralError as e:
        logger.warning("delivery_rejected", error=str(e), field=e.field)
        raise HTTPException(status_code=400, detail=str(e))
    except DispatchTimeout as e:
        raise HTTPException(status_code=503, detail=str(e))
    except StorageError as e:
        logger.error("delivery_storage_failed", error=str(e))
        raise HTTPException(status_code=500, detail="subscription state unavailable")
    except Exception as e:
        logger.exception("delivery_failed", error=str(e))
        raise HTTPException(status_code=500, detail="internal error")
    return BatchAckResponse(
        subscription_id=outcome.subscription_id,
        handlers=len(outcome.handler_results),
        anomaly=outcome.has_anomaly,
    )


@router.get(
    "/api/subscriptions/{subscription_id}/state",
    response_model=SubscriptionStateResponse,
)
def subscription_state(
    subscription_id: str,
    runtime: RelayRuntime = Depends(get_runtime),
) -> SubscriptionStateResponse:
    try:
        state = runtime.store.get(subscription_id)
    except StorageError as e:
        logger.error("state_lookup_failed", subscription_id=subscription_id, error=str(e))
        raise HTTPException(status_code=500, detail="subscription state unavailable")
    if state is None:
        raise HTTPException(status_code=404, detail="subscription not synced")
    return SubscriptionStateResponse(**state.to_dict())


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------

def create_app(
    *,
    settings: Settings | None = None,
    runtime: RelayRuntime | None = None,
) -> FastAPI:
    """Build the ASGI app. settings / runtime default to env-derived ones on first request."""
    app = FastAPI(
        title="Backend HookRelay API",
        description="Reorg-aware ingestion of chain-indexer apply/rollback deliveries.",
        version=__version__,
    )
    app.state.settings = settings
    app.state.runtime = runtime
    app.include_router(router)
    return app


app = create_app()
