"""FastAPI router for Courier API endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials

from courier import __version__
from courier.logging import bind_context
from courier.service import CourierService

from .auth import resolve_owner_id, security
from .helpers import webhook_to_response
from .schemas import (
    DeleteWebhookResponse,
    HealthResponse,
    RegisterWebhookRequest,
    TestDeliveryResult,
    TestWebhookResponse,
    UpdateWebhookRequest,
    WebhookResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Service instance (set by app lifespan)
_service: CourierService | None = None

# Fields that may be explicitly cleared with null in an update
_NULLABLE_UPDATE_FIELDS = {"description"}


def set_service(service: CourierService | None) -> None:
    """Set the global service instance."""
    global _service
    _service = service


async def get_service() -> CourierService:
    """Dependency to get the CourierService instance."""
    if _service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return _service


ServiceDep = Annotated[CourierService, Depends(get_service)]


async def get_owner_id(
    service: ServiceDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    user_id: Annotated[str | None, Query(description="Owner ID when auth is disabled")] = None,
) -> str:
    """Dependency resolving the owner the request acts for."""
    owner_id = resolve_owner_id(service.settings, credentials, user_id)
    bind_context(owner_id=owner_id)
    return owner_id


OwnerDep = Annotated[str, Depends(get_owner_id)]


@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check() -> HealthResponse:
    """Check service health.

    Reports whether the service and its subscription store are initialized.
    """
    storage_connected = _service is not None
    return HealthResponse(
        status="healthy" if storage_connected else "unhealthy",
        version=__version__,
        storage_connected=storage_connected,
    )


@router.post(
    "/webhooks",
    response_model=WebhookResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["webhooks"],
)
async def register_webhook(
    request: RegisterWebhookRequest,
    service: ServiceDep,
    owner_id: OwnerDep,
) -> WebhookResponse:
    """Register a webhook for the caller.

    The URL must be https and must not point at a local or private address.
    The secret is stored for signing and never returned.
    """
    view = await service.manager.register(
        owner_id,
        url=request.url,
        secret=request.secret,
        events=list(request.events),
        description=request.description,
    )
    return webhook_to_response(view)


@router.get("/webhooks", response_model=list[WebhookResponse], tags=["webhooks"])
async def list_webhooks(service: ServiceDep, owner_id: OwnerDep) -> list[WebhookResponse]:
    """List the caller's webhooks with delivery statistics."""
    views = await service.manager.list(owner_id)
    return [webhook_to_response(v) for v in views]


@router.get("/webhooks/{webhook_id}", response_model=WebhookResponse, tags=["webhooks"])
async def get_webhook(webhook_id: str, service: ServiceDep, owner_id: OwnerDep) -> WebhookResponse:
    """Get one of the caller's webhooks."""
    view = await service.manager.get(webhook_id, owner_id)
    return webhook_to_response(view)


@router.patch("/webhooks/{webhook_id}", response_model=WebhookResponse, tags=["webhooks"])
async def update_webhook(
    webhook_id: str,
    request: UpdateWebhookRequest,
    service: ServiceDep,
    owner_id: OwnerDep,
) -> WebhookResponse:
    """Update one of the caller's webhooks.

    Setting active=true re-enables a webhook that was disabled for
    sustained failures.
    """
    changes = {
        field: value
        for field, value in request.model_dump(exclude_unset=True).items()
        if value is not None or field in _NULLABLE_UPDATE_FIELDS
    }
    view = await service.manager.update(webhook_id, owner_id, **changes)
    return webhook_to_response(view)


@router.delete(
    "/webhooks/{webhook_id}",
    response_model=DeleteWebhookResponse,
    tags=["webhooks"],
)
async def delete_webhook(
    webhook_id: str, service: ServiceDep, owner_id: OwnerDep
) -> DeleteWebhookResponse:
    """Permanently delete one of the caller's webhooks."""
    await service.manager.delete(webhook_id, owner_id)
    logger.info("Deleted webhook %s for owner %s", webhook_id, owner_id)
    return DeleteWebhookResponse(deleted=True, webhook_id=webhook_id)


@router.post(
    "/webhooks/{webhook_id}/test",
    response_model=TestWebhookResponse,
    tags=["webhooks"],
)
async def test_webhook(
    webhook_id: str, service: ServiceDep, owner_id: OwnerDep
) -> TestWebhookResponse:
    """Send a single test delivery to one of the caller's webhooks.

    Test deliveries are not retried and don't count toward statistics.
    """
    result = await service.manager.test(webhook_id, owner_id)
    return TestWebhookResponse(
        webhook_id=webhook_id,
        test_result=TestDeliveryResult(
            success=result.success,
            status_code=result.status_code,
            error=result.error,
        ),
    )
