"""
Order endpoints.

Single-order operations go to the external orders API, organization listings
and bulk/public creation to the backend API.
"""

import logging
import math
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request

from manos_gateway.core.exceptions import (
    InvalidCoordinateException,
    MissingFieldException,
    ValidationException,
)
from manos_gateway.core.rate_limit import RateLimits, limiter
from manos_gateway.core.security import optional_bearer, organization_headers, require_bearer
from manos_gateway.schemas.orders import (
    ORDER_LIST_FILTERS,
    BulkOrdersRequest,
    OrderStatus,
    OrderStatusUpdate,
    PublicExternalOrder,
    PublicOrderCreate,
)
from manos_gateway.schemas.validators import parse_float, validate_and_clean_coordinate
from manos_gateway.services.upstream import (
    UpstreamClient,
    forwarded_params,
    get_backend_client,
    get_external_client,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])

DEFAULT_PUBLIC_DESCRIPTION = "Public order"


def _blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def _checked_status(update: OrderStatusUpdate) -> str:
    if not update.status:
        raise MissingFieldException("status", message="Status is required")
    allowed = [s.value for s in OrderStatus]
    if update.status not in allowed:
        raise ValidationException(
            message="Invalid status",
            details={"status": update.status, "allowed": allowed},
        )
    return update.status


# =============================================================================
# Backend API: bulk, public creation, organization listings
# =============================================================================

@router.post("/bulk", summary="Create several orders at once")
@limiter.limit(RateLimits.CRUD_WRITE)
async def create_bulk_orders(
    request: Request,
    body: BulkOrdersRequest,
    authorization: str = Depends(require_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    if not body.orders:
        raise ValidationException(message="orders must be a non-empty array")

    logger.info(f"Creating {len(body.orders)} orders in bulk")
    return await backend.post(
        "/orders/bulk",
        json=body.model_dump(exclude_none=True),
        headers={"Authorization": authorization},
    )


@router.post("/public-create", summary="Create an order from the public order page")
@limiter.limit(RateLimits.PUBLIC_WRITE)
async def create_public_order(
    request: Request,
    body: PublicOrderCreate,
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    if not body.organization_uuid:
        raise MissingFieldException("organization_uuid", message="Organization UUID is required")
    if _blank(body.customer_name):
        raise MissingFieldException("customer_name", message="Customer name is required")
    if _blank(body.customer_phone):
        raise MissingFieldException("customer_phone", message="Customer phone is required")
    if _blank(body.delivery_address) or body.delivery_lat is None or body.delivery_lng is None:
        raise MissingFieldException(
            "delivery_address",
            "delivery_lat",
            "delivery_lng",
            message="Delivery location is required",
        )

    location = validate_and_clean_coordinate(body.delivery_lat, body.delivery_lng)
    if not location.is_valid:
        raise InvalidCoordinateException(
            "delivery location", location.error, body.delivery_lat, body.delivery_lng
        )

    payload = body.model_dump(exclude_none=True)
    payload["delivery_lat"] = location.cleaned_coordinate.lat
    payload["delivery_lng"] = location.cleaned_coordinate.lng

    return await backend.post("/orders/public-create", json=payload)


@router.get("/organization/{organization_uuid}", summary="List orders of an organization")
@limiter.limit(RateLimits.CRUD_READ)
async def list_organization_orders(
    request: Request,
    organization_uuid: str,
    authorization: Optional[str] = Depends(optional_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> dict:
    response = await backend.get(
        f"/orders/organization/{organization_uuid}",
        params=forwarded_params(request.query_params, ORDER_LIST_FILTERS),
        headers=organization_headers(organization_uuid, authorization),
    )
    response = response if isinstance(response, dict) else {"data": response}

    return {
        "success": True,
        "data": response.get("data") or [],
        "pagination": response.get("pagination"),
        "message": response.get("message") or "Orders retrieved successfully",
    }


@router.get("/organization/{organization_uuid}/pending", summary="Pending orders of an organization")
@limiter.limit(RateLimits.CRUD_READ)
async def list_pending_orders(
    request: Request,
    organization_uuid: str,
    authorization: str = Depends(require_bearer),
    backend: UpstreamClient = Depends(get_backend_client),
) -> Any:
    return await backend.get(
        f"/orders/organization/{organization_uuid}/pending",
        headers={"Authorization": authorization},
    )


# =============================================================================
# External orders API
# =============================================================================

@router.post("/public-external", summary="Create an order through the external orders API")
@limiter.limit(RateLimits.PUBLIC_WRITE)
async def create_external_order(
    request: Request,
    body: PublicExternalOrder,
    external: UpstreamClient = Depends(get_external_client),
) -> dict:
    if not body.organization_uuid:
        raise MissingFieldException("organization_uuid", message="Organization UUID is required")
    if _blank(body.delivery_address):
        raise MissingFieldException("delivery_address", message="Delivery address is required")
    if _blank(body.pickup_address):
        raise MissingFieldException("pickup_address", message="Pickup address is required")
    if _blank(body.details.customer_name):
        raise MissingFieldException("details.customer_name", message="Customer name is required")
    if _blank(body.details.phone):
        raise MissingFieldException("details.phone", message="Customer phone is required")

    total_amount = body.total_amount
    if isinstance(total_amount, str):
        total_amount = parse_float(total_amount)
    if total_amount is None or not math.isfinite(total_amount):
        total_amount = 0

    payload = {
        "delivery_address": body.delivery_address.strip(),
        "pickup_address": body.pickup_address.strip(),
        "total_amount": total_amount,
        "description": (body.description or "").strip() or DEFAULT_PUBLIC_DESCRIPTION,
        "details": {
            "customer_name": body.details.customer_name.strip(),
            "phone": body.details.phone.strip(),
            "special_instructions": (body.details.special_instructions or "").strip(),
        },
    }

    data = await external.post(f"/api/orders/public/{body.organization_uuid}", json=payload)
    return {"success": True, "data": data, "message": "Order created successfully"}


async def _update_status(
    external: UpstreamClient,
    order_uuid: str,
    update: OrderStatusUpdate,
    authorization: str,
) -> dict:
    status = _checked_status(update)
    logger.info(f"Setting order {order_uuid} status to {status}")
    data = await external.put(
        f"/api/orders/{order_uuid}",
        json={"status": status},
        headers={"Authorization": authorization},
    )
    return {"success": True, "message": "Order status updated successfully", "data": data}


@router.patch("/{order_uuid}/status", summary="Change an order's status")
@limiter.limit(RateLimits.CRUD_WRITE)
async def update_order_status(
    request: Request,
    order_uuid: str,
    body: OrderStatusUpdate,
    authorization: str = Depends(require_bearer),
    external: UpstreamClient = Depends(get_external_client),
) -> dict:
    return await _update_status(external, order_uuid, body, authorization)


@router.patch("/{order_uuid}", summary="Change an order's status")
@limiter.limit(RateLimits.CRUD_WRITE)
async def patch_order(
    request: Request,
    order_uuid: str,
    body: OrderStatusUpdate,
    authorization: str = Depends(require_bearer),
    external: UpstreamClient = Depends(get_external_client),
) -> dict:
    return await _update_status(external, order_uuid, body, authorization)


@router.get("/{order_uuid}", summary="Get one order")
@limiter.limit(RateLimits.CRUD_READ)
async def get_order(
    request: Request,
    order_uuid: str,
    authorization: str = Depends(require_bearer),
    external: UpstreamClient = Depends(get_external_client),
) -> Any:
    return await external.get(f"/api/orders/{order_uuid}", headers={"Authorization": authorization})


@router.put("/{order_uuid}", summary="Update one order")
@limiter.limit(RateLimits.CRUD_WRITE)
async def update_order(
    request: Request,
    order_uuid: str,
    body: dict[str, Any] = Body(...),
    authorization: str = Depends(require_bearer),
    external: UpstreamClient = Depends(get_external_client),
) -> Any:
    return await external.put(
        f"/api/orders/{order_uuid}",
        json=body,
        headers={"Authorization": authorization},
    )


@router.delete("/{order_uuid}", summary="Delete one order")
@limiter.limit(RateLimits.CRUD_WRITE)
async def delete_order(
    request: Request,
    order_uuid: str,
    authorization: str = Depends(require_bearer),
    external: UpstreamClient = Depends(get_external_client),
) -> Any:
    data = await external.delete(f"/api/orders/{order_uuid}", headers={"Authorization": authorization})
    return data if data is not None else {"success": True, "message": "Order deleted successfully"}
