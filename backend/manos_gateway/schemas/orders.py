"""
Schemas for the order proxy endpoints.
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    """Order lifecycle states accepted by the orders API."""

    REQUESTED = "REQUESTED"
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_ROUTE = "IN_ROUTE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderStatusUpdate(BaseModel):
    # Checked against OrderStatus by the endpoint so the error can list the allowed values
    status: Optional[str] = None


class BulkOrdersRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    orders: Optional[list[dict[str, Any]]] = None


class PublicOrderCreate(BaseModel):
    """Order placed from an organization's public order page."""

    model_config = ConfigDict(extra="allow")

    organization_uuid: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_lat: Optional[Union[float, str]] = None
    delivery_lng: Optional[Union[float, str]] = None


class PublicOrderDetails(BaseModel):
    model_config = ConfigDict(extra="allow")

    customer_name: Optional[str] = None
    phone: Optional[str] = None
    special_instructions: Optional[str] = None


class PublicExternalOrder(BaseModel):
    """Order placed through the external orders API."""

    organization_uuid: Optional[str] = None
    delivery_address: Optional[str] = None
    pickup_address: Optional[str] = None
    total_amount: Optional[Union[float, str]] = None
    description: Optional[str] = None
    details: PublicOrderDetails = Field(default_factory=PublicOrderDetails)


# Query parameters forwarded by ``GET /api/orders/organization/{uuid}``.
ORDER_LIST_FILTERS = (
    "status",
    "search",
    "created_after",
    "created_before",
    "min_amount",
    "max_amount",
    "pickup_lat",
    "pickup_lon",
    "radius",
    "page",
    "limit",
    "sort_by",
    "sort_order",
)
