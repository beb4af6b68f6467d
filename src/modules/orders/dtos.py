"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderDTO``: checkout hand-off with the pricing snapshot.
- ``CancelOrderDTO``: cancellation request with a fixed reason.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import CancelReason


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation.

    ``shipping_price`` is the base delivery charge.  The fast-delivery
    surcharge is added by the service, never by the client.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: int
    items_price: Decimal = Field(ge=0, decimal_places=2)
    shipping_price: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    coupon_discount_amount: Decimal = Field(
        default=Decimal("0.00"), ge=0, decimal_places=2
    )
    payment_method: Literal["COD", "Online"]
    delivery_speed: Literal["normal", "fast"] = "normal"
    paid: bool = False

    shop_name: str = ""
    shop_latitude: Optional[Decimal] = Field(default=None, ge=-90, le=90)
    shop_longitude: Optional[Decimal] = Field(default=None, ge=-180, le=180)
    shipping_name: str = ""
    shipping_phone: str = ""
    shipping_address: str = ""
    shipping_city: str = ""
    shipping_latitude: Optional[Decimal] = Field(default=None, ge=-90, le=90)
    shipping_longitude: Optional[Decimal] = Field(default=None, ge=-180, le=180)

    is_returnable: bool = True
    idempotency_key: Optional[str] = None

    @model_validator(mode="after")
    def cod_is_never_prepaid(self):
        if self.payment_method == "COD" and self.paid:
            raise ValueError("COD orders are paid on delivery, not at checkout.")
        return self


class CancelOrderDTO(BaseModel):
    """Immutable DTO for a cancellation request."""

    model_config = ConfigDict(frozen=True)

    reason: str
    note: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def reason_must_be_known(cls, v: str) -> str:
        if v not in CancelReason.values:
            raise ValueError(
                f"Reason must be one of: {', '.join(CancelReason.values)}."
            )
        return v
