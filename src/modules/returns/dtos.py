"""Return workflow DTOs.

- ``RequestReturnDTO``: customer request with refund destination.
- ``AdvanceReturnDTO``: rider pickup progress.
- ``MarkRefundedDTO`` / ``RejectReturnDTO``: admin decisions.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.returns.constants import RIDER_STEPS, RefundMode


class RequestReturnDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str = Field(min_length=1)
    bank_account_name: str = ""
    bank_account_number: str = ""
    ifsc: str = ""
    upi_id: str = ""
    phone: str = ""

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please enter a reason for the return.")
        return v.strip()

    @field_validator("ifsc")
    @classmethod
    def ifsc_upper(cls, v: str) -> str:
        return v.strip().upper()


class AdvanceReturnDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str

    @field_validator("status")
    @classmethod
    def status_is_rider_step(cls, v: str) -> str:
        if v not in RIDER_STEPS:
            raise ValueError("Riders may only report picked_up or delivered_to_shop.")
        return v


class MarkRefundedDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(gt=0, decimal_places=2)
    mode: str = RefundMode.UPI.value
    reference: str = ""
    note: str = ""

    @field_validator("mode")
    @classmethod
    def mode_must_be_known(cls, v: str) -> str:
        if v not in RefundMode.values:
            raise ValueError("Unknown refund mode.")
        return v


class RejectReturnDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    note: str = ""
