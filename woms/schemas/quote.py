"""Quote request/response schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from woms.models import QuoteStatus

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CreateQuoteRequest(BaseModel):
    """POST /v1/quotes request. Any tenant_id sent by the caller is ignored."""

    property_name: str = Field(min_length=1, max_length=255)
    property_address: str = Field(min_length=1)
    property_phone: str | None = None
    title: str = Field(min_length=1, max_length=255)
    work_type: str | None = None
    description: str = Field(min_length=20)
    scope_of_work: str | None = None
    contact_person: str = Field(min_length=1, max_length=255)
    contact_email: str = Field(pattern=EMAIL_PATTERN)
    contact_phone: str | None = None
    is_urgent: bool = False
    required_by_date: datetime | None = None
    tenant_id: int | None = None


class UpdateQuoteRequest(BaseModel):
    """PUT /v1/quotes/{id} - partial update of a Draft."""

    property_name: str | None = Field(default=None, min_length=1, max_length=255)
    property_address: str | None = None
    property_phone: str | None = None
    title: str | None = Field(default=None, min_length=1, max_length=255)
    work_type: str | None = None
    description: str | None = Field(default=None, min_length=20)
    scope_of_work: str | None = None
    contact_person: str | None = Field(default=None, max_length=255)
    contact_email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    contact_phone: str | None = None
    is_urgent: bool | None = None
    required_by_date: datetime | None = None


class MessageRequest(BaseModel):
    message: str = Field(min_length=1)


class DeclineRequest(BaseModel):
    reason: str | None = None


class ProvideQuoteRequest(BaseModel):
    """POST /v1/quotes/{id}/provide-quote - also used to renew an Expired quote."""

    estimated_cost: Decimal = Field(gt=0)
    estimated_hours: Decimal = Field(gt=0)
    quote_notes: str | None = None
    quote_valid_until: datetime | None = None
    itemized_breakdown: dict[str, Any] | None = None


class ConvertQuoteRequest(BaseModel):
    supplier_name: str | None = None
    schedule_date: datetime | None = None
    po_number: str | None = None


class QuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quote_number: str
    tenant_id: int
    status: QuoteStatus
    property_name: str
    property_address: str
    property_phone: str | None = None
    title: str
    work_type: str | None = None
    description: str
    scope_of_work: str | None = None
    contact_person: str
    contact_email: str
    contact_phone: str | None = None
    is_urgent: bool
    required_by_date: datetime | None = None
    estimated_cost: Decimal | None = None
    estimated_hours: Decimal | None = None
    quote_notes: str | None = None
    itemized_breakdown: dict[str, Any] | None = None
    quote_valid_until: datetime | None = None
    submitted_at: datetime | None = None
    quoted_at: datetime | None = None
    approved_at: datetime | None = None
    declined_at: datetime | None = None
    converted_at: datetime | None = None
    converted_to_work_order_id: int | None = None
    created_by: int
    created_at: datetime
    updated_at: datetime


class QuoteListResponse(BaseModel):
    items: list[QuoteResponse]
    total: int
    page: int
    limit: int


class QuoteMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quote_id: int
    user_id: int
    message_type: str
    message: str
    created_at: datetime
