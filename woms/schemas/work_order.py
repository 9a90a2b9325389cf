"""Work order schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class WorkOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    job_no: str
    status: str
    work_order_type: str
    date: datetime
    supplier_name: str
    property_name: str
    property_address: str | None = None
    property_phone: str | None = None
    description: str
    po_number: str | None = None
    authorized_by: str | None = None
    authorized_email: str | None = None
    is_urgent: bool
    created_from_quote_id: int | None = None
    quote_number: str | None = None
    created_at: datetime


class WorkOrderListResponse(BaseModel):
    items: list[WorkOrderResponse]
    total: int
    page: int
    limit: int


class ConversionResponse(BaseModel):
    """POST /v1/quotes/{id}/convert response."""

    quote_id: int
    quote_status: str
    work_order: WorkOrderResponse


class WebhookWorkOrderRequest(BaseModel):
    """POST /v1/webhooks/work-orders - payload from the trusted upstream system."""

    tenant_code: str = Field(min_length=1)
    job_no: str = Field(min_length=1, max_length=50)
    supplier_name: str = Field(min_length=1)
    property_name: str = Field(min_length=1)
    property_address: str | None = None
    property_phone: str | None = None
    description: str = Field(min_length=1)
    po_number: str | None = None
    authorized_by: str | None = None
    authorized_email: str | None = None
    is_urgent: bool = False
    date: datetime | None = None
