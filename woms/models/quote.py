"""Quote, quote message and quote-number sequence models."""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from woms.database import Base
from woms.models.tenant import _utcnow


class QuoteStatus(str, enum.Enum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    INFORMATION_REQUESTED = "Information Requested"
    QUOTED = "Quoted"
    UNDER_DISCUSSION = "Under Discussion"
    APPROVED = "Approved"
    DECLINED = "Declined"
    EXPIRED = "Expired"
    CONVERTED = "Converted"


def _enum_values(e):
    return [m.value for m in e]


class Quote(Base):
    """Quote requests - status moves only through the lifecycle table."""

    __tablename__ = "quotes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quote_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    status: Mapped[QuoteStatus] = mapped_column(
        Enum(QuoteStatus, native_enum=False, length=32, values_callable=_enum_values),
        nullable=False,
        default=QuoteStatus.DRAFT,
    )
    property_name: Mapped[str] = mapped_column(String(255), nullable=False)
    property_address: Mapped[str] = mapped_column(Text, nullable=False)
    property_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    work_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    scope_of_work: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_person: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_urgent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    required_by_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    estimated_cost: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    estimated_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    quote_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    itemized_breakdown: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    quote_valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    quoted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    declined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    converted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    converted_to_work_order_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("work_orders.id"), nullable=True
    )

    created_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class QuoteMessage(Base):
    """Comments and lifecycle audit trail on a quote - append-only."""

    __tablename__ = "quote_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(Integer, ForeignKey("quotes.id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    message_type: Mapped[str] = mapped_column(String(32), nullable=False)  # comment|submitted|quoted|...
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class QuoteNumberSequence(Base):
    """Last issued quote sequence per calendar year. Only ever incremented."""

    __tablename__ = "quote_number_sequences"

    year: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
