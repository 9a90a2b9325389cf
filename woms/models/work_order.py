"""Work order model (subset relevant to quote conversion and scoping)."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from woms.database import Base
from woms.models.tenant import _utcnow


class WorkOrder(Base):
    """Work orders - job_no unique within tenant."""

    __tablename__ = "work_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    job_no: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    work_order_type: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")  # manual|from_quote|email
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    property_name: Mapped[str] = mapped_column(String(255), nullable=False)
    property_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    property_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    po_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    authorized_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    authorized_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_urgent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_from_quote_id: Mapped[int | None] = mapped_column(Integer, nullable=True, unique=True)
    quote_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (UniqueConstraint("tenant_id", "job_no", name="uq_work_orders_tenant_job_no"),)
