"""Typed records for orders: the canonical Order and the remote service payloads."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, List, Literal, Optional, cast

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from garment_order_board.status_semantics import OrderStatus

IconTag = Literal["check", "truck", "clock", "scissors", "box"]
PaymentStatus = Literal["paid", "pending", "late", "partial"]
ProductType = Literal["Infantil", "Adulto"]


def _coerce_utc_datetime(value: Any) -> Any:
    if isinstance(value, str):
        txt = value.strip()
        if len(txt) == 10:
            # date-only payloads ("2026-01-20") are midnight UTC
            return f"{txt}T00:00:00+00:00"
        return txt
    return value


def _ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _coerce_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value.strip()) > 10:
        return value.strip()[:10]
    return value


# -----------------------------
# Canonical records
# -----------------------------
class TimelineEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: str
    completed: bool = False
    completed_at: Optional[datetime] = None
    icon: Optional[IconTag] = None

    @field_validator("completed_at", mode="before")
    @classmethod
    def _parse_completed_at(cls, value: Any) -> Any:
        return _coerce_utc_datetime(value)

    @field_validator("completed_at")
    @classmethod
    def _completed_at_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _ensure_utc(value)


class Counterpart(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = ""


class Order(BaseModel):
    """
    An order as the dashboard sees it, with a canonical status.

    Instances are frozen: state only changes through validated transitions that
    build a new instance (`model_copy(update=...)`). `total_value` is derived
    and a `total_value` passed in is ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    display_id: str
    counterpart: Counterpart = Field(default_factory=Counterpart)
    product_name: str = ""
    product_type: ProductType = "Adulto"
    op: str = ""
    article: str = ""
    quantity: int = Field(ge=0)
    price_per_unit: float = Field(ge=0)
    delivery_deadline: date
    status: OrderStatus = OrderStatus.NEW
    payment_status: PaymentStatus = "pending"
    created_at: datetime
    timeline: List[TimelineEvent] = Field(default_factory=list)

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_created_at(cls, value: Any) -> Any:
        return _coerce_utc_datetime(value)

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: datetime) -> datetime:
        return cast(datetime, _ensure_utc(value))

    @field_validator("delivery_deadline", mode="before")
    @classmethod
    def _parse_deadline(cls, value: Any) -> Any:
        return _coerce_date(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_value(self) -> float:
        return round(self.quantity * self.price_per_unit, 2)


# -----------------------------
# Remote order service payloads
# -----------------------------
class ExternalParty(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = ""
    trade_name: str = Field(default="", alias="tradeName")
    avg_rating: Optional[float] = Field(default=None, alias="avgRating")


class ExternalOrder(BaseModel):
    """Order record as emitted by the order service (external status vocabulary)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    display_id: str = Field(alias="displayId")
    # kept as free text: unknown remote statuses must survive parsing
    status: str = ""
    brand_id: str = Field(default="", alias="brandId")
    supplier_id: Optional[str] = Field(default=None, alias="supplierId")
    brand: Optional[ExternalParty] = None
    supplier: Optional[ExternalParty] = None
    product_type: str = Field(default="", alias="productType")
    product_name: str = Field(default="", alias="productName")
    op: Optional[str] = None
    artigo: Optional[str] = None
    quantity: int = 0
    price_per_unit: float = Field(default=0.0, alias="pricePerUnit")
    total_value: Optional[float] = Field(default=None, alias="totalValue")
    delivery_deadline: date = Field(alias="deliveryDeadline")
    payment_status: str = Field(default="pending", alias="paymentStatus")
    created_at: datetime = Field(alias="createdAt")
    timeline: List[TimelineEvent] = Field(default_factory=list)

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_created_at(cls, value: Any) -> Any:
        return _coerce_utc_datetime(value)

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: datetime) -> datetime:
        return cast(datetime, _ensure_utc(value))

    @field_validator("delivery_deadline", mode="before")
    @classmethod
    def _parse_deadline(cls, value: Any) -> Any:
        return _coerce_date(value)


class PendingReview(BaseModel):
    """Post-delivery review waiting for the current user (detail out of scope)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    order_id: str = Field(default="", alias="orderId")
    counterpart_name: str = Field(default="", alias="partnerName")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_created_at(cls, value: Any) -> Any:
        return _coerce_utc_datetime(value)
