"""Pydantic schemas for order history and the order status display mapping."""
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrderStatus(StrEnum):
    """Closed set of order statuses the storefront knows how to display."""

    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    SIGE_REGISTERED = "sige_registered"
    CONFIRMED = "confirmed"
    AWAITING_PAYMENT = "awaiting_payment"
    PENDING = "pending"
    CANCELLED = "cancelled"


StatusCategory = Literal["trackable", "in_progress", "cancelled"]


@dataclass(frozen=True)
class StatusDisplay:
    """How an order status is presented and which actions it enables."""

    status: OrderStatus
    label: str
    category: StatusCategory

    @property
    def is_trackable(self) -> bool:
        """Shipment tracking and review submission are enabled."""
        return self.category == "trackable"


STATUS_DISPLAY: dict[OrderStatus, StatusDisplay] = {
    OrderStatus.PAID: StatusDisplay(OrderStatus.PAID, "Pago", "trackable"),
    OrderStatus.SHIPPED: StatusDisplay(OrderStatus.SHIPPED, "Enviado", "trackable"),
    OrderStatus.DELIVERED: StatusDisplay(OrderStatus.DELIVERED, "Entregue", "trackable"),
    OrderStatus.SIGE_REGISTERED: StatusDisplay(
        OrderStatus.SIGE_REGISTERED, "Registrado", "trackable",
    ),
    OrderStatus.CONFIRMED: StatusDisplay(OrderStatus.CONFIRMED, "Registrado", "trackable"),
    OrderStatus.AWAITING_PAYMENT: StatusDisplay(
        OrderStatus.AWAITING_PAYMENT, "Aguardando Pagamento", "in_progress",
    ),
    OrderStatus.PENDING: StatusDisplay(OrderStatus.PENDING, "Pendente", "in_progress"),
    OrderStatus.CANCELLED: StatusDisplay(OrderStatus.CANCELLED, "Cancelado", "cancelled"),
}

PAYMENT_LABELS = {
    "pix": "PIX",
    "boleto": "Boleto",
    "mercadopago": "Mercado Pago",
    "cartao_credito": "Cartão de Crédito",
}


def status_display(status: str | None) -> StatusDisplay:
    """
    Map a raw status string to its display.

    Unknown statuses (e.g. ones added server-side later) fall back to
    ``pending``, the least alarming presentation.
    """
    try:
        return STATUS_DISPLAY[OrderStatus(status)]
    except ValueError:
        return STATUS_DISPLAY[OrderStatus.PENDING]


class OrderItem(BaseModel):
    """One line of an order."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    sku: str
    titulo: str = ""
    quantidade: int = 1
    valor_unitario: float = Field(default=0.0, alias="valorUnitario")


class Order(BaseModel):
    """Read-only order record. ``status`` stays a raw string; see ``display``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    local_order_id: str = Field(alias="localOrderId")
    order_id: str | None = Field(default=None, alias="orderId")
    transaction_id: str | None = Field(default=None, alias="transactionId")
    status: str = OrderStatus.PENDING.value
    items: list[OrderItem] = []
    total: float = 0.0
    shipping_address: dict[str, Any] | None = Field(default=None, alias="shippingAddress")
    shipping_option: dict[str, Any] | None = Field(default=None, alias="shippingOption")
    payment_method: str | None = Field(default=None, alias="paymentMethod")
    created_at: datetime = Field(alias="createdAt")

    @field_validator("status", mode="before")
    @classmethod
    def null_status_to_pending(cls, v: str | None) -> str:
        """A missing status is shown as pending, like an unknown one."""
        return OrderStatus.PENDING.value if v is None else v

    @property
    def display(self) -> StatusDisplay:
        """Status presentation, tolerant of unknown statuses."""
        return status_display(self.status)

    @property
    def payment_label(self) -> str | None:
        """Human label for the payment method, if known."""
        if self.payment_method is None:
            return None
        return PAYMENT_LABELS.get(self.payment_method, self.payment_method)
