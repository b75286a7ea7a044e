"""
models.py — Data Models for the Order and Stock Webhooks

This module defines the data structures received from the storefront and the ERP.
It uses Pydantic models to ensure type safety and automatic validation of incoming data.
Fields the workflows do not read are ignored.

Models:
    - OrderCustomer: Customer block of a storefront order.
    - OrderLineItem: Represents a single item in an order.
    - OrderNotification: The complete order payload sent by the storefront.
    - StockNotification: A stock-change payload sent by the ERP.
    - OrderRelayResponse: Result returned to the storefront after relaying an order.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrderCustomer(BaseModel):
    """
    Customer data attached to an order.

    Attributes:
        first_name (str): Given name, may be empty.
        last_name (str): Family name, may be empty.
        phone (str | None): Phone number stored on the customer, if any.
    """
    model_config = ConfigDict(extra="ignore")

    first_name: Optional[str] = ""
    last_name: Optional[str] = ""
    phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class OrderLineItem(BaseModel):
    """
    Represents a single product line in an order.

    Attributes:
        sku (str | None): Stock Keeping Unit, matched against the ERP internal reference.
        quantity (float): Ordered quantity. Must be greater than zero, may be fractional.
        price (Decimal): Unit price, sent by the storefront as a decimal string.
        title (str): Display title, used as the ERP line description.
    """
    model_config = ConfigDict(extra="ignore")

    sku: Optional[str] = None
    quantity: float = Field(..., gt=0)
    price: Decimal
    title: str = ""


class OrderNotification(BaseModel):
    """
    Represents an order placed on the storefront (orders/create webhook).

    Attributes:
        name (str): External order reference, e.g. "#1001".
        email (str): Customer email, the key used to match ERP partners.
        phone (str | None): Order-level phone number.
        customer (OrderCustomer): Customer name parts. Guest checkouts send `null`, read as empty.
        line_items (List[OrderLineItem]): Ordered lines, in storefront order.
    """
    model_config = ConfigDict(extra="ignore")

    name: str
    email: str
    phone: Optional[str] = None
    customer: OrderCustomer = Field(default_factory=OrderCustomer)
    line_items: List[OrderLineItem] = Field(default_factory=list)

    @field_validator("customer", mode="before")
    @classmethod
    def guest_customer(cls, value):
        return {} if value is None else value

    @property
    def contact_phone(self) -> Optional[str]:
        return self.phone or self.customer.phone


class StockNotification(BaseModel):
    """
    A stock-level change reported by the ERP.

    Two shapes are accepted: `{sku, new_qty}` or `{product_id, quantity | available_quantity}`.
    """
    model_config = ConfigDict(extra="ignore")

    sku: Optional[str] = None
    new_qty: Optional[float] = None
    product_id: Optional[int] = None
    quantity: Optional[float] = None
    available_quantity: Optional[float] = None

    @property
    def resolved_quantity(self) -> Optional[float]:
        for value in (self.new_qty, self.quantity, self.available_quantity):
            if value is not None:
                return value
        return None

    @property
    def reference(self) -> str:
        """Short label for log lines."""
        if self.sku:
            return f"sku={self.sku}"
        return f"product_id={self.product_id}"


class OrderRelayResponse(BaseModel):
    success: bool = True
    sale_id: int
