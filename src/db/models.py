# provide dataclass models

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional, Tuple

ClientType = Literal["wholesaler", "retailer"]
OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]

CLIENT_TYPES: Tuple[str, ...] = ("wholesaler", "retailer")
ORDER_STATUSES: Tuple[str, ...] = (
    "pending",
    "confirmed",
    "shipped",
    "delivered",
    "cancelled",
)


@dataclass(frozen=True)
class Customer:
    cid: int
    name: str
    email: str
    client_type: ClientType
    created_at: datetime
    pwd_hash: str = field(default="", repr=False)


@dataclass(frozen=True)
class Product:
    pid: int
    name: str
    descr: str
    category: str
    wholesale_price: Decimal
    retail_price: Decimal
    in_stock: bool
    stock_count: int
    image_url: str = ""


@dataclass(frozen=True)
class CartItem:
    item_id: int
    cid: int
    pid: int
    qty: int
    created_at: datetime
    updated_at: datetime
    product: Optional[Product] = None  # detached snapshot for display


@dataclass(frozen=True)
class CartSummary:
    items: Tuple[CartItem, ...]
    total_amount: Decimal
    total_items: int


@dataclass(frozen=True)
class OrderLine:
    line_id: int
    ono: int
    pid: int
    qty: int
    uprice: Decimal  # unit price at time of order
    line_total: Decimal
    product: Optional[Product] = None


@dataclass(frozen=True)
class Order:
    ono: int
    cid: int
    status: OrderStatus
    client_type: ClientType  # snapshot taken at checkout
    total_amount: Decimal
    odate: datetime
    shipping_address: str
    notes: str = ""
    shipped_date: Optional[datetime] = None
    delivered_date: Optional[datetime] = None
    lines: Tuple[OrderLine, ...] = ()
