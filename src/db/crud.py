# src/db/crud.py
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence

import aiosqlite

from db import models
from db.database import connect, from_db_time, to_db_time, transaction, utcnow
from db.errors import (
    ConflictError,
    CustomerNotFoundError,
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
    UnauthenticatedError,
    UnauthorizedError,
    ValidationError,
)
from utils.logger import get_logger
from utils.pure import price_lines, to_money
from utils.security import hash_password, verify_password

_logger = get_logger(__name__)

MAX_NAME_LEN = 100
MAX_EMAIL_LEN = 255
MIN_PASSWORD_LEN = 6
MAX_PRODUCT_NAME_LEN = 200
MAX_DESCR_LEN = 1000
MAX_CATEGORY_LEN = 100
MAX_IMAGE_URL_LEN = 500
MAX_ADDRESS_LEN = 500
MAX_NOTES_LEN = 1000

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_INT_RE = re.compile(r"-?[0-9]+")

_PRODUCT_COLUMNS = (
    "p.pid, p.name, p.descr, p.category, p.wholesale_price, p.retail_price, "
    "p.in_stock, p.stock_count, p.image_url"
)


def _to_int(val) -> Optional[int]:
    """Whole numbers only: ints (not bools) and digit strings. Anything else is None."""
    if isinstance(val, bool):
        return None
    if isinstance(val, int):
        return val
    if isinstance(val, str) and _INT_RE.fullmatch(val.strip()):
        return int(val.strip())
    return None


def _require_principal(cid: Optional[int]) -> int:
    """Reject calls made without an authenticated customer id."""
    if cid is None:
        raise UnauthenticatedError()
    val = _to_int(cid)
    if val is None or val < 1:
        raise UnauthorizedError()
    return val


def _require_quantity(qty) -> int:
    val = _to_int(qty)
    if val is None or val < 1:
        raise ValidationError("Quantity must be a whole number of at least 1.")
    return val


def _check_text(value: Optional[str], label: str, max_len: int, required: bool) -> str:
    text = (value or "").strip()
    if required and not text:
        raise ValidationError(f"{label} is required.")
    if len(text) > max_len:
        raise ValidationError(f"{label} must be at most {max_len} characters.")
    return text


def _check_price(value, label: str) -> Decimal:
    try:
        price = to_money(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{label} must be a number.") from None
    if not price.is_finite():
        raise ValidationError(f"{label} must be a number.")
    if price <= 0:
        raise ValidationError(f"{label} must be greater than zero.")
    return price


def _row_to_customer(row) -> models.Customer:
    return models.Customer(
        cid=row["cid"],
        name=row["name"],
        email=row["email"],
        client_type=row["client_type"],
        created_at=from_db_time(row["created_at"]),
        pwd_hash=row["pwd_hash"],
    )


def _row_to_product(row) -> models.Product:
    return models.Product(
        pid=row["pid"],
        name=row["name"],
        descr=row["descr"],
        category=row["category"],
        wholesale_price=Decimal(row["wholesale_price"]),
        retail_price=Decimal(row["retail_price"]),
        in_stock=bool(row["in_stock"]),
        stock_count=int(row["stock_count"]),
        image_url=row["image_url"],
    )


def _row_to_cart_item(row) -> models.CartItem:
    return models.CartItem(
        item_id=row["item_id"],
        cid=row["cid"],
        pid=row["pid"],
        qty=row["qty"],
        created_at=from_db_time(row["created_at"]),
        updated_at=from_db_time(row["updated_at"]),
        product=_row_to_product(row),
    )


def _check_stock(product: models.Product, qty: int) -> None:
    if not product.in_stock or product.stock_count < qty:
        raise InsufficientStockError(
            f"Insufficient stock for {product.name}: "
            f"requested {qty}, available {product.stock_count if product.in_stock else 0}."
        )


# ---------------------------
# Auth & Registration
# ---------------------------


async def email_available(email: str) -> bool:
    """True if no customer already registered with the given email."""
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT 1 FROM customers WHERE email = ? COLLATE NOCASE LIMIT 1;",
            ((email or "").strip(),),
        )
        row = await cur.fetchone()
        await cur.close()
        return row is None


async def register_customer(
    name: str, email: str, pwd: str, client_type: str
) -> models.Customer:
    """
    Create a new customer account and return it.

    Raises ValidationError for bad input and ConflictError when the email is
    already registered.
    """
    name = _check_text(name, "Name", MAX_NAME_LEN, required=True)
    email = _check_text(email, "Email", MAX_EMAIL_LEN, required=True).lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError("Email address is not valid.")
    if not pwd or len(pwd) < MIN_PASSWORD_LEN:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LEN} characters."
        )
    if client_type not in models.CLIENT_TYPES:
        raise ValidationError("Client type must be 'wholesaler' or 'retailer'.")

    pwd_hash = hash_password(pwd)
    async with connect() as conn:
        async with transaction(conn):
            cur = await conn.execute(
                "SELECT 1 FROM customers WHERE email = ? COLLATE NOCASE;", (email,)
            )
            exists = await cur.fetchone()
            await cur.close()
            if exists:
                raise ConflictError("Email already exists.")
            cur = await conn.execute(
                """
                INSERT INTO customers(name, email, pwd_hash, client_type, created_at)
                VALUES (?, ?, ?, ?, ?);
                """,
                (name, email, pwd_hash, client_type, to_db_time(utcnow())),
            )
            cid = cur.lastrowid
            await cur.close()
            cur = await conn.execute("SELECT * FROM customers WHERE cid = ?;", (cid,))
            row = await cur.fetchone()
            await cur.close()

    _logger.info("Registered %s customer %s.", client_type, cid)
    return _row_to_customer(row)


async def authenticate(email: str, pwd: str) -> models.Customer:
    """Return the Customer whose email/password match.

    Raises UnauthenticatedError without telling which of the two was wrong.
    """
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT * FROM customers WHERE email = ? COLLATE NOCASE;",
            ((email or "").strip(),),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row or not verify_password(pwd or "", row["pwd_hash"]):
        _logger.debug("Failed login attempt.")
        raise UnauthenticatedError("Invalid email or password.")
    return _row_to_customer(row)


async def get_customer(cid: int) -> Optional[models.Customer]:
    """Return the Customer for a given cid, or None."""
    async with connect() as conn:
        cur = await conn.execute("SELECT * FROM customers WHERE cid = ?;", (cid,))
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return _row_to_customer(row)


# ---------------------------
# Products (Search, View, Create)
# ---------------------------


async def search_products(
    search: Optional[str] = None, category: Optional[str] = None
) -> List[models.Product]:
    """
    Filter the catalogue.

    - search: case-insensitive substring over name OR description; blank
      means no filter.
    - category: exact match; None, "" and "all" mean no filter.
    Results are ordered by pid.
    """
    clauses: List[str] = []
    params: List[str] = []

    phrase = (search or "").strip().lower()
    if phrase:
        like = f"%{phrase}%"
        clauses.append("(LOWER(p.name) LIKE ? OR LOWER(p.descr) LIKE ?)")
        params.extend([like, like])

    if category and category != "all":
        clauses.append("p.category = ?")
        params.append(category)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products p {where} ORDER BY p.pid;",
            tuple(params),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_product(row) for row in rows]


async def list_categories() -> List[str]:
    """Distinct product categories, sorted."""
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT DISTINCT category FROM products ORDER BY category;"
        )
        rows = await cur.fetchall()
        await cur.close()
    return [row[0] for row in rows]


async def get_product(pid: int) -> Optional[models.Product]:
    """Fetch a product by pid."""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products p WHERE p.pid = ?;", (pid,)
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return _row_to_product(row)


async def create_product(
    name: str,
    category: str,
    wholesale_price,
    retail_price,
    descr: str = "",
    in_stock: bool = True,
    stock_count: int = 0,
    image_url: str = "",
) -> models.Product:
    """
    Administrative create. ``in_stock`` is stored as given; it is not
    derived from ``stock_count``.
    """
    name = _check_text(name, "Name", MAX_PRODUCT_NAME_LEN, required=True)
    category = _check_text(category, "Category", MAX_CATEGORY_LEN, required=True)
    descr = _check_text(descr, "Description", MAX_DESCR_LEN, required=False)
    image_url = _check_text(image_url, "Image URL", MAX_IMAGE_URL_LEN, required=False)
    wholesale = _check_price(wholesale_price, "Wholesale price")
    retail = _check_price(retail_price, "Retail price")
    stock = _to_int(stock_count)
    if stock is None or stock < 0:
        raise ValidationError("Stock quantity cannot be negative.")

    now = to_db_time(utcnow())
    async with connect() as conn:
        cur = await conn.execute(
            """
            INSERT INTO products(name, descr, category, wholesale_price, retail_price,
                                 in_stock, stock_count, image_url, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                name,
                descr,
                category,
                str(wholesale),
                str(retail),
                1 if in_stock else 0,
                stock,
                image_url,
                now,
                now,
            ),
        )
        pid = cur.lastrowid
        await cur.close()
    _logger.info("Created product %s (%s).", pid, name)
    return await get_product(pid)


# ---------------------------
# Cart Management
# ---------------------------


async def _fetch_cart_rows(conn: aiosqlite.Connection, cid: int) -> Sequence:
    cur = await conn.execute(
        f"""
        SELECT c.item_id, c.cid, c.qty, c.created_at, c.updated_at, {_PRODUCT_COLUMNS}
        FROM cart_items c
        JOIN products p ON p.pid = c.pid
        WHERE c.cid = ?
        ORDER BY c.item_id;
        """,
        (cid,),
    )
    rows = await cur.fetchall()
    await cur.close()
    return rows


async def _fetch_cart_item(
    conn: aiosqlite.Connection, cid: int, item_id: int
) -> Optional[models.CartItem]:
    cur = await conn.execute(
        f"""
        SELECT c.item_id, c.cid, c.qty, c.created_at, c.updated_at, {_PRODUCT_COLUMNS}
        FROM cart_items c
        JOIN products p ON p.pid = c.pid
        WHERE c.item_id = ? AND c.cid = ?;
        """,
        (item_id, cid),
    )
    row = await cur.fetchone()
    await cur.close()
    return _row_to_cart_item(row) if row else None


async def list_cart(cid: int) -> List[models.CartItem]:
    """Return the customer's cart entries in insertion order, products attached."""
    cid = _require_principal(cid)
    async with connect() as conn:
        rows = await _fetch_cart_rows(conn, cid)
    return [_row_to_cart_item(row) for row in rows]


async def get_cart_summary(cid: int) -> models.CartSummary:
    """
    Cart entries plus the total at the customer's own price tier and the
    total number of units.
    """
    cid = _require_principal(cid)
    customer = await get_customer(cid)
    if customer is None:
        raise CustomerNotFoundError()
    items = await list_cart(cid)
    _, total = price_lines(
        customer.client_type, ((item.product, item.qty) for item in items)
    )
    return models.CartSummary(
        items=tuple(items),
        total_amount=total,
        total_items=sum(item.qty for item in items),
    )


async def add_to_cart(cid: int, pid: int, qty: int) -> models.CartItem:
    """
    Add ``qty`` of a product to the cart; if the product is already there its
    quantity is incremented instead of creating a second entry.

    The stock gate compares the requested qty with the product's stock at
    this moment only.
    """
    cid = _require_principal(cid)
    qty = _require_quantity(qty)
    now = to_db_time(utcnow())
    async with connect() as conn:
        async with transaction(conn):
            cur = await conn.execute(
                f"SELECT {_PRODUCT_COLUMNS} FROM products p WHERE p.pid = ?;", (pid,)
            )
            row = await cur.fetchone()
            await cur.close()
            if not row:
                raise NotFoundError("Product not found.")
            _check_stock(_row_to_product(row), qty)

            # single statement increment, no read-modify-write on qty
            await conn.execute(
                """
                INSERT INTO cart_items(cid, pid, qty, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(cid, pid) DO UPDATE SET
                    qty = cart_items.qty + excluded.qty,
                    updated_at = excluded.updated_at;
                """,
                (cid, pid, qty, now, now),
            )
            cur = await conn.execute(
                "SELECT item_id FROM cart_items WHERE cid = ? AND pid = ?;", (cid, pid)
            )
            item_id = (await cur.fetchone())[0]
            await cur.close()
            item = await _fetch_cart_item(conn, cid, item_id)
    _logger.debug("Cart %s: product %s now x%s.", cid, pid, item.qty)
    return item


async def update_cart_item(cid: int, item_id: int, qty: int) -> models.CartItem:
    """Set an explicit quantity on one of the caller's cart entries."""
    cid = _require_principal(cid)
    qty = _require_quantity(qty)
    async with connect() as conn:
        async with transaction(conn):
            item = await _fetch_cart_item(conn, cid, item_id)
            if item is None:
                raise NotFoundError("Cart item not found.")
            _check_stock(item.product, qty)
            await conn.execute(
                "UPDATE cart_items SET qty = ?, updated_at = ? WHERE item_id = ? AND cid = ?;",
                (qty, to_db_time(utcnow()), item_id, cid),
            )
            item = await _fetch_cart_item(conn, cid, item_id)
    return item


async def remove_cart_item(cid: int, item_id: int) -> None:
    """Remove one entry from the caller's cart."""
    cid = _require_principal(cid)
    async with connect() as conn:
        cur = await conn.execute(
            "DELETE FROM cart_items WHERE item_id = ? AND cid = ?;", (item_id, cid)
        )
        deleted = cur.rowcount
        await cur.close()
    if not deleted:
        raise NotFoundError("Cart item not found.")


async def clear_cart(cid: int) -> None:
    """Remove all items from the customer's cart."""
    cid = _require_principal(cid)
    async with connect() as conn:
        await conn.execute("DELETE FROM cart_items WHERE cid = ?;", (cid,))


# ---------------------------
# Checkout & Orders
# ---------------------------


async def place_order(
    cid: int, shipping_address: str, notes: Optional[str] = ""
) -> models.Order:
    """
    Turn the customer's cart into a pending order and empty the cart.

    Every line is priced with the customer's client type, which is also
    copied onto the order. Header insert, line inserts and the cart delete
    share one transaction; on any error nothing is written.

    Stock is not re-checked here: quantities are taken from the cart as they
    are, even if stock dropped since they were added.
    """
    cid = _require_principal(cid)
    shipping_address = _check_text(
        shipping_address, "Shipping address", MAX_ADDRESS_LEN, required=True
    )
    notes = _check_text(notes, "Notes", MAX_NOTES_LEN, required=False)

    async with connect() as conn:
        async with transaction(conn):
            cur = await conn.execute("SELECT * FROM customers WHERE cid = ?;", (cid,))
            row = await cur.fetchone()
            await cur.close()
            if not row:
                raise CustomerNotFoundError()
            customer = _row_to_customer(row)

            cart = [_row_to_cart_item(r) for r in await _fetch_cart_rows(conn, cid)]
            if not cart:
                raise EmptyCartError()

            priced, total = price_lines(
                customer.client_type, ((item.product, item.qty) for item in cart)
            )

            cur = await conn.execute(
                """
                INSERT INTO orders(cid, status, client_type, total_amount, odate,
                                   shipping_address, notes)
                VALUES (?, 'pending', ?, ?, ?, ?, ?);
                """,
                (
                    cid,
                    customer.client_type,
                    str(total),
                    to_db_time(utcnow()),
                    shipping_address,
                    notes,
                ),
            )
            ono = cur.lastrowid
            await cur.close()

            await conn.executemany(
                """
                INSERT INTO order_items(ono, pid, qty, uprice, line_total)
                VALUES (?, ?, ?, ?, ?);
                """,
                [
                    (ono, product.pid, qty, str(price), str(subtotal))
                    for product, qty, price, subtotal in priced
                ],
            )
            await conn.execute("DELETE FROM cart_items WHERE cid = ?;", (cid,))

            order = await _fetch_order(conn, cid, ono)

    _logger.info(
        "Order %s placed by customer %s: %d line(s), total %s (%s).",
        ono,
        cid,
        len(order.lines),
        order.total_amount,
        order.client_type,
    )
    return order


async def _fetch_order_lines(
    conn: aiosqlite.Connection, onos: Sequence[int]
) -> Dict[int, List[models.OrderLine]]:
    if not onos:
        return {}
    placeholders = ", ".join("?" for _ in onos)
    cur = await conn.execute(
        f"""
        SELECT oi.line_id, oi.ono, oi.qty, oi.uprice, oi.line_total, {_PRODUCT_COLUMNS}
        FROM order_items oi
        JOIN products p ON p.pid = oi.pid
        WHERE oi.ono IN ({placeholders})
        ORDER BY oi.ono, oi.line_id;
        """,
        tuple(onos),
    )
    rows = await cur.fetchall()
    await cur.close()
    lines: Dict[int, List[models.OrderLine]] = {ono: [] for ono in onos}
    for row in rows:
        lines[row["ono"]].append(
            models.OrderLine(
                line_id=row["line_id"],
                ono=row["ono"],
                pid=row["pid"],
                qty=row["qty"],
                uprice=Decimal(row["uprice"]),
                line_total=Decimal(row["line_total"]),
                product=_row_to_product(row),
            )
        )
    return lines


def _row_to_order(row, lines: List[models.OrderLine]) -> models.Order:
    return models.Order(
        ono=row["ono"],
        cid=row["cid"],
        status=row["status"],
        client_type=row["client_type"],
        total_amount=Decimal(row["total_amount"]),
        odate=from_db_time(row["odate"]),
        shipping_address=row["shipping_address"],
        notes=row["notes"],
        shipped_date=from_db_time(row["shipped_date"]),
        delivered_date=from_db_time(row["delivered_date"]),
        lines=tuple(lines),
    )


async def _fetch_order(
    conn: aiosqlite.Connection, cid: int, ono: int
) -> Optional[models.Order]:
    cur = await conn.execute(
        "SELECT * FROM orders WHERE ono = ? AND cid = ?;", (ono, cid)
    )
    row = await cur.fetchone()
    await cur.close()
    if not row:
        return None
    lines = await _fetch_order_lines(conn, [ono])
    return _row_to_order(row, lines[ono])


async def list_orders(cid: int) -> List[models.Order]:
    """The customer's orders, most recent first, lines included."""
    cid = _require_principal(cid)
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT * FROM orders WHERE cid = ? ORDER BY odate DESC, ono DESC;",
            (cid,),
        )
        rows = await cur.fetchall()
        await cur.close()
        lines = await _fetch_order_lines(conn, [row["ono"] for row in rows])
    return [_row_to_order(row, lines[row["ono"]]) for row in rows]


async def get_order(cid: int, ono: int) -> models.Order:
    """
    Return one of the caller's orders. Orders of other customers are
    reported exactly like missing ones.
    """
    cid = _require_principal(cid)
    async with connect() as conn:
        order = await _fetch_order(conn, cid, ono)
    if order is None:
        raise NotFoundError("Order not found.")
    return order

