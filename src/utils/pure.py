from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Literal, Optional, Tuple

from db.models import Product

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """
    Coerce a number or numeric string to a two-decimal ``Decimal``.

    Floats go through ``str`` first so 0.1 stays 0.10 and not
    0.1000000000000000055...
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    return f"${to_money(value):,.2f}"


def unit_price(client_type: str, product: Product) -> Decimal:
    """
    Price tier selection: wholesalers pay the wholesale price, every other
    client type pays retail.

    Both the cart summary and order placement call this, always with the
    customer's own client type.
    """
    if client_type == "wholesaler":
        return to_money(product.wholesale_price)
    return to_money(product.retail_price)


def line_total(price: Decimal, qty: int) -> Decimal:
    return to_money(price * qty)


def price_lines(
    client_type: str, entries: Iterable[Tuple[Product, int]]
) -> Tuple[List[Tuple[Product, int, Decimal, Decimal]], Decimal]:
    """
    Price a sequence of (product, qty) pairs for one client type.

    Returns ([(product, qty, unit_price, line_total), ...], total).
    """
    priced = []
    total = Decimal("0.00")
    for product, qty in entries:
        price = unit_price(client_type, product)
        subtotal = line_total(price, qty)
        priced.append((product, qty, price, subtotal))
        total += subtotal
    return priced, to_money(total)


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows; cells are converted with ``str`` and ``|`` escaped.
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all center ('c').

    Returns:
        str: Markdown formatted table, or "" when there are no rows.
    """
    if not rows:
        return ""

    def cell(value) -> str:
        return str(value).replace("|", "\\|")

    if not headers:
        headers, rows = rows[0], rows[1:]

    header_cells = [cell(h) for h in headers]
    body = [[cell(v) for v in row] for row in rows]

    if aligns is None:
        aligns = ["c"] * len(header_cells)
    elif len(aligns) != len(header_cells):
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {"l": ":---", "c": ":---:", "r": "---:"}

    lines = [
        "| " + " | ".join(header_cells) + " |",
        "| " + " | ".join(align_map[a] for a in aligns) + " |",
    ]
    lines.extend("| " + " | ".join(row) + " |" for row in body)
    return "\n".join(lines)
