from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, MarkdownViewer

import db.crud
from db.errors import CommerceError
from db.models import Order
from utils.messages import ModeSwitchedMessage, NewOrderMessage
from utils.pure import format_money, generate_markdown_table
from views.base_screen import BaseScreen


def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


class OrdersScreen(BaseScreen):
    """
    The customer's orders, newest first, with a detail pane for the
    highlighted row. Prices are the ones frozen on each order.
    """

    BINDINGS = [
        Binding("enter", "noop", "View Order Detail", show=True, key_display="⏎"),
    ]

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")
            yield Label("", id="label-order-cnt")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order No", "Date", "Status", "Pricing", "Items", "Total")
        self._load_orders()

    @on(Button.Pressed, "#btn-refresh")
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(NewOrderMessage)
    def handle_refresh(self):
        self._load_orders()

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is None or event.row_key.value is None:
            return
        self._load_and_render_detail(int(event.row_key.value))

    @work(exclusive=True, group="orders")
    async def _load_orders(self) -> None:
        cid = self.app.state.cid
        if cid is None:
            return
        orders = await db.crud.list_orders(cid)

        table = self.query_one(DataTable)
        table.clear()
        for o in orders:
            table.add_row(
                o.ono,
                _fmt_time(o.odate),
                o.status,
                o.client_type,
                sum(line.qty for line in o.lines),
                format_money(o.total_amount),
                key=str(o.ono),
            )
        self.query_one("#label-order-cnt", Label).update(f"{len(orders)} order(s)")
        if orders:
            table.move_cursor(row=0)
            self._render_detail(orders[0])
        else:
            self._render_detail(None)

    @work(exclusive=True, group="detail")
    async def _load_and_render_detail(self, ono: int) -> None:
        try:
            order = await db.crud.get_order(self.app.state.cid, ono)
        except CommerceError as err:
            self.notify_error(err)
            order = None
        self._render_detail(order)

    def _render_detail(self, order: Optional[Order]) -> None:
        viewer = self.query_one("#md-order-detail", MarkdownViewer)
        if order is None:
            viewer.document.update("### No orders yet.")
            return

        header = (
            f"### Order #{order.ono} ({order.status})\n"
            f"Date: {_fmt_time(order.odate)}  \n"
            f"Pricing: {order.client_type}  \n"
            f"Ship To: {order.shipping_address}\n"
        )
        if order.notes:
            header += f"\nNotes: {order.notes}\n"
        rows = [
            [
                line.product.name if line.product else f"Product {line.pid}",
                line.product.category if line.product else "-",
                line.qty,
                format_money(line.uprice),
                format_money(line.line_total),
            ]
            for line in order.lines
        ]
        table = generate_markdown_table(
            ["Product", "Category", "Qty", "Unit Price", "Line Total"],
            rows,
            ["l", "l", "r", "r", "r"],
        )
        footer = f"\n\n**Total:** {format_money(order.total_amount)}"
        viewer.document.update(header + "\n" + table + footer)
