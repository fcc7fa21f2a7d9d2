from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer

from db.crud import MAX_ADDRESS_LEN, MAX_NOTES_LEN, place_order
from db.errors import CommerceError
from db.models import CartSummary, Order
from utils.pure import format_money, generate_markdown_table, price_lines
from views.modal_dialog import DialogModal


class CheckoutModal(ModalScreen[Optional[Order]]):
    """
    Order summary with shipping address and notes.
    Dismisses with the placed Order, or None if the customer backed out.

    The summary is only a preview; the order itself is priced again from the
    stored cart when it is placed.
    """

    def __init__(self, summary: CartSummary):
        super().__init__()
        self._summary = summary

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            yield Label("Shipping Address")
            yield Input(
                placeholder="123 Main St, Anytown, ST 00000",
                max_length=MAX_ADDRESS_LEN,
                id="input-address-line",
            )
            yield Label("Notes (optional)")
            yield Input(
                placeholder="Leave at the back door",
                max_length=MAX_NOTES_LEN,
                id="input-notes",
            )
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        client_type = self.app.state.client_type
        priced, total = price_lines(
            client_type, ((item.product, item.qty) for item in self._summary.items)
        )
        rows = [
            [product.name, format_money(price), qty, format_money(subtotal)]
            for product, qty, price, subtotal in priced
        ]
        md = "### Order Summary\n\n" + generate_markdown_table(
            ["Product", "Unit Price", "Quantity", "Line Total"], rows, ["l", "r", "c", "r"]
        )
        md += f"\n\n**Total ({client_type} pricing):** {format_money(total)}"
        await self.query_one(MarkdownViewer).document.update(md)
        self.query_one("#input-address-line").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        address_input = self.query_one("#input-address-line", Input)
        address_line = address_input.value.strip()
        if not address_line:
            address_input.focus()
            address_input.add_class("-invalid")
            self.notify("Shipping address is required.", severity="error")
            return

        if not await self.app.push_screen_wait(
            DialogModal(
                "Place order? This cannot be undone.",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        try:
            order = await place_order(
                self.app.state.cid,
                address_line,
                self.query_one("#input-notes", Input).value,
            )
        except CommerceError as err:
            self.notify(err.message, severity="error")
            return

        self.notify(
            f"Order #{order.ono} placed. Total {format_money(order.total_amount)}."
        )
        self.dismiss(order)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)

