from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer

from db.crud import add_to_cart, get_product, list_cart, update_cart_item
from db.errors import CommerceError
from db.models import CartItem, Product
from utils.messages import CartChangedMessage
from utils.pure import format_money, generate_markdown_table, unit_price


class ProdDetailModal(ModalScreen[bool]):
    """
    Product detail plus quantity picker.

    Adds to the cart, or sets the quantity when the product is already in
    the cart. Dismisses with True if the cart changed.
    """

    CSS = """
    #input-order-qty {
        width: 10;
    }
    #btn-sub-qty, #btn-add-qty {
        min-width: 4;
    }
    """

    order_qty = reactive(1)

    def __init__(self, pid: int) -> None:
        super().__init__()

        self._pid = pid

        self._prod: Optional[Product] = None
        self._existing_cart_item: Optional[CartItem] = None

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical():
                yield Label("Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(value="1", id="input-order-qty", type="integer")
                    yield Button("+", id="btn-add-qty")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    async def on_mount(self):
        self._prod = await get_product(self._pid)
        if self._prod is None:
            self.app.notify("Product not found.", severity="error")
            self.dismiss(False)
            return

        prod = self._prod
        client_type = self.app.state.client_type
        table_rows = [
            ["Product ID", prod.pid],
            ["Category", prod.category],
            ["Description", prod.descr],
            ["Wholesale Price", format_money(prod.wholesale_price)],
            ["Retail Price", format_money(prod.retail_price)],
            ["**Your Price**", f"**{format_money(unit_price(client_type, prod))}**"],
            ["Stock", prod.stock_count],
            ["Available", "Yes" if prod.in_stock else "No"],
            ["Image", prod.image_url or "-"],
        ]
        md_table_str = generate_markdown_table(
            ["Attribute", "Value"], table_rows, ["l", "l"]
        )
        header_md = f"### {prod.name}\n\n"
        await self.query_one(MarkdownViewer).document.update(header_md + md_table_str)

        if not prod.in_stock or prod.stock_count < 1:
            order_btn = self.query_one("#btn-addcart", Button)
            order_btn.label = "Out of Stock"
            order_btn.disabled = True
            order_btn.variant = "warning"

        self.query_one("#input-order-qty").validators = [
            Number(minimum=1, maximum=max(prod.stock_count, 1))
        ]

        for item in await list_cart(self.app.state.cid):
            if item.pid == self._pid:
                self._existing_cart_item = item
                break
        if self._existing_cart_item:
            self.order_qty = self._existing_cart_item.qty
            self.query_one("#btn-addcart", Button).label = "Update Cart"

        self.query_one("#input-order-qty").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    async def on_input_changed(self, message: Input.Changed) -> None:
        if (
            message.input.id == "input-order-qty"
            and message.input.is_valid
            and self.focused == message.input
        ):
            self.order_qty = int(message.value)

    def watch_order_qty(self, qty: int):
        if self._prod is None:
            return
        self.query_one("#btn-sub-qty").disabled = qty <= 1
        self.query_one("#btn-add-qty").disabled = qty >= self._prod.stock_count
        self.query_one("#input-order-qty", Input).value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        self.order_qty = max(self.order_qty - 1, 1)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart")
    @work(exclusive=True)
    async def handle_addcart(self):
        cid = self.app.state.cid
        try:
            if self._existing_cart_item is None:
                await add_to_cart(cid, self._pid, self.order_qty)
                self.app.notify("Item added to cart successfully.")
            else:
                await update_cart_item(
                    cid, self._existing_cart_item.item_id, self.order_qty
                )
                self.app.notify("Updated cart item quantity.")
        except CommerceError as err:
            self.app.notify(err.message, severity="error")
            return

        self.app.post_message(CartChangedMessage())
        self.dismiss(True)
