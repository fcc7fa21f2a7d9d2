from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.message import Message
from textual.widgets import Button, Label, Rule

from db.crud import clear_cart, get_cart_summary, remove_cart_item
from db.errors import CommerceError
from db.models import CartItem
from utils.messages import CartChangedMessage, ModeSwitchedMessage, NewOrderMessage
from utils.pure import format_money, line_total, unit_price
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import DialogModal
from views.modal_prod_detail import ProdDetailModal


class CartItemActionEditMessage(Message):
    bubble = True


class CartItemActionRemoveMessage(Message):
    bubble = True


class CartItemActionLabel(Label):
    def action_edit(self):
        self.post_message(CartItemActionEditMessage())

    def action_remove(self):
        self.post_message(CartItemActionRemoveMessage())


class CartItemWidget(HorizontalGroup):
    """One cart entry: name, quantity, unit price and line total."""

    def __init__(self, item: CartItem, client_type: str):
        super().__init__()
        self.item = item
        self.client_type = client_type

    def compose(self):
        price = unit_price(self.client_type, self.item.product)
        with Container(id="div-cart-item-group"):
            with Container(id="div-item"):
                yield Label(self.item.product.name, id="label-item-name")
                yield Label(f"x{self.item.qty}", id="label-item-qty")
                yield Label(format_money(price), id="label-item-price")
                yield Label(
                    format_money(line_total(price, self.item.qty)),
                    id="label-item-total",
                )
            with Container(id="div-actions"):
                yield CartItemActionLabel("[@click=edit()]Edit[/]", id="link-item-edit")
                yield CartItemActionLabel(
                    "[@click=remove()]Remove[/]", id="link-item-remove"
                )

    @on(CartItemActionEditMessage)
    @work()
    async def handle_edit_item(self):
        if await self.app.push_screen_wait(ProdDetailModal(self.item.pid)):
            self.post_message(CartChangedMessage())

    @on(CartItemActionRemoveMessage)
    @work()
    async def handle_remove_item(self):
        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                f"Remove {self.item.product.name} from the cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        )
        if not remove_confirmed:
            return
        try:
            await remove_cart_item(self.app.state.cid, self.item.item_id)
        except CommerceError as err:
            self.app.notify(err.message, severity="error")
        else:
            self.notify("Item removed from cart.", severity="information")
        self.post_message(CartChangedMessage())


class CartScreen(BaseScreen):
    """
    Cart entries priced at the customer's tier, plus clear and checkout.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield VerticalScroll(id="vertscroll-content")
        yield Label("Cart Total: $0.00", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Refresh", id="btn-refresh")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    async def on_mount(self):
        self.handle_cart_change()

    @on(CartChangedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(Button.Pressed, "#btn-refresh")
    @work(exclusive=True)  # exclusive, else concurrent reloads mount duplicates
    async def handle_cart_change(self):
        cid = self.app.state.cid
        if cid is None:
            return
        summary = await get_cart_summary(cid)

        content = self.query_one("#vertscroll-content")
        await content.remove_children()
        await content.mount_all(
            [CartItemWidget(item, self.app.state.client_type) for item in summary.items]
        )
        content.set_class(not summary.items, "no-items")

        self.query_one("#label-cart-total", Label).update(
            f"Cart Total: {format_money(summary.total_amount)}"
            f"  ({summary.total_items} item(s))"
        )

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        summary = await get_cart_summary(self.app.state.cid)
        if not summary.items:
            self.app.notify("Cart is empty.", severity="warning")
            return

        if await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        ):
            await clear_cart(self.app.state.cid)
            self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        summary = await get_cart_summary(self.app.state.cid)
        if not summary.items:
            self.app.notify("Cart is empty.", severity="warning")
            return

        order = await self.app.push_screen_wait(CheckoutModal(summary))
        if order is not None:
            self.app.post_message(NewOrderMessage(order.ono))
        self.post_message(CartChangedMessage())
