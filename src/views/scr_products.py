from textual import events, on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import DataTable, Input, Label, Select

import db.crud
from utils.messages import CartChangedMessage
from utils.pure import format_money, unit_price
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal

ALL_CATEGORIES = "all"


class ProductsScreen(BaseScreen):
    """
    Catalogue browser: substring search plus a category filter. Prices shown
    are the logged-in customer's tier.
    """

    # display only, Enter is handled in on_key
    BINDINGS = [
        Binding("fn+shift+1", "noop", "View Product", show=True, key_display="⏎"),
    ]

    def __init__(self):
        super().__init__()
        self._query = ""
        self._category = ALL_CATEGORIES

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-filters"):
            yield Input(
                id="input-search", placeholder="Search name or description..."
            )
            yield Select(
                [("All categories", ALL_CATEGORIES)],
                value=ALL_CATEGORIES,
                allow_blank=False,
                id="select-category",
            )
        yield DataTable(id="table-search-result")
        yield Label("", id="label-result-cnt")

    async def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Category", "Your Price", "Stock", "Status")

        self.load_categories()
        self.update_search_result()
        self.query_one("#input-search").focus()

    @work(exclusive=True, group="categories")
    async def load_categories(self) -> None:
        categories = await db.crud.list_categories()
        select = self.query_one("#select-category", Select)
        select.set_options(
            [("All categories", ALL_CATEGORIES)] + [(c, c) for c in categories]
        )
        select.value = self._category

    @on(Input.Changed, "#input-search")
    def handle_search_changed(self, message: Input.Changed) -> None:
        self._query = message.value
        self.update_search_result()

    @on(Select.Changed, "#select-category")
    def handle_category_changed(self, message: Select.Changed) -> None:
        if message.select.is_blank():
            return
        self._category = message.value
        self.update_search_result()

    async def on_key(self, event: events.Key) -> None:
        table = self.query_one(DataTable)
        if event.key == "enter" and self.focused == table and table.row_count:
            pid = int(table.get_row_at(table.cursor_row)[0])
            self.open_detail(pid)

    @work()
    async def open_detail(self, pid: int) -> None:
        if await self.app.push_screen_wait(ProdDetailModal(pid)):
            self.app.post_message(CartChangedMessage())
            self.update_search_result()

    @work(exclusive=True, group="search")
    async def update_search_result(self) -> None:
        products = await db.crud.search_products(self._query, self._category)
        client_type = self.app.state.client_type

        table = self.query_one(DataTable)
        table.clear()
        for p in products:
            table.add_row(
                p.pid,
                p.name,
                p.category,
                format_money(unit_price(client_type, p)),
                p.stock_count,
                "In stock" if p.in_stock and p.stock_count > 0 else "Out of stock",
            )
        self.query_one("#label-result-cnt", Label).update(
            f"{len(products)} product(s)"
        )
