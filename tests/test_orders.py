import sqlite3
import unittest
from decimal import Decimal

from support import DatabaseTestCase, crud
from db.errors import (
    CustomerNotFoundError,
    EmptyCartError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)


class PlaceOrderTestCase(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.product_a = await self.make_product("Product A", "10.00", "20.00")
        self.product_b = await self.make_product("Product B", "5.00", "9.00")

    async def _fill_cart(self, cid):
        await crud.add_to_cart(cid, self.product_a.pid, 2)
        await crud.add_to_cart(cid, self.product_b.pid, 1)

    async def _order_count(self):
        return await self.scalar("SELECT COUNT(*) FROM orders;")

    async def test_retailer_order(self):
        customer = await self.make_customer("retailer")
        await self._fill_cart(customer.cid)

        order = await crud.place_order(customer.cid, "1 Main St", "ring twice")

        self.assertEqual(order.total_amount, Decimal("49.00"))
        self.assertEqual(order.status, "pending")
        self.assertEqual(order.client_type, "retailer")
        self.assertEqual(order.cid, customer.cid)
        self.assertEqual(order.shipping_address, "1 Main St")
        self.assertEqual(order.notes, "ring twice")
        self.assertIsNotNone(order.odate)
        self.assertIsNone(order.shipped_date)
        self.assertIsNone(order.delivered_date)
        self.assertEqual(
            [(l.pid, l.qty, l.uprice, l.line_total) for l in order.lines],
            [
                (self.product_a.pid, 2, Decimal("20.00"), Decimal("40.00")),
                (self.product_b.pid, 1, Decimal("9.00"), Decimal("9.00")),
            ],
        )
        self.assertEqual(order.lines[0].product.name, "Product A")
        self.assertEqual(await crud.list_cart(customer.cid), [])
        self.assertEqual(await self._order_count(), 1)

    async def test_wholesaler_order(self):
        customer = await self.make_customer("wholesaler")
        await self._fill_cart(customer.cid)

        order = await crud.place_order(customer.cid, "Warehouse 9")

        self.assertEqual(order.total_amount, Decimal("25.00"))
        self.assertEqual(order.client_type, "wholesaler")
        self.assertEqual([l.uprice for l in order.lines], [Decimal("10.00"), Decimal("5.00")])
        self.assertEqual(order.notes, "")

    async def test_total_matches_sum_of_lines(self):
        customer = await self.make_customer("retailer")
        for pid, qty in ((1, 3), (2, 1), (3, 7), (4, 2)):
            await crud.add_to_cart(customer.cid, pid, qty)
        summary = await crud.get_cart_summary(customer.cid)

        order = await crud.place_order(customer.cid, "Somewhere")

        self.assertEqual(len(order.lines), 4)
        self.assertEqual(order.total_amount, sum(l.line_total for l in order.lines))
        # cart preview and order agree
        self.assertEqual(order.total_amount, summary.total_amount)
        self.assertEqual(order.total_amount, Decimal("173.87"))

    async def test_empty_cart_creates_no_order(self):
        customer = await self.make_customer("retailer")
        with self.assertRaises(EmptyCartError):
            await crud.place_order(customer.cid, "1 Main St")
        self.assertEqual(await self._order_count(), 0)
        self.assertEqual(await crud.list_orders(customer.cid), [])

    async def test_input_validation_leaves_cart_alone(self):
        customer = await self.make_customer("retailer")
        await self._fill_cart(customer.cid)
        cases = [("   ", ""), ("x" * 501, ""), ("1 Main St", "n" * 1001)]
        for address, notes in cases:
            with self.subTest(address=address[:5], notes=notes[:5]):
                with self.assertRaises(ValidationError):
                    await crud.place_order(customer.cid, address, notes)
        self.assertEqual(len(await crud.list_cart(customer.cid)), 2)
        self.assertEqual(await self._order_count(), 0)

    async def test_requires_customer(self):
        with self.assertRaises(UnauthenticatedError):
            await crud.place_order(None, "1 Main St")
        with self.assertRaises(CustomerNotFoundError):
            await crud.place_order(999999, "1 Main St")

    async def test_failure_mid_transaction_rolls_back(self):
        customer = await self.make_customer("retailer")
        await self._fill_cart(customer.cid)
        # make the line inserts fail after the header insert
        await self.execute("DROP TABLE order_items;")

        with self.assertRaises(sqlite3.OperationalError):
            await crud.place_order(customer.cid, "1 Main St")

        self.assertEqual(await self._order_count(), 0)
        self.assertEqual(len(await crud.list_cart(customer.cid)), 2)

    async def test_prices_are_frozen_on_the_order(self):
        customer = await self.make_customer("retailer")
        await self._fill_cart(customer.cid)
        order = await crud.place_order(customer.cid, "1 Main St")

        await self.execute(
            "UPDATE products SET retail_price = '99.99' WHERE pid = ?;",
            (self.product_a.pid,),
        )
        await self.execute(
            "UPDATE customers SET client_type = 'wholesaler' WHERE cid = ?;",
            (customer.cid,),
        )

        again = await crud.get_order(customer.cid, order.ono)
        self.assertEqual(again.total_amount, Decimal("49.00"))
        self.assertEqual(again.client_type, "retailer")
        self.assertEqual(again.lines[0].uprice, Decimal("20.00"))

    async def test_stock_is_not_rechecked_at_checkout(self):
        customer = await self.make_customer("retailer")
        await crud.add_to_cart(customer.cid, self.product_a.pid, 5)
        await self.execute(
            "UPDATE products SET stock_count = 0, in_stock = 0 WHERE pid = ?;",
            (self.product_a.pid,),
        )

        order = await crud.place_order(customer.cid, "1 Main St")

        self.assertEqual(order.lines[0].qty, 5)
        # stock is left untouched by checkout
        self.assertEqual((await crud.get_product(self.product_a.pid)).stock_count, 0)


class OrderReadTestCase(DatabaseTestCase):
    async def test_list_orders_newest_first(self):
        customer = await self.make_customer("retailer")
        await crud.add_to_cart(customer.cid, 1, 1)
        first = await crud.place_order(customer.cid, "Addr 1")
        await crud.add_to_cart(customer.cid, 2, 2)
        await crud.add_to_cart(customer.cid, 3, 1)
        second = await crud.place_order(customer.cid, "Addr 2")

        orders = await crud.list_orders(customer.cid)
        self.assertEqual([o.ono for o in orders], [second.ono, first.ono])
        self.assertEqual([len(o.lines) for o in orders], [2, 1])

    async def test_orders_of_other_customers_are_not_found(self):
        owner = await self.make_customer("retailer", "owner@example.com")
        stranger = await self.make_customer("retailer", "stranger@example.com")
        await crud.add_to_cart(owner.cid, 1, 1)
        order = await crud.place_order(owner.cid, "Addr")

        self.assertEqual((await crud.get_order(owner.cid, order.ono)).ono, order.ono)
        with self.assertRaises(NotFoundError):
            await crud.get_order(stranger.cid, order.ono)
        with self.assertRaises(NotFoundError):
            await crud.get_order(owner.cid, 999999)
        self.assertEqual(await crud.list_orders(stranger.cid), [])

    async def test_reads_require_a_customer(self):
        with self.assertRaises(UnauthenticatedError):
            await crud.list_orders(None)
        with self.assertRaises(UnauthenticatedError):
            await crud.get_order(None, 1)


if __name__ == "__main__":
    unittest.main()
