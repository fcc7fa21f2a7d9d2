import unittest
from datetime import datetime
from decimal import Decimal

import support  # noqa: F401  (puts src/ on sys.path)
from db.models import Product
from utils.pure import (
    format_money,
    generate_markdown_table,
    line_total,
    price_lines,
    to_money,
    unit_price,
)


def _product(pid, wholesale, retail):
    return Product(
        pid=pid,
        name=f"P{pid}",
        descr="",
        category="Test",
        wholesale_price=Decimal(wholesale),
        retail_price=Decimal(retail),
        in_stock=True,
        stock_count=10,
    )


class PricingTestCase(unittest.TestCase):
    def setUp(self):
        self.a = _product(1, "10.00", "20.00")
        self.b = _product(2, "5.00", "9.00")

    def test_unit_price_selects_tier_by_client_type(self):
        self.assertEqual(unit_price("wholesaler", self.a), Decimal("10.00"))
        self.assertEqual(unit_price("retailer", self.a), Decimal("20.00"))
        # anything that is not a wholesaler pays retail
        self.assertEqual(unit_price("", self.a), Decimal("20.00"))
        self.assertEqual(unit_price(None, self.a), Decimal("20.00"))

    def test_price_lines_retailer_scenario(self):
        priced, total = price_lines("retailer", [(self.a, 2), (self.b, 1)])
        self.assertEqual(total, Decimal("49.00"))
        self.assertEqual(
            [(p.pid, q, price, sub) for p, q, price, sub in priced],
            [
                (1, 2, Decimal("20.00"), Decimal("40.00")),
                (2, 1, Decimal("9.00"), Decimal("9.00")),
            ],
        )

    def test_price_lines_wholesaler_scenario(self):
        _, total = price_lines("wholesaler", [(self.a, 2), (self.b, 1)])
        self.assertEqual(total, Decimal("25.00"))

    def test_price_lines_empty(self):
        priced, total = price_lines("retailer", [])
        self.assertEqual(priced, [])
        self.assertEqual(total, Decimal("0.00"))


class MoneyTestCase(unittest.TestCase):
    def test_to_money_quantizes_to_cents(self):
        self.assertEqual(to_money(0.1), Decimal("0.10"))
        self.assertEqual(to_money("2.005"), Decimal("2.01"))
        self.assertEqual(to_money(3), Decimal("3.00"))
        self.assertEqual(str(to_money("12.5")), "12.50")

    def test_line_total(self):
        self.assertEqual(line_total(Decimal("24.99"), 3), Decimal("74.97"))

    def test_format_money(self):
        self.assertEqual(format_money(Decimal("1234.5")), "$1,234.50")
        self.assertEqual(format_money(Decimal("0")), "$0.00")


class MarkdownTableTestCase(unittest.TestCase):
    def test_empty_rows(self):
        self.assertEqual(generate_markdown_table(["a"], []), "")

    def test_headers_and_alignment(self):
        md = generate_markdown_table(["Name", "Qty"], [["Tea", 2]], ["l", "r"])
        self.assertEqual(md.splitlines(), ["| Name | Qty |", "| :--- | ---: |", "| Tea | 2 |"])

    def test_first_row_used_as_header(self):
        md = generate_markdown_table(None, [["k", "v"], ["when", datetime(2025, 1, 1)]])
        self.assertTrue(md.startswith("| k | v |"))
        self.assertIn(":---:", md)

    def test_pipes_are_escaped(self):
        md = generate_markdown_table(["x"], [["a|b"]])
        self.assertIn("a\\|b", md)

    def test_align_length_mismatch(self):
        with self.assertRaises(ValueError):
            generate_markdown_table(["a", "b"], [["1", "2"]], ["l"])


if __name__ == "__main__":
    unittest.main()
