from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase, TestCase, override_settings

from payments.exceptions import BulkImportError
from payments.importing import plan_bulk_import
from payments.models import Product
from payments.repositories import ProductRepository


class PlanBulkImportTests(SimpleTestCase):
    def test_partial_success(self):
        plan = plan_bulk_import('Widget, 10\nBadLine\nGadget, -5\nWidget, 15', [])

        self.assertEqual(plan.added, 1)
        self.assertEqual(plan.updated, 1)
        self.assertEqual(plan.additions, [{'name': 'Widget', 'price': Decimal('15')}])
        self.assertEqual(
            [e.as_dict() for e in plan.errors],
            [
                {'line': 2, 'message': 'Invalid format, expected "name, price"', 'original_line': 'BadLine'},
                {'line': 3, 'message': 'Price must be greater than 0', 'original_line': 'Gadget, -5'},
            ],
        )

    def test_existing_product_matched_case_insensitively(self):
        existing = [SimpleNamespace(product_id='p1', name='Latte')]
        plan = plan_bulk_import('LATTE, 250', existing)

        self.assertEqual(plan.updates, {'p1': Decimal('250')})
        self.assertEqual((plan.added, plan.updated), (0, 1))

    def test_line_errors(self):
        plan = plan_bulk_import(' , 10\nTea, abc\nCake, 0', [])
        self.assertEqual(
            [e.message for e in plan.errors],
            ['Product name is required', 'Price must be a number', 'Price must be greater than 0'],
        )
        self.assertEqual(plan.added, 0)

    def test_price_keeps_text_after_first_comma(self):
        plan = plan_bulk_import('Tea, 1,5', [])
        self.assertEqual(plan.errors[0].message, 'Price must be a number')

    def test_blank_lines_are_skipped(self):
        plan = plan_bulk_import('\n\nTea, 5\n   \nBad\n', [])
        self.assertEqual(plan.added, 1)
        self.assertEqual(plan.errors[0].line, 2)

    def test_sub_cent_price_is_rejected(self):
        plan = plan_bulk_import('Tiny, 0.001', [])
        self.assertEqual(plan.added, 0)
        self.assertEqual(plan.errors[0].message, 'Price must be greater than 0')

    def test_price_rounded_to_cents(self):
        plan = plan_bulk_import('Tea, 2.005', [])
        self.assertEqual(str(plan.additions[0]['price']), '2.01')

    def test_price_above_storable_range_is_rejected(self):
        plan = plan_bulk_import('Yacht, 10000000000', [])
        self.assertEqual(plan.added, 0)
        self.assertEqual(len(plan.errors), 1)

    def test_non_text_input_raises(self):
        with self.assertRaises(BulkImportError):
            plan_bulk_import(None, [])

    @override_settings(PRODUCT_IMPORT_MAX_LINES=2)
    def test_too_many_lines_raises(self):
        with self.assertRaises(BulkImportError):
            plan_bulk_import('a, 1\nb, 2\nc, 3', [])


class ProductImportRepositoryTests(TestCase):
    def test_import_text_applies_plan(self):
        latte = Product.objects.create(name='Latte', price=Decimal('200.00'))

        summary = ProductRepository().import_text('latte, 220\nCroissant, 150.50\nOops')

        self.assertEqual(summary['added'], 1)
        self.assertEqual(summary['updated'], 1)
        self.assertEqual(len(summary['errors']), 1)
        latte.refresh_from_db()
        self.assertEqual(latte.price, Decimal('220.00'))
        self.assertEqual(Product.objects.get(name='Croissant').price, Decimal('150.50'))
        self.assertEqual(Product.objects.count(), 2)

    def test_sub_cent_price_is_not_stored(self):
        summary = ProductRepository().import_text('Tiny, 0.001\nMint, 0.005')

        self.assertEqual(summary['added'], 1)
        self.assertEqual(summary['errors'][0]['line'], 1)
        self.assertFalse(Product.objects.filter(name='Tiny').exists())
        self.assertEqual(Product.objects.get(name='Mint').price, Decimal('0.01'))
