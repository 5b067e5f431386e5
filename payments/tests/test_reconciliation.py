import datetime
from decimal import Decimal

from django.test import SimpleTestCase, TestCase

from payments.models import Transaction
from payments.reconciliation import history_item_to_transaction, is_empty, reconcile
from payments.repositories import TransactionRepository


class ReconcileTests(SimpleTestCase):
    def test_payment_url_is_not_regressed(self):
        existing = {'id': '5', 'payment_url': 'https://x', 'status': 'pending', 'amount': 100}
        incoming = {'id': '5', 'payment_url': '', 'status': 'completed', 'amount': 100, 'tag': 'SBP1'}

        merged = reconcile(existing, incoming)

        self.assertEqual(merged['payment_url'], 'https://x')
        self.assertEqual(merged['status'], 'completed')
        self.assertEqual(merged['tag'], 'SBP1')

    def test_absent_fields_keep_existing_values(self):
        merged = reconcile({'id': '5', 'products': [{'name': 'Latte'}]}, {'id': '5'})
        self.assertEqual(merged['products'], [{'name': 'Latte'}])

    def test_incoming_non_empty_value_wins(self):
        merged = reconcile({'id': '5', 'customer_info': 'old'}, {'id': '5', 'customer_info': 'new'})
        self.assertEqual(merged['customer_info'], 'new')

    def test_terminal_status_is_final(self):
        merged = reconcile({'id': '5', 'status': 'completed'}, {'id': '5', 'status': 'pending'})
        self.assertEqual(merged['status'], 'completed')

    def test_without_existing_returns_copy(self):
        incoming = {'id': '5', 'status': 'pending'}
        merged = reconcile(None, incoming)
        self.assertEqual(merged, incoming)
        self.assertIsNot(merged, incoming)

    def test_zero_is_not_empty(self):
        self.assertFalse(is_empty(0))
        self.assertTrue(is_empty(''))
        self.assertTrue(is_empty([]))
        self.assertTrue(is_empty(None))

    def test_history_item_conversion(self):
        record = history_item_to_transaction({
            'id': '77', 'amount': 250, 'paymentStatus': 2, 'comment': 'Tea',
            'accountToName': 'Coffee Corner', 'createdAt': '2025-10-30T08:00:00Z',
            'finishedAt': '', 'tag': 'SBP9', 'totalCommission': 3,
        })
        self.assertEqual(record['status'], 'failed')
        self.assertEqual(record['customer_info'], 'Tea')
        self.assertIsNone(record['finished_at'])
        self.assertEqual(record['commission'], 3)


class TransactionRepositoryTests(TestCase):
    def setUp(self):
        self.repository = TransactionRepository()
        self.record = {
            'id': '5',
            'amount': 1500,
            'status': 'pending',
            'created_at': '2025-10-30T08:00:00+00:00',
            'customer_info': 'Latte x2',
            'merchant_name': 'Coffee Corner',
            'tag': 'Order-1',
            'payment_url': 'https://pay.test/5',
        }

    def test_upsert_is_idempotent(self):
        first, created_first = self.repository.upsert_by_id(self.record)
        second, created_second = self.repository.upsert_by_id(self.record)

        self.assertTrue(created_first)
        self.assertFalse(created_second)
        self.assertEqual(first, second)
        self.assertEqual(Transaction.objects.filter(transaction_id='5').count(), 1)

    def test_status_refresh_keeps_payment_url(self):
        self.repository.upsert_by_id(self.record)
        stored, _ = self.repository.upsert_by_id({
            'id': '5', 'amount': 1500, 'status': 'completed', 'created_at': '2025-10-30T08:00:00+00:00',
            'finished_at': '2025-10-30T08:02:00+00:00', 'customer_info': '', 'tag': 'SBP42',
        })

        self.assertEqual(stored['status'], 'completed')
        self.assertEqual(stored['payment_url'], 'https://pay.test/5')
        self.assertEqual(stored['customer_info'], 'Latte x2')
        self.assertEqual(stored['tag'], 'SBP42')
        self.assertEqual(stored['amount'], Decimal('1500.00'))
        self.assertEqual(
            Transaction.objects.get(transaction_id='5').finished_at,
            datetime.datetime(2025, 10, 30, 8, 2, tzinfo=datetime.timezone.utc),
        )

    def test_late_pending_fetch_does_not_reopen_completed(self):
        self.repository.upsert_by_id({**self.record, 'status': 'completed'})
        stored, _ = self.repository.upsert_by_id(self.record)
        self.assertEqual(stored['status'], 'completed')

    def test_bulk_apply_counts(self):
        self.repository.upsert_by_id(self.record)
        counts = self.repository.bulk_apply([
            {**self.record, 'status': 'completed'},
            {'id': '6', 'amount': 10, 'status': 'pending'},
            {'id': '', 'amount': 1},
        ])
        self.assertEqual(counts, {'added': 1, 'updated': 1})
        self.assertEqual(self.repository.get('5')['status'], 'completed')

    def test_list_filters_by_status(self):
        self.repository.bulk_apply([
            {**self.record, 'id': '1', 'status': 'completed'},
            {**self.record, 'id': '2'},
        ])
        self.assertEqual([r['id'] for r in self.repository.list(status='pending')], ['2'])
        self.assertEqual(len(self.repository.list()), 2)

    def test_remove(self):
        self.repository.upsert_by_id(self.record)
        self.assertTrue(self.repository.remove('5'))
        self.assertIsNone(self.repository.get('5'))
        self.assertFalse(self.repository.remove('5'))
