import datetime
import time
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from payments.exceptions import PaymentApiResponseError, PaymentApiTransportError
from payments.models import MerchantCredentials, Transaction
from payments.tasks import poll_transaction_status, sync_payment_history_task
from payments.tests.helpers import CREDENTIALS, fake_response


@override_settings(PAYMENT_POLL_INTERVAL=10, PAYMENT_POLL_TIMEOUT=900)
class PollTransactionStatusTests(TestCase):
    def setUp(self):
        patcher = mock.patch('payments.tasks.poll_transaction_status.apply_async')
        self.apply_async = patcher.start()
        self.addCleanup(patcher.stop)

    @mock.patch('payments.tasks.check_transaction_status')
    def test_pending_reschedules(self, check):
        check.return_value = {'id': '5', 'status': 'pending'}
        started = time.time()

        status = poll_transaction_status('5', started_at=started, correlation_id='cid-1')

        self.assertEqual(status, 'pending')
        self.apply_async.assert_called_once_with(
            args=['5'],
            kwargs={'started_at': started, 'correlation_id': 'cid-1'},
            countdown=10,
        )

    @mock.patch('payments.tasks.check_transaction_status')
    def test_terminal_status_stops(self, check):
        check.return_value = {'id': '5', 'status': 'completed'}
        self.assertEqual(poll_transaction_status('5'), 'completed')
        self.apply_async.assert_not_called()

    @mock.patch('payments.tasks.check_transaction_status')
    def test_fetch_error_tries_again(self, check):
        check.side_effect = PaymentApiTransportError('timed out')
        self.assertIsNone(poll_transaction_status('5'))
        self.apply_async.assert_called_once()

    @mock.patch('payments.tasks.check_transaction_status')
    def test_gives_up_after_payment_window(self, check):
        check.return_value = {'id': '5', 'status': 'pending'}
        self.assertEqual(poll_transaction_status('5', started_at=time.time() - 901), 'pending')
        self.apply_async.assert_not_called()

    def test_without_credentials_does_nothing(self):
        self.assertIsNone(poll_transaction_status('5'))
        self.apply_async.assert_not_called()

    def test_polls_provider_and_stores_result(self):
        MerchantCredentials.objects.create(**CREDENTIALS)
        body = {'value': {'id': 5, 'amount': 300, 'paymentStatus': 2}}
        with mock.patch('payments.client.requests.Session.request', return_value=fake_response(200, body)):
            self.assertEqual(poll_transaction_status('5'), 'failed')
        self.assertEqual(Transaction.objects.get(transaction_id='5').status, 'failed')


class SyncPaymentHistoryTaskTests(TestCase):
    @mock.patch('payments.tasks.sync_payment_history')
    def test_passes_parsed_dates(self, sync):
        sync.return_value = {'added': 0, 'updated': 0}
        sync_payment_history_task(date_from='2025-10-01', date_to='2025-10-31')
        sync.assert_called_once_with(
            date_from=datetime.date(2025, 10, 1), date_to=datetime.date(2025, 10, 31)
        )

    @mock.patch('payments.tasks.sync_payment_history')
    def test_provider_error_is_raised(self, sync):
        sync.side_effect = PaymentApiResponseError('Unauthorized', status_code=401)
        with self.assertRaises(PaymentApiResponseError):
            sync_payment_history_task()

    def test_without_credentials_returns_none(self):
        self.assertIsNone(sync_payment_history_task())


class SyncPaymentsCommandTests(TestCase):
    def test_command_reports_counts(self):
        MerchantCredentials.objects.create(**CREDENTIALS)
        body = {'value': {'count': 1, 'items': [{'id': 1, 'amount': 10, 'paymentStatus': 3}]}, 'isSuccess': True}
        out = StringIO()
        with mock.patch('payments.client.requests.Session.request', return_value=fake_response(200, body)):
            call_command('sync_payments', '--from', '2025-10-01', '--to', '2025-10-31', stdout=out)

        self.assertIn('Synced 1 payments (2025-10-01 .. 2025-10-31): 1 added, 0 updated', out.getvalue())

    def test_command_without_credentials_fails(self):
        with self.assertRaises(CommandError):
            call_command('sync_payments', stdout=StringIO())
