import logging

from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from middleware.logging_filters import EnsureObservabilityFields, mask_guid
from payments.tests.helpers import ACCESS_KEY


class CorrelationIdTests(TestCase):
    def test_header_is_echoed(self):
        r = APIClient().get(reverse('transaction-list'), HTTP_X_CORRELATION_ID='terminal-42')
        self.assertEqual(r['X-Correlation-ID'], 'terminal-42')

    def test_id_generated_when_missing(self):
        r = APIClient().get(reverse('transaction-list'))
        self.assertTrue(r['X-Correlation-ID'])


class ObservabilityFilterTests(SimpleTestCase):
    def make_record(self, msg, **extra):
        record = logging.LogRecord('payments', logging.INFO, __file__, 1, msg, None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_missing_fields_get_defaults(self):
        record = self.make_record('hello')
        self.assertTrue(EnsureObservabilityFields().filter(record))
        self.assertEqual(record.endpoint, '-')
        self.assertEqual(record.task_id, '-')
        self.assertEqual(record.status_code, '-')

    def test_access_keys_are_masked(self):
        record = self.make_record(f'rejected {ACCESS_KEY}', error=f'bad key {ACCESS_KEY}')
        EnsureObservabilityFields().filter(record)
        self.assertNotIn(ACCESS_KEY, record.msg)
        self.assertTrue(record.msg.endswith('****9b0c'))
        self.assertEqual(record.error, 'bad key ****9b0c')

    def test_mask_leaves_other_text(self):
        self.assertEqual(mask_guid('account 14744'), 'account 14744')
