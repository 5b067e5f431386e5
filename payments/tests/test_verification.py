from unittest import mock

from django.test import SimpleTestCase

from payments.client import BalanceDTO, ValidationResult
from payments.tests.helpers import CREDENTIALS
from payments.verification import (
    STATE_FAILED,
    STATE_NOT_STARTED,
    STATE_STEP3_PASSED,
    CredentialVerification,
    verify_credentials,
)


def passed(step, data=None):
    return ValidationResult(success=True, step=step, raw_response='{}', status_code=200, data=data)


def failed(step, error='Unauthorized', raw='{"title": "Unauthorized"}', status_code=401):
    return ValidationResult(success=False, step=step - 1, error=error, raw_response=raw, status_code=status_code)


class CredentialVerificationTests(SimpleTestCase):
    def setUp(self):
        self.client = mock.Mock()

    def test_step1_failure_short_circuits(self):
        self.client.validate_step1.return_value = failed(1)

        verification = verify_credentials(CREDENTIALS, client=self.client)

        self.assertEqual(self.client.validate_step1.call_count, 1)
        self.client.validate_step2.assert_not_called()
        self.client.validate_step3.assert_not_called()
        self.assertEqual(verification.state, STATE_FAILED)
        self.assertEqual(verification.step, 0)
        self.assertEqual(verification.failed_step, 1)
        self.assertEqual(verification.failed_field, 'access_key')
        self.assertEqual(verification.error, 'Unauthorized')
        self.assertEqual(verification.raw_response, '{"title": "Unauthorized"}')

    def test_step2_failure_keeps_step1_progress(self):
        self.client.validate_step1.return_value = passed(1)
        self.client.validate_step2.return_value = failed(2, error='Account not found', status_code=404)

        verification = verify_credentials(CREDENTIALS, client=self.client)

        self.client.validate_step3.assert_not_called()
        self.assertFalse(verification.succeeded)
        self.assertEqual(verification.step, 1)
        self.assertEqual(verification.failed_step, 2)
        self.assertEqual(verification.failed_field, 'account_number')
        self.assertEqual(verification.status_code, 404)

    def test_all_steps_pass_in_order(self):
        account = BalanceDTO(available=500, pending=20, currency='643', account_name='Main')
        customer = BalanceDTO(available=42)
        calls = []
        self.client.validate_step1.side_effect = lambda *a: calls.append(1) or passed(1)
        self.client.validate_step2.side_effect = lambda *a: calls.append(2) or passed(2, account)
        self.client.validate_step3.side_effect = lambda *a: calls.append(3) or passed(3, customer)

        verification = verify_credentials(CREDENTIALS, client=self.client)

        self.assertEqual(calls, [1, 2, 3])
        self.assertTrue(verification.succeeded)
        self.assertEqual(verification.state, STATE_STEP3_PASSED)
        self.assertEqual(verification.step, 3)
        self.assertIs(verification.account_balance, account)
        self.assertIs(verification.customer_balance, customer)
        self.client.validate_step1.assert_called_once_with(
            CREDENTIALS['access_key'], CREDENTIALS['account_guid'], CREDENTIALS['currency_code']
        )
        self.client.validate_step2.assert_called_once_with(
            CREDENTIALS['access_key'], CREDENTIALS['account_guid'], CREDENTIALS['account_number']
        )
        self.client.validate_step3.assert_called_once_with(CREDENTIALS['access_key'], CREDENTIALS['client_id'])

    def test_failure_result_carries_step_message_and_raw_response(self):
        self.client.validate_step1.return_value = passed(1)
        self.client.validate_step2.return_value = passed(2, BalanceDTO())
        self.client.validate_step3.return_value = failed(3, error='Client not found', raw='not found')

        body = verify_credentials(CREDENTIALS, client=self.client).as_dict()

        self.assertFalse(body['success'])
        self.assertEqual(body['step'], 2)
        self.assertEqual(body['failed_step'], 3)
        self.assertEqual(body['failed_field'], 'client_id')
        self.assertEqual(body['error'], 'Client not found')
        self.assertEqual(body['raw_response'], 'not found')
        self.assertEqual(len(body['results']), 3)

    def test_cannot_run_twice(self):
        self.client.validate_step1.return_value = failed(1)
        verification = CredentialVerification(CREDENTIALS, client=self.client)
        self.assertEqual(verification.state, STATE_NOT_STARTED)

        verification.run()
        with self.assertRaises(RuntimeError):
            verification.run()
        self.assertEqual(self.client.validate_step1.call_count, 1)
