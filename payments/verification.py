"""
Three-step remote verification of merchant credentials.

Steps run strictly in order, each only after the previous one succeeded:

1. access key + account GUID + currency code (payment preparation probe)
2. account number (account balance lookup)
3. client id (customer balance lookup)

The first failure ends the run. The resulting state carries the failed step,
the provider's message and the raw response for diagnostics.
"""
import logging

from .client import PaymentApiClient

logger = logging.getLogger(__name__)

STATE_NOT_STARTED = 'not_started'
STATE_STEP1_PASSED = 'step1_passed'
STATE_STEP2_PASSED = 'step2_passed'
STATE_STEP3_PASSED = 'step3_passed'
STATE_FAILED = 'failed'

PASSED_STATES = {
    1: STATE_STEP1_PASSED,
    2: STATE_STEP2_PASSED,
    3: STATE_STEP3_PASSED,
}

# field whose value a failed step rejects
STEP_FIELDS = {
    1: 'access_key',
    2: 'account_number',
    3: 'client_id',
}


class CredentialVerification:
    def __init__(self, credentials, client=None):
        self.credentials = credentials
        self.client = client or PaymentApiClient.from_settings()
        self.state = STATE_NOT_STARTED
        self.step = 0
        self.failed_step = None
        self.error = None
        self.raw_response = None
        self.status_code = None
        self.results = []
        self.account_balance = None
        self.customer_balance = None

    @property
    def succeeded(self):
        return self.state == STATE_STEP3_PASSED

    @property
    def failed_field(self):
        return STEP_FIELDS.get(self.failed_step)

    def _steps(self):
        c = self.credentials
        yield 1, lambda: self.client.validate_step1(c['access_key'], c['account_guid'], c['currency_code'])
        yield 2, lambda: self.client.validate_step2(c['access_key'], c['account_guid'], c['account_number'])
        yield 3, lambda: self.client.validate_step3(c['access_key'], c['client_id'])

    def _fail(self, number, result):
        self.state = STATE_FAILED
        self.failed_step = number
        self.error = result.error
        self.raw_response = result.raw_response
        self.status_code = result.status_code
        logger.warning(
            "credential_verification_failed",
            extra={"failed_step": number, "steps_completed": self.step, "error": result.error}
        )

    def run(self):
        if self.state != STATE_NOT_STARTED:
            raise RuntimeError('Verification already ran; start a new one to resubmit')

        for number, call in self._steps():
            result = call()
            self.results.append(result)
            if not result.success:
                self._fail(number, result)
                return self

            self.step = number
            self.state = PASSED_STATES[number]
            if number == 2:
                self.account_balance = result.data
            elif number == 3:
                self.customer_balance = result.data

        logger.info("credential_verification_passed", extra={"steps_completed": self.step})
        return self

    def as_dict(self):
        return {
            'state': self.state,
            'step': self.step,
            'success': self.succeeded,
            'failed_step': self.failed_step,
            'failed_field': self.failed_field,
            'error': self.error,
            'raw_response': self.raw_response,
            'status_code': self.status_code,
            'account_balance': self.account_balance.as_dict() if self.account_balance else None,
            'customer_balance': self.customer_balance.as_dict() if self.customer_balance else None,
            'results': [r.as_dict() for r in self.results],
        }


def verify_credentials(credentials, client=None):
    """Run all three steps for a credentials mapping and return the finished verification."""
    return CredentialVerification(credentials, client=client).run()
