"""Domain exceptions for the payments app."""


class PaymentsError(Exception):
    """Base exception for all payments errors."""
    pass


class PaymentApiError(PaymentsError):
    """The payment provider call did not produce a usable result."""

    def __init__(self, message, status_code=None, raw_response=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.raw_response = raw_response


class PaymentApiTransportError(PaymentApiError):
    """Network failure or an unparseable response body."""
    pass


class PaymentApiResponseError(PaymentApiError):
    """The provider answered with a non-2xx status."""
    pass


class CredentialsNotConfigured(PaymentsError):
    """No verified merchant credentials are stored."""
    pass


class BulkImportError(PaymentsError):
    """Import input cannot be processed at all (wrong type, too many lines)."""
    pass


class WithdrawalRequestError(PaymentsError):
    """The withdrawal request could not be relayed to the operators."""
    pass
