from numbers import Number

STATUS_PENDING = 'pending'
STATUS_COMPLETED = 'completed'
STATUS_FAILED = 'failed'

STATUS_CHOICES = [
    (STATUS_PENDING, 'Pending'),
    (STATUS_COMPLETED, 'Completed'),
    (STATUS_FAILED, 'Failed'),
]

TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED})

# provider paymentStatus codes: 1 = processing, 2 = failed/not paid, 3 = completed
PAYMENT_STATUS_CODES = {
    3: STATUS_COMPLETED,
    2: STATUS_FAILED,
}

STRING_STATUSES = {
    'completed': STATUS_COMPLETED,
    'failed': STATUS_FAILED,
}


def map_status(code) -> str:
    """Translate a provider status (numeric code or string) into a local status.

    Anything unrecognised, including code 1, missing values and malformed
    input, is treated as pending.
    """
    if isinstance(code, str):
        return STRING_STATUSES.get(code, STATUS_PENDING)
    if isinstance(code, Number) and not isinstance(code, bool):
        return PAYMENT_STATUS_CODES.get(code, STATUS_PENDING)
    return STATUS_PENDING


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES
