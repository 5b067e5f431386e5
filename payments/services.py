import datetime
import logging

from django.conf import settings
from django.utils import timezone

from .client import PaymentApiClient
from .exceptions import CredentialsNotConfigured
from .reconciliation import history_item_to_transaction
from .repositories import CredentialsRepository, TransactionRepository

logger = logging.getLogger(__name__)


def get_active_credentials(repository=None):
    credentials = (repository or CredentialsRepository()).get()
    if credentials is None:
        raise CredentialsNotConfigured('Merchant credentials are not configured')
    return credentials


def check_transaction_status(payment_id, client=None, repository=None, credentials=None):
    """Fetch one payment from the provider and reconcile it into the store."""
    credentials = credentials or get_active_credentials()
    client = client or PaymentApiClient.from_settings()
    repository = repository or TransactionRepository()

    incoming = client.get_payment(credentials, payment_id)
    record, _ = repository.upsert_by_id(incoming)
    return record


def create_payment(amount, products=(), comment=None, client=None, repository=None, credentials=None):
    """Prepare a payment with the provider and store it as pending."""
    credentials = credentials or get_active_credentials()
    client = client or PaymentApiClient.from_settings()
    repository = repository or TransactionRepository()

    incoming = client.create_payment(credentials, amount, products=products, comment=comment)
    record, _ = repository.upsert_by_id(incoming)
    logger.info(
        "payment_created",
        extra={"transaction_id": record['id'], "amount": str(record['amount'])}
    )
    return record


def default_history_range(today=None):
    """Last PAYMENT_HISTORY_DAYS days; DateTo is tomorrow so today's payments are included."""
    today = today or timezone.localdate()
    return (
        today - datetime.timedelta(days=settings.PAYMENT_HISTORY_DAYS),
        today + datetime.timedelta(days=1),
    )


def sync_payment_history(date_from=None, date_to=None, client=None, repository=None, credentials=None):
    credentials = credentials or get_active_credentials()
    client = client or PaymentApiClient.from_settings()
    repository = repository or TransactionRepository()

    default_from, default_to = default_history_range()
    date_from = date_from or default_from
    date_to = date_to or default_to

    history = client.get_payment_history(credentials, date_from.isoformat(), date_to.isoformat())
    now = timezone.now()
    records = [history_item_to_transaction(item, now=now) for item in history.items]
    counts = repository.bulk_apply(records)

    logger.info(
        "payment_history_synced",
        extra={
            "date_from": date_from.isoformat(),
            "date_to": date_to.isoformat(),
            "received": len(history.items),
            **counts,
        }
    )
    return {
        'date_from': date_from.isoformat(),
        'date_to': date_to.isoformat(),
        'count': history.count,
        'received': len(history.items),
        'is_success': history.is_success,
        **counts,
    }
