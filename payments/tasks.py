import datetime, time, logging
from celery import shared_task, Task
from django.conf import settings

from .exceptions import CredentialsNotConfigured, PaymentApiError
from .services import check_transaction_status, sync_payment_history
from .status import is_terminal
from terminal.settings import set_correlation_id, get_correlation_id
logger = logging.getLogger(__name__)
task_logger = logging.getLogger("observability.tasks")


class ObservabilityTask(Task):
    abstract = True

    def __call__(self, *args, **kwargs):
        self._start = time.time()

        # Use incoming correlation ID, else generate one
        cid = kwargs.get("correlation_id") or getattr(self.request, "correlation_id", None)
        set_correlation_id(cid)

        return super().__call__(*args, **kwargs)

    def _task_extra(self, task_id):
        duration = time.time() - getattr(self, "_start", time.time())
        return {
            "correlation_id": get_correlation_id(),
            "task_name": self.name,
            "task_id": task_id,
            "queue": (self.request.delivery_info or {}).get("routing_key"),
            "retries": self.request.retries,
            "duration_sec": f"{duration:.4f}",
        }

    def on_success(self, retval, task_id, args, kwargs):
        task_logger.info(f"{self.name} completed", extra=self._task_extra(task_id))

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        task_logger.error(f"{self.name} failed: {exc}", extra=self._task_extra(task_id))


@shared_task(bind=True, base=ObservabilityTask)
def poll_transaction_status(self, transaction_id, started_at=None, correlation_id=None):
    """Re-check a pending payment until it completes, fails or the payment window closes.

    Reschedules itself every PAYMENT_POLL_INTERVAL seconds. Returns the stored
    status after this tick, or None when the fetch failed.
    """
    started_at = started_at or time.time()
    correlation_id = correlation_id or get_correlation_id()
    poll_info = {"correlation_id": correlation_id, "transaction_id": transaction_id}

    try:
        record = check_transaction_status(transaction_id)
    except CredentialsNotConfigured:
        logger.warning("transaction_poll_without_credentials", extra=poll_info)
        return None
    except PaymentApiError as e:
        # transport/remote failure: try again on the next tick
        logger.warning(
            "transaction_poll_failed",
            extra={**poll_info, "error": e.message, "status_code": e.status_code}
        )
        record = None

    status = record['status'] if record else None
    if status and is_terminal(status):
        logger.info("transaction_poll_finished", extra={**poll_info, "status": status})
        return status

    if time.time() - started_at >= settings.PAYMENT_POLL_TIMEOUT:
        logger.info("transaction_poll_expired", extra=poll_info)
        return status

    poll_transaction_status.apply_async(
        args=[transaction_id],
        kwargs={"started_at": started_at, "correlation_id": correlation_id},
        countdown=settings.PAYMENT_POLL_INTERVAL,
    )
    return status


def _as_date(value):
    if value is None or isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(value)


@shared_task(bind=True, base=ObservabilityTask)
def sync_payment_history_task(self, date_from=None, date_to=None, correlation_id=None):
    """Pull the provider's payment report into the transaction store.

    Failures are not retried here; the next scheduled or user-triggered sync
    picks up where this one failed.
    """
    task_start = time.time()
    correlation_id = correlation_id or get_correlation_id()
    logger.info(
        "task_started",
        extra={"correlation_id": correlation_id, "task_name": self.name}
    )

    try:
        result = sync_payment_history(date_from=_as_date(date_from), date_to=_as_date(date_to))
    except CredentialsNotConfigured:
        logger.warning("history_sync_without_credentials", extra={"correlation_id": correlation_id})
        return None
    except PaymentApiError as e:
        logger.warning(
            "history_sync_failed",
            extra={"correlation_id": correlation_id, "error": e.message, "status_code": e.status_code}
        )
        raise

    logger.info(
        "task_completed",
        extra={
            "correlation_id": correlation_id,
            "task_name": self.name,
            "duration_sec": round(time.time() - task_start, 4),
        }
    )
    return result
