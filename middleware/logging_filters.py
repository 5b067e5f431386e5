import logging
import re

from terminal.settings import get_correlation_id

GUID_PATTERN = re.compile(r'\b([0-9a-fA-F]{8})-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{8}([0-9a-fA-F]{4})\b')


def mask_guid(text):
    return GUID_PATTERN.sub(r'****\2', text)


class EnsureObservabilityFields(logging.Filter):
    """
    Fills every field the http/celery/provider JSON formatters reference, so
    records from Django internals or the payment client never raise KeyError.
    Access keys and account GUIDs are masked before a record is formatted.
    """

    HTTP_DEFAULTS = {
        "method": "-",
        "type": "-",
        "client_ip": "-",
        "user_agent": "-",
        "path": "-",
        "status_code": "-",
        "response_bytes": "-",
    }
    TASK_DEFAULTS = {
        "task_name": "-",
        "task_id": "-",
        "queue": "-",
        "retries": "-",
    }
    PROVIDER_DEFAULTS = {
        "endpoint": "-",
    }

    def filter(self, record):
        defaults = {"correlation_id": "-", "duration_sec": "-"}
        defaults.update(self.HTTP_DEFAULTS)
        defaults.update(self.TASK_DEFAULTS)
        defaults.update(self.PROVIDER_DEFAULTS)
        for key, value in defaults.items():
            if not hasattr(record, key):
                setattr(record, key, value)

        if record.correlation_id == "-":
            record.correlation_id = get_correlation_id() or "-"

        if isinstance(record.msg, str):
            record.msg = mask_guid(record.msg)
        for key in ("error", "endpoint", "path"):
            value = getattr(record, key, None)
            if isinstance(value, str):
                setattr(record, key, mask_guid(value))
        return True
