"""
Merging of provider transaction payloads into the canonical local record.

Both functions are storage-agnostic: they take plain dicts keyed by the
canonical field names and return a new dict.
"""
from typing import Any, Dict, Optional

from django.utils import timezone

from .status import is_terminal, map_status

TRANSACTION_FIELDS = (
    'id',
    'amount',
    'status',
    'created_at',
    'finished_at',
    'customer_info',
    'merchant_name',
    'tag',
    'commission',
    'payment_url',
    'products',
)


def is_empty(value) -> bool:
    return value is None or value == '' or value == [] or value == {}


def reconcile(existing: Optional[Dict[str, Any]], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``incoming`` over ``existing`` without regressing known fields.

    A field that is non-empty on the existing record and empty or absent on the
    incoming one keeps the existing value (a payment link survives status-only
    refreshes). A completed/failed status is final.
    """
    merged = dict(incoming)
    if not existing:
        return merged

    for key, value in existing.items():
        if is_empty(value):
            continue
        if is_empty(merged.get(key)):
            merged[key] = value

    previous_status = existing.get('status')
    if is_terminal(previous_status) and merged.get('status') != previous_status:
        merged['status'] = previous_status
    return merged


def history_item_to_transaction(item: Dict[str, Any], now=None) -> Dict[str, Any]:
    """Convert a PaymentHistoryItem (report list shape) to the canonical shape."""
    now = now or timezone.now()
    return {
        'id': str(item.get('id') or ''),
        'amount': item.get('amount') or 0,
        'status': map_status(item.get('paymentStatus')),
        'created_at': item.get('createdAt') or now.isoformat(),
        'finished_at': item.get('finishedAt') or None,
        'customer_info': item.get('comment') or '',
        'merchant_name': item.get('accountToName') or '',
        'tag': item.get('tag') or '',
        'commission': item.get('totalCommission') or 0,
    }
