import json
import logging
import math
import time
import traceback
from dataclasses import asdict, dataclass, field
from numbers import Number
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings
from django.utils import timezone

from .exceptions import PaymentApiResponseError, PaymentApiTransportError
from .status import STATUS_PENDING, map_status

logger = logging.getLogger(__name__)
provider_logger = logging.getLogger("observability.payments")

PREPARE_PAYMENT_PATH = '/payments/external/incoming/card/prepare'
ACCOUNT_BALANCE_PATH = '/account/balance/{account_number}'
CUSTOMER_BALANCE_PATH = '/customer/balance/{client_id}'
PAYMENT_REPORT_PATH = '/report/payment/{payment_id}'
PAYMENT_HISTORY_PATH = '/report/payments'


@dataclass
class BalanceDTO:
    available: Any = 0
    pending: Any = 0
    currency: str = 'RUB'
    account_name: str = ''

    def as_dict(self):
        return asdict(self)


@dataclass
class ValidationResult:
    """Outcome of one credential verification step.

    ``step`` is the number of steps completed so far: a failed step reports the
    count reached before it, not its own index.
    """
    success: bool
    step: int
    error: Optional[str] = None
    raw_response: Optional[str] = None
    status_code: Optional[int] = None
    data: Optional[BalanceDTO] = None

    def as_dict(self):
        return {
            'success': self.success,
            'step': self.step,
            'error': self.error,
            'raw_response': self.raw_response,
            'status_code': self.status_code,
            'data': self.data.as_dict() if self.data is not None else None,
        }


@dataclass
class PaymentHistory:
    count: int = 0
    items: List[Dict[str, Any]] = field(default_factory=list)
    is_success: bool = False


# ---------------------------------------------------------------------------
# Wire-shape normalisation
# ---------------------------------------------------------------------------

def _number(value, default=0):
    if isinstance(value, Number) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def _unwrap(raw):
    """Return (record, wrapped) for bodies shaped either flat or ``{"value": {...}}``."""
    if not isinstance(raw, dict):
        return {}, False
    value = raw.get('value')
    if isinstance(value, dict):
        return value, True
    return raw, False


def normalize_balance_response(raw, include_locked=True) -> BalanceDTO:
    body = raw if isinstance(raw, dict) else {}
    value = body.get('value')
    if isinstance(value, dict) and isinstance(value.get('balance'), Number):
        source = value
    else:
        source = body

    currency = source.get('currency')
    return BalanceDTO(
        available=_number(source.get('balance')),
        pending=_number(source.get('lockedBalance')) if include_locked else 0,
        currency=str(currency) if currency else 'RUB',
        account_name=(source.get('accountName') or '') if include_locked else '',
    )


def normalize_payment_response(raw, payment_id, merchant_name='', now=None) -> Dict[str, Any]:
    """Canonical transaction record from a ``/report/payment/{id}`` body.

    The value-wrapped shape carries a numeric ``paymentStatus``; the older flat
    shape carries a string ``status`` plus ``description``/``orderId``.
    """
    now = now or timezone.now()
    record, wrapped = _unwrap(raw)

    if wrapped:
        return {
            'id': str(record.get('id') or payment_id),
            'amount': _number(record.get('amount')),
            'status': map_status(record.get('paymentStatus')),
            'created_at': record.get('createdAt') or now.isoformat(),
            'finished_at': record.get('finishedAt') or None,
            'customer_info': record.get('comment') or '',
            'merchant_name': record.get('accountToName') or '',
            'tag': record.get('tag') or '',
            'commission': _number(record.get('totalCommission')),
        }

    order_id = record.get('orderId')
    return {
        'id': str(record.get('id') or payment_id),
        'amount': _number(record.get('amount')),
        'status': map_status(record.get('status')),
        'created_at': record.get('createdAt') or now.isoformat(),
        'customer_info': record.get('description') or '',
        'merchant_name': merchant_name or '',
        'tag': str(order_id) if order_id is not None else '',
    }


def normalize_history_item(item) -> Dict[str, Any]:
    """Fill defaults for one PaymentHistoryItem of ``/report/payments``."""
    item = item if isinstance(item, dict) else {}
    normalized = {'id': str(item['id']) if item.get('id') is not None else ''}
    for key in ('amount', 'totalCommission', 'currency', 'paymentDirection', 'paymentType',
                'paymentStatus', 'amountFrom', 'amountTo', 'rubRate', 'currencyFrom',
                'currencyTo', 'totalCommissionFrom', 'totalCommissionTo'):
        normalized[key] = _number(item.get(key))
    for key in ('comment', 'accountToName', 'createdAt', 'finishedAt', 'tag'):
        normalized[key] = item.get(key) or ''
    return normalized


def extract_error_message(status_code, data) -> str:
    fallback = f'API Error: {status_code}'
    if isinstance(data, dict):
        return data.get('message') or data.get('title') or json.dumps(data)
    if isinstance(data, list):
        return json.dumps(data)
    if isinstance(data, str):
        return data or fallback
    return fallback


def transport_diagnostic(exc) -> str:
    return json.dumps({
        'error': type(exc).__name__,
        'message': str(exc),
        'stack': ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    })


def _parse_body(text):
    try:
        return json.loads(text)
    except ValueError:
        return text


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class PaymentApiClient:
    """Thin wrapper over the payment provider REST API."""

    def __init__(self, base_url, timeout=15, session=None, callback_url='', return_url='',
                 probe_amount=100):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.callback_url = callback_url
        self.return_url = return_url
        self.probe_amount = probe_amount

    @classmethod
    def from_settings(cls, session=None):
        return cls(
            base_url=settings.PAYMENT_API_BASE_URL,
            timeout=settings.PAYMENT_API_TIMEOUT,
            session=session,
            callback_url=settings.PAYMENT_CALLBACK_URL,
            return_url=settings.PAYMENT_RETURN_URL,
            probe_amount=settings.PAYMENT_PROBE_AMOUNT,
        )

    @staticmethod
    def _headers(access_key, account_guid=None, customer_id=None):
        headers = {'Content-Type': 'application/json', 'accessKey': access_key}
        if account_guid is not None:
            headers['accountIdGuid'] = account_guid
        if customer_id is not None:
            headers['customerId'] = customer_id
        return headers

    def _send(self, method, path, headers, payload=None, params=None):
        """Perform one call; returns (status_code, text, parsed body)."""
        start = time.time()
        try:
            response = self.session.request(
                method,
                f'{self.base_url}{path}',
                headers=headers,
                json=payload,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            provider_logger.error(
                "provider_call_failed",
                extra={
                    "endpoint": f"{method} {path}",
                    "error": str(exc),
                    "duration_sec": round(time.time() - start, 4),
                }
            )
            raise PaymentApiTransportError(str(exc), raw_response=transport_diagnostic(exc)) from exc

        text = response.text or ''
        provider_logger.info(
            "provider_call",
            extra={
                "endpoint": f"{method} {path}",
                "status_code": response.status_code,
                "duration_sec": round(time.time() - start, 4),
            }
        )
        return response.status_code, text, _parse_body(text)

    def _call(self, method, path, headers, payload=None, params=None):
        status_code, text, data = self._send(method, path, headers, payload, params)
        if not 200 <= status_code < 300:
            raise PaymentApiResponseError(
                extract_error_message(status_code, data),
                status_code=status_code,
                raw_response=text,
            )
        if not isinstance(data, dict):
            exc = ValueError(f'Unexpected response body from {path}')
            raise PaymentApiTransportError(
                str(exc), status_code=status_code, raw_response=transport_diagnostic(exc)
            )
        return data

    # -- credential verification -------------------------------------------

    def _validation_step(self, step, label, method, path, headers, payload=None, normalize=None):
        completed = step - 1
        try:
            status_code, text, data = self._send(method, path, headers, payload)
        except PaymentApiTransportError as exc:
            return ValidationResult(
                success=False,
                step=completed,
                error=f'{label}: {exc.message}',
                raw_response=exc.raw_response,
            )

        if status_code != 200:
            error = extract_error_message(status_code, data)
            logger.warning(
                "credential_step_failed",
                extra={"step": step, "status_code": status_code, "error": error}
            )
            return ValidationResult(
                success=False,
                step=completed,
                error=error,
                raw_response=text,
                status_code=status_code,
            )

        result = ValidationResult(success=True, step=step, raw_response=text, status_code=status_code)
        if normalize is not None:
            if not isinstance(data, dict):
                exc = ValueError('Response body is not a JSON object')
                return ValidationResult(
                    success=False,
                    step=completed,
                    error=f'{label}: {exc}',
                    raw_response=transport_diagnostic(exc),
                    status_code=status_code,
                )
            result.data = normalize(data)
        logger.info("credential_step_passed", extra={"step": step})
        return result

    def validate_step1(self, access_key, account_guid, currency_code) -> ValidationResult:
        """Probe payment preparation: access key, account GUID and currency accepted together."""
        label = 'Failed to validate credentials'
        try:
            currency = int(currency_code)
        except (TypeError, ValueError) as exc:
            return ValidationResult(
                success=False, step=0, error=f'{label}: {exc}', raw_response=transport_diagnostic(exc)
            )
        payload = {
            'currency': currency,
            'amount': self.probe_amount,
            'description': 'test',
            'orderId': 0,
            'callbackUrl': self.callback_url,
            'returnUrl': self.return_url,
        }
        return self._validation_step(
            1, label, 'POST', PREPARE_PAYMENT_PATH,
            self._headers(access_key, account_guid), payload=payload,
        )

    def validate_step2(self, access_key, account_guid, account_number) -> ValidationResult:
        """Account number is valid for the key/GUID pair; surfaces the account balance."""
        return self._validation_step(
            2, 'Failed to validate account number', 'GET',
            ACCOUNT_BALANCE_PATH.format(account_number=account_number),
            self._headers(access_key, account_guid),
            normalize=normalize_balance_response,
        )

    def validate_step3(self, access_key, client_id) -> ValidationResult:
        """Client id is valid for the key; surfaces the customer balance."""
        return self._validation_step(
            3, 'Failed to validate client ID', 'GET',
            CUSTOMER_BALANCE_PATH.format(client_id=client_id),
            self._headers(access_key),
            normalize=lambda data: normalize_balance_response(data, include_locked=False),
        )

    # -- balances ----------------------------------------------------------

    def get_account_balance(self, credentials) -> BalanceDTO:
        data = self._call(
            'GET',
            ACCOUNT_BALANCE_PATH.format(account_number=credentials.account_number),
            self._headers(credentials.access_key, credentials.account_guid),
        )
        return normalize_balance_response(data)

    def get_customer_balance(self, credentials) -> BalanceDTO:
        data = self._call(
            'GET',
            CUSTOMER_BALANCE_PATH.format(client_id=credentials.client_id),
            self._headers(credentials.access_key),
        )
        return normalize_balance_response(data, include_locked=False)

    # -- payments ----------------------------------------------------------

    def create_payment(self, credentials, amount, products=(), comment=None) -> Dict[str, Any]:
        products = list(products or [])
        integer_amount = int(math.floor(amount))
        if comment:
            description = comment
        elif products:
            description = ', '.join(f"{p['name']} x{p['quantity']}" for p in products)
        else:
            description = 'New payment'
        order_id = int(time.time() * 1000)

        data = self._call(
            'POST',
            PREPARE_PAYMENT_PATH,
            self._headers(credentials.access_key, credentials.account_guid),
            payload={
                'currency': int(credentials.currency_code),
                'amount': integer_amount,
                'description': description,
                'orderId': order_id,
                'callbackUrl': self.callback_url,
                'returnUrl': self.return_url,
            },
        )
        value, _ = _unwrap(data)
        payment_id = value.get('id')
        provider_order = value.get('orderId')
        return {
            'id': str(payment_id) if payment_id is not None else f'T{order_id}',
            'amount': integer_amount,
            'status': STATUS_PENDING,
            'created_at': value.get('createdAt') or timezone.now().isoformat(),
            'customer_info': description,
            'merchant_name': credentials.merchant_name or '',
            'tag': str(provider_order) if provider_order is not None else f'Order-{order_id}',
            'payment_url': value.get('paymentUrl') or '',
            'products': products,
        }

    def get_payment(self, credentials, payment_id) -> Dict[str, Any]:
        data = self._call(
            'GET',
            PAYMENT_REPORT_PATH.format(payment_id=payment_id),
            self._headers(credentials.access_key),
        )
        return normalize_payment_response(data, payment_id, merchant_name=credentials.merchant_name)

    def get_payment_history(self, credentials, date_from, date_to) -> PaymentHistory:
        data = self._call(
            'GET',
            PAYMENT_HISTORY_PATH,
            self._headers(credentials.access_key, customer_id=credentials.client_id),
            params={
                'AccountId': credentials.account_number,
                'DateFrom': str(date_from),
                'DateTo': str(date_to),
                'Currency': credentials.currency_code,
            },
        )
        value = data.get('value')
        if isinstance(value, dict) and isinstance(value.get('items'), list):
            return PaymentHistory(
                count=value.get('count') or 0,
                items=[normalize_history_item(item) for item in value['items']],
                is_success=bool(data.get('isSuccess')),
            )
        return PaymentHistory()
