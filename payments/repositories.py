"""
Persistence for the terminal's local state.

Each repository wraps one model class (injectable for tests) and applies the
pure merge/import rules from ``reconciliation`` and ``importing``.
"""
import datetime
import logging
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction as db_transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .importing import ImportPlan, plan_bulk_import
from .models import MerchantCredentials, Product, Transaction, WithdrawalRequest
from .reconciliation import reconcile
from .status import STATUS_PENDING

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


def to_decimal(value):
    if value is None or value == '':
        return None
    try:
        return Decimal(str(value)).quantize(CENTS)
    except (InvalidOperation, ValueError):
        return None


def to_datetime(value):
    if value is None or value == '':
        return None
    if isinstance(value, datetime.datetime):
        parsed = value
    else:
        try:
            parsed = parse_datetime(str(value))
        except ValueError:
            parsed = None
        if parsed is None:
            day = parse_date(str(value))
            if day is None:
                return None
            parsed = datetime.datetime.combine(day, datetime.time.min)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, datetime.timezone.utc)
    return parsed


class TransactionRepository:
    """Transactions keyed by provider id, upserted with the reconcile rule.

    Upserts for one id are serialised by a row lock taken inside the atomic
    block, so two in-flight status fetches cannot lose each other's fields.
    """

    def __init__(self, model=Transaction):
        self.model = model

    @staticmethod
    def to_record(obj):
        return {
            'id': obj.transaction_id,
            'amount': obj.amount,
            'status': obj.status,
            'created_at': obj.created_at.isoformat() if obj.created_at else None,
            'finished_at': obj.finished_at.isoformat() if obj.finished_at else None,
            'customer_info': obj.customer_info,
            'merchant_name': obj.merchant_name,
            'tag': obj.tag,
            'commission': obj.commission,
            'payment_url': obj.payment_url,
            'products': obj.products,
        }

    @staticmethod
    def _field_values(record):
        return {
            'amount': to_decimal(record.get('amount')) or Decimal('0.00'),
            'status': record.get('status') or STATUS_PENDING,
            'created_at': to_datetime(record.get('created_at')) or timezone.now(),
            'finished_at': to_datetime(record.get('finished_at')),
            'customer_info': record.get('customer_info') or '',
            'merchant_name': record.get('merchant_name') or '',
            'tag': record.get('tag') or '',
            'commission': to_decimal(record.get('commission')),
            'payment_url': record.get('payment_url') or '',
            'products': record.get('products') or [],
        }

    def get(self, transaction_id):
        obj = self.model.objects.filter(transaction_id=str(transaction_id)).first()
        return self.to_record(obj) if obj else None

    def list(self, status=None):
        qs = self.model.objects.all()
        if status:
            qs = qs.filter(status=status)
        return [self.to_record(obj) for obj in qs]

    def _save_merged(self, obj, record):
        merged = reconcile(self.to_record(obj), record)
        for key, value in self._field_values(merged).items():
            setattr(obj, key, value)
        obj.save()
        return obj

    def upsert_by_id(self, record):
        """Insert or merge ``record``; returns (stored record, created)."""
        transaction_id = str(record['id'])
        created = False

        with db_transaction.atomic():
            obj = (
                self.model.objects
                .select_for_update()
                .filter(transaction_id=transaction_id)
                .first()
            )
            if obj is None:
                try:
                    with db_transaction.atomic():
                        obj = self.model.objects.create(
                            transaction_id=transaction_id,
                            **self._field_values(reconcile(None, record)),
                        )
                    created = True
                except IntegrityError:
                    # lost the insert race; merge into the winner's row
                    obj = self.model.objects.select_for_update().get(transaction_id=transaction_id)
                    obj = self._save_merged(obj, record)
            else:
                obj = self._save_merged(obj, record)

        logger.info(
            "transaction_upserted",
            extra={"transaction_id": transaction_id, "was_created": created, "status": obj.status}
        )
        return self.to_record(obj), created

    def bulk_apply(self, records):
        created = updated = 0
        for record in records:
            if not record.get('id'):
                logger.warning("transaction_without_id_skipped")
                continue
            _, was_created = self.upsert_by_id(record)
            if was_created:
                created += 1
            else:
                updated += 1
        return {'added': created, 'updated': updated}

    def remove(self, transaction_id):
        deleted, _ = self.model.objects.filter(transaction_id=str(transaction_id)).delete()
        return bool(deleted)

    def clear(self):
        self.model.objects.all().delete()


class ProductRepository:
    def __init__(self, model=Product):
        self.model = model

    def get(self, product_id):
        return self.model.objects.filter(product_id=product_id).first()

    def list(self):
        return list(self.model.objects.all())

    def upsert_by_id(self, product_id=None, **fields):
        if product_id:
            obj, created = self.model.objects.update_or_create(product_id=product_id, defaults=fields)
        else:
            obj, created = self.model.objects.create(**fields), True
        return obj, created

    def remove(self, product_id):
        deleted, _ = self.model.objects.filter(product_id=product_id).delete()
        return bool(deleted)

    def bulk_apply(self, plan: ImportPlan):
        now = timezone.now()
        with db_transaction.atomic():
            for product_id, price in plan.updates.items():
                self.model.objects.filter(product_id=product_id).update(price=price, updated_at=now)
            self.model.objects.bulk_create(
                [self.model(name=item['name'], price=item['price']) for item in plan.additions]
            )
        logger.info(
            "products_imported",
            extra={"added": plan.added, "updated": plan.updated, "errors": len(plan.errors)}
        )
        return plan.summary()

    def import_text(self, text):
        with db_transaction.atomic():
            existing = list(self.model.objects.select_for_update())
            plan = plan_bulk_import(text, existing)
            return self.bulk_apply(plan)


class CredentialsRepository:
    """The single verified credential set of this terminal."""

    def __init__(self, model=MerchantCredentials):
        self.model = model

    def get(self):
        return self.model.objects.order_by('-updated_at').first()

    def save(self, data):
        with db_transaction.atomic():
            self.model.objects.all().delete()
            return self.model.objects.create(
                access_key=data['access_key'],
                currency_code=data['currency_code'],
                account_number=data['account_number'],
                client_id=data['client_id'],
                account_guid=data['account_guid'],
                merchant_name=data.get('merchant_name') or '',
                client_secret=data.get('client_secret') or '',
            )

    def clear(self):
        self.model.objects.all().delete()


class WithdrawalRepository:
    def __init__(self, model=WithdrawalRequest):
        self.model = model

    def add(self, **fields):
        return self.model.objects.create(**fields)

    def list(self):
        return list(self.model.objects.all())

    def clear(self):
        self.model.objects.all().delete()
