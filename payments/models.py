from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
import uuid

from .status import STATUS_CHOICES, STATUS_PENDING


def generate_product_id():
    return uuid.uuid4().hex


class MerchantCredentials(models.Model):
    """Verified provider credentials of the merchant using this terminal."""

    access_key = models.CharField(max_length=36)
    currency_code = models.CharField(max_length=8)
    account_number = models.CharField(max_length=8)
    client_id = models.CharField(max_length=8)
    account_guid = models.CharField(max_length=36)
    merchant_name = models.CharField(max_length=50, blank=True, default='')
    client_secret = models.CharField(max_length=255, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def masked_access_key(self):
        return f"****{self.access_key[-4:]}" if self.access_key else ''


class Transaction(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'

    transaction_id = models.CharField(max_length=255, unique=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=STATUS_PENDING)
    created_at = models.DateTimeField()
    finished_at = models.DateTimeField(null=True, blank=True)
    customer_info = models.TextField(blank=True, default='')
    merchant_name = models.CharField(max_length=255, blank=True, default='')
    tag = models.CharField(max_length=255, blank=True, default='')
    commission = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    payment_url = models.URLField(max_length=1024, blank=True, default='')
    products = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    stored_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-stored_at']
        indexes = [
            models.Index(fields=['status'], name='payments_tr_status_7c1b8e_idx'),
            models.Index(fields=['created_at'], name='payments_tr_created_4f2a9d_idx'),
        ]


class Product(models.Model):
    product_id = models.CharField(max_length=64, unique=True, default=generate_product_id)
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.TextField(blank=True, default='')
    sku = models.CharField(max_length=64, blank=True, default='')
    image_url = models.URLField(max_length=1024, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']


class WithdrawalRequest(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    request_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    wallet_address = models.CharField(max_length=64)
    telegram_contact = models.CharField(max_length=64)
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=STATUS_PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
