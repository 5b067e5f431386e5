from decimal import Decimal

from django.conf import settings
from rest_framework import serializers

GUID_REGEX = r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$'
ACCOUNT_DIGITS_REGEX = r'^\d{5,8}$'
TRON_WALLET_REGEX = r'^T[a-zA-Z0-9]{33}$'


class CredentialsSerializer(serializers.Serializer):
    access_key = serializers.RegexField(
        GUID_REGEX, error_messages={'invalid': 'Invalid GUID format'}
    )
    currency_code = serializers.RegexField(
        r'^\d+$', error_messages={'invalid': 'Currency Code must be numeric'}
    )
    account_number = serializers.RegexField(
        ACCOUNT_DIGITS_REGEX, error_messages={'invalid': 'Currency Account Number must be 5-8 digits'}
    )
    client_id = serializers.RegexField(
        ACCOUNT_DIGITS_REGEX, error_messages={'invalid': 'Client ID must be 5-8 digits'}
    )
    account_guid = serializers.RegexField(
        GUID_REGEX, error_messages={'invalid': 'Invalid GUID format'}
    )
    merchant_name = serializers.CharField(max_length=50, required=False, allow_blank=True)
    client_secret = serializers.CharField(required=False, allow_blank=True, write_only=True)


class StoredCredentialsSerializer(serializers.Serializer):
    access_key = serializers.CharField(source='masked_access_key')
    currency_code = serializers.CharField()
    account_number = serializers.CharField()
    client_id = serializers.CharField()
    account_guid = serializers.CharField()
    merchant_name = serializers.CharField()
    updated_at = serializers.DateTimeField()


class ProductLineSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    quantity = serializers.IntegerField(min_value=1)


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    comment = serializers.CharField(required=False, allow_blank=True, max_length=255)
    products = ProductLineSerializer(many=True, required=False)

    def validate_amount(self, value):
        # the provider takes whole rubles; the amount is floored before sending
        if value < 1:
            raise serializers.ValidationError('Amount must be at least 1')
        return value


class TransactionSerializer(serializers.Serializer):
    id = serializers.CharField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, coerce_to_string=False)
    status = serializers.CharField()
    created_at = serializers.CharField(allow_null=True)
    finished_at = serializers.CharField(allow_null=True)
    customer_info = serializers.CharField(allow_blank=True)
    merchant_name = serializers.CharField(allow_blank=True)
    tag = serializers.CharField(allow_blank=True)
    commission = serializers.DecimalField(
        max_digits=14, decimal_places=2, allow_null=True, coerce_to_string=False
    )
    payment_url = serializers.CharField(allow_blank=True)
    products = serializers.ListField(child=serializers.DictField())


class ProductSerializer(serializers.Serializer):
    id = serializers.CharField(source='product_id', read_only=True)
    name = serializers.CharField(max_length=100)
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    description = serializers.CharField(required=False, allow_blank=True)
    sku = serializers.CharField(required=False, allow_blank=True, max_length=64)
    image_url = serializers.URLField(required=False, allow_blank=True)

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Product name is required')
        return value.strip()

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError('Price must be greater than 0')
        return value


class WithdrawalCreateSerializer(serializers.Serializer):
    amount = serializers.IntegerField()
    wallet_address = serializers.RegexField(
        TRON_WALLET_REGEX,
        error_messages={'invalid': 'Invalid TRON wallet address. Must start with T and be 34 characters long'},
    )
    telegram_contact = serializers.CharField()

    def validate_amount(self, value):
        minimum = settings.WITHDRAWAL_MIN_AMOUNT
        if value < minimum:
            raise serializers.ValidationError(f'Minimum withdrawal amount is {minimum:,} RUB')
        return value

    def validate_telegram_contact(self, value):
        if not value.startswith('@') or len(value) < 5:
            raise serializers.ValidationError(
                'Telegram contact must start with @ and be at least 5 characters long'
            )
        return value


class WithdrawalSerializer(serializers.Serializer):
    id = serializers.UUIDField(source='request_id')
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, coerce_to_string=False)
    wallet_address = serializers.CharField()
    telegram_contact = serializers.CharField()
    status = serializers.CharField()
    created_at = serializers.DateTimeField()


class DateRangeParamsSerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        date_from, date_to = attrs.get('date_from'), attrs.get('date_to')
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError('date_from must not be after date_to')
        return attrs
