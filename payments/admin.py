from django.contrib import admin

from .models import MerchantCredentials, Product, Transaction, WithdrawalRequest


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('transaction_id', 'amount', 'status', 'created_at', 'finished_at', 'tag')
    list_filter = ('status',)
    search_fields = ('transaction_id', 'tag', 'customer_info')


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'price', 'sku', 'updated_at')
    search_fields = ('name', 'sku')


@admin.register(WithdrawalRequest)
class WithdrawalRequestAdmin(admin.ModelAdmin):
    list_display = ('request_id', 'amount', 'wallet_address', 'telegram_contact', 'status', 'created_at')
    list_filter = ('status',)


@admin.register(MerchantCredentials)
class MerchantCredentialsAdmin(admin.ModelAdmin):
    list_display = ('merchant_name', 'client_id', 'account_number', 'currency_code', 'updated_at')
    exclude = ('client_secret',)
