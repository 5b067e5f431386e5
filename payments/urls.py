from django.urls import path
from .views import (
    BalanceAPIView,
    CredentialsAPIView,
    CredentialVerifyAPIView,
    HealthCheckAPIView,
    PaymentCreateAPIView,
    PaymentHistorySyncAPIView,
    PaymentStatsAPIView,
    ProductBulkImportAPIView,
    ProductDetailAPIView,
    ProductListCreateAPIView,
    TransactionDetailAPIView,
    TransactionListAPIView,
    TransactionStatusAPIView,
    WithdrawalAPIView,
)

urlpatterns = [
    path('health/', HealthCheckAPIView.as_view(), name='health-check'),
    path('credentials/', CredentialsAPIView.as_view(), name='credentials'),
    path('credentials/verify/', CredentialVerifyAPIView.as_view(), name='credentials-verify'),
    path('balance/', BalanceAPIView.as_view(), name='balance'),
    path('payments/', PaymentCreateAPIView.as_view(), name='payment-create'),
    path('transactions/', TransactionListAPIView.as_view(), name='transaction-list'),
    path('transactions/sync/', PaymentHistorySyncAPIView.as_view(), name='transaction-sync'),
    path('transactions/stats/', PaymentStatsAPIView.as_view(), name='transaction-stats'),
    path('transactions/<str:transaction_id>/', TransactionDetailAPIView.as_view(), name='transaction-detail'),
    path('transactions/<str:transaction_id>/status/', TransactionStatusAPIView.as_view(), name='transaction-status'),
    path('products/', ProductListCreateAPIView.as_view(), name='product-list'),
    path('products/import/', ProductBulkImportAPIView.as_view(), name='product-import'),
    path('products/<str:product_id>/', ProductDetailAPIView.as_view(), name='product-detail'),
    path('withdrawals/', WithdrawalAPIView.as_view(), name='withdrawals'),
]
