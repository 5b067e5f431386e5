import datetime
import logging
import time
import uuid
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.generics import GenericAPIView
from django.conf import settings
from django.db import connection
from django.db.models import Sum, Count, Q
from django.http import JsonResponse
from django.utils import timezone
import redis

from .client import PaymentApiClient
from .exceptions import BulkImportError, CredentialsNotConfigured, PaymentApiError, WithdrawalRequestError
from .models import Transaction
from .notifications import send_withdrawal_request
from .repositories import (
    CredentialsRepository,
    ProductRepository,
    TransactionRepository,
    WithdrawalRepository,
)
from .serializers import (
    CredentialsSerializer,
    DateRangeParamsSerializer,
    PaymentCreateSerializer,
    ProductSerializer,
    StoredCredentialsSerializer,
    TransactionSerializer,
    WithdrawalCreateSerializer,
    WithdrawalSerializer,
)
from .services import check_transaction_status, create_payment, get_active_credentials, sync_payment_history
from .status import STATUS_COMPLETED, STATUS_PENDING
from .tasks import poll_transaction_status
from .verification import verify_credentials

# Structured logger
logger = logging.getLogger(__name__)


############################
# CORRELATION ID UTIL
############################
def get_correlation_id(request):
    return (
        getattr(request, "correlation_id", None)
        or request.headers.get("X-Correlation-ID")
        or str(uuid.uuid4())
    )


def provider_error_response(error, correlation_id):
    return Response(
        {
            "detail": error.message,
            "status_code": error.status_code,
            "raw_response": error.raw_response,
            "correlation_id": correlation_id,
        },
        status=status.HTTP_502_BAD_GATEWAY,
    )


def missing_credentials_response(correlation_id):
    return Response(
        {"detail": "Merchant credentials are not configured", "correlation_id": correlation_id},
        status=status.HTTP_409_CONFLICT,
    )


class HealthCheckAPIView(GenericAPIView):
    def get(self, request):

        correlation_id = get_correlation_id(request)

        logger.info("healthcheck_requested", extra={"correlation_id": correlation_id})

        status_obj = {"status": "ok", "correlation_id": correlation_id}

        # DB Check
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1;")
        except Exception as e:
            logger.error("database_unhealthy", extra={"error": str(e)})
            status_obj["database"] = f"error: {str(e)}"
            status_obj["status"] = "unhealthy"
        else:
            status_obj["database"] = "ok"

        # Redis Check
        try:
            r = redis.Redis.from_url(settings.REDIS_URL, socket_connect_timeout=2)
            r.ping()
        except Exception as e:
            logger.error("redis_unhealthy", extra={"error": str(e)})
            status_obj["redis"] = f"error: {str(e)}"
            status_obj["status"] = "unhealthy"
        else:
            status_obj["redis"] = "ok"

        logger.info("healthcheck_response", extra=status_obj)

        return JsonResponse(status_obj)


class CredentialsAPIView(APIView):
    def get(self, request):
        credentials = CredentialsRepository().get()
        if credentials is None:
            return Response({"detail": "Not configured"}, status=status.HTTP_404_NOT_FOUND)
        return Response(StoredCredentialsSerializer(credentials).data)

    def delete(self, request):
        CredentialsRepository().clear()
        logger.info("credentials_cleared", extra={"correlation_id": get_correlation_id(request)})
        return Response(status=status.HTTP_204_NO_CONTENT)


class CredentialVerifyAPIView(APIView):
    """Format-check, remotely verify (3 steps) and persist merchant credentials."""

    def post(self, request):

        start_time = time.time()
        correlation_id = get_correlation_id(request)

        serializer = CredentialsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        verification = verify_credentials(data, client=PaymentApiClient.from_settings())
        duration = round(time.time() - start_time, 3)
        body = {**verification.as_dict(), "correlation_id": correlation_id, "duration_sec": duration}

        if not verification.succeeded:
            logger.warning(
                "credential_verification_rejected",
                extra={
                    "correlation_id": correlation_id,
                    "failed_step": verification.failed_step,
                    "duration_sec": duration,
                }
            )
            return Response(body, status=status.HTTP_422_UNPROCESSABLE_ENTITY)

        credentials = CredentialsRepository().save(data)
        logger.info(
            "credentials_saved",
            extra={"correlation_id": correlation_id, "access_key": credentials.masked_access_key}
        )
        body["credentials"] = StoredCredentialsSerializer(credentials).data
        return Response(body, status=status.HTTP_201_CREATED)


class BalanceAPIView(APIView):
    def get(self, request):
        correlation_id = get_correlation_id(request)
        try:
            credentials = get_active_credentials()
            client = PaymentApiClient.from_settings()
            account = client.get_account_balance(credentials)
            customer = client.get_customer_balance(credentials)
        except CredentialsNotConfigured:
            return missing_credentials_response(correlation_id)
        except PaymentApiError as e:
            logger.warning("balance_fetch_failed", extra={"correlation_id": correlation_id, "error": e.message})
            return provider_error_response(e, correlation_id)

        return Response({
            "account": account.as_dict(),
            "customer": customer.as_dict(),
            "correlation_id": correlation_id,
        })


class PaymentCreateAPIView(APIView):
    def post(self, request):

        correlation_id = get_correlation_id(request)

        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            record = create_payment(
                data['amount'],
                products=data.get('products') or [],
                comment=data.get('comment') or None,
            )
        except CredentialsNotConfigured:
            return missing_credentials_response(correlation_id)
        except PaymentApiError as e:
            logger.warning("payment_create_failed", extra={"correlation_id": correlation_id, "error": e.message})
            return provider_error_response(e, correlation_id)

        if record['status'] == STATUS_PENDING:
            logger.info(
                "dispatching_status_poll",
                extra={"correlation_id": correlation_id, "transaction_id": record['id']}
            )
            poll_transaction_status.apply_async(
                args=[record['id']],
                kwargs={"started_at": time.time(), "correlation_id": correlation_id},
                countdown=settings.PAYMENT_POLL_INTERVAL,
            )

        return Response(TransactionSerializer(record).data, status=status.HTTP_201_CREATED)


class TransactionListAPIView(APIView):
    def get(self, request):
        records = TransactionRepository().list(status=request.query_params.get('status'))
        return Response(TransactionSerializer(records, many=True).data)

    def delete(self, request):
        TransactionRepository().clear()
        logger.info("transactions_cleared", extra={"correlation_id": get_correlation_id(request)})
        return Response(status=status.HTTP_204_NO_CONTENT)


class TransactionDetailAPIView(APIView):
    def get(self, request, transaction_id):
        record = TransactionRepository().get(transaction_id)
        if record is None:
            return Response({"detail": "Transaction not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(TransactionSerializer(record).data)


class TransactionStatusAPIView(APIView):
    """Fetch the provider's current view of one payment and reconcile it locally."""

    def get(self, request, transaction_id):
        correlation_id = get_correlation_id(request)
        try:
            record = check_transaction_status(transaction_id)
        except CredentialsNotConfigured:
            return missing_credentials_response(correlation_id)
        except PaymentApiError as e:
            logger.warning(
                "transaction_status_failed",
                extra={"correlation_id": correlation_id, "transaction_id": transaction_id, "error": e.message}
            )
            return provider_error_response(e, correlation_id)
        return Response(TransactionSerializer(record).data)


class PaymentHistorySyncAPIView(APIView):
    def post(self, request):

        start_time = time.time()
        correlation_id = get_correlation_id(request)

        params = DateRangeParamsSerializer(data=request.data)
        params.is_valid(raise_exception=True)

        try:
            result = sync_payment_history(
                date_from=params.validated_data.get('date_from'),
                date_to=params.validated_data.get('date_to'),
            )
        except CredentialsNotConfigured:
            return missing_credentials_response(correlation_id)
        except PaymentApiError as e:
            logger.warning("history_sync_failed", extra={"correlation_id": correlation_id, "error": e.message})
            return provider_error_response(e, correlation_id)

        duration = round(time.time() - start_time, 3)
        return Response({**result, "correlation_id": correlation_id, "duration_sec": duration})


class PaymentStatsAPIView(GenericAPIView):
    def get(self, request):

        start_time = time.time()
        correlation_id = get_correlation_id(request)

        today = timezone.localdate()
        tz = timezone.get_current_timezone()
        today_start = datetime.datetime.combine(today, datetime.time.min, tzinfo=tz)
        tomorrow_start = today_start + datetime.timedelta(days=1)
        month_start = today_start - datetime.timedelta(days=settings.PAYMENT_HISTORY_DAYS)

        qs = Transaction.objects.filter(status=STATUS_COMPLETED, created_at__gte=month_start)
        today_filter = Q(created_at__gte=today_start, created_at__lt=tomorrow_start)

        metrics = qs.aggregate(
            successful_operations_month=Count('id'),
            income_month=Sum('amount'),
            successful_operations_today=Count('id', filter=today_filter),
            income_today=Sum('amount', filter=today_filter),
        )

        duration = round(time.time() - start_time, 3)

        logger.info(
            "payment_stats_response",
            extra={
                "correlation_id": correlation_id,
                "duration_sec": duration,
                "successful_operations_month": metrics['successful_operations_month'] or 0,
            }
        )

        return Response(
            {
                "successful_operations_month": metrics['successful_operations_month'] or 0,
                "successful_operations_today": metrics['successful_operations_today'] or 0,
                "income_month": float(metrics['income_month'] or 0),
                "income_today": float(metrics['income_today'] or 0),
                "correlation_id": correlation_id,
                "duration_sec": duration
            }
        )


class ProductListCreateAPIView(APIView):
    def get(self, request):
        return Response(ProductSerializer(ProductRepository().list(), many=True).data)

    def post(self, request):
        serializer = ProductSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product, _ = ProductRepository().upsert_by_id(**serializer.validated_data)
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


class ProductDetailAPIView(APIView):
    def get(self, request, product_id):
        product = ProductRepository().get(product_id)
        if product is None:
            return Response({"detail": "Product not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(ProductSerializer(product).data)

    def put(self, request, product_id):
        return self._update(request, product_id, partial=False)

    def patch(self, request, product_id):
        return self._update(request, product_id, partial=True)

    def _update(self, request, product_id, partial):
        repository = ProductRepository()
        product = repository.get(product_id)
        if product is None:
            return Response({"detail": "Product not found"}, status=status.HTTP_404_NOT_FOUND)

        serializer = ProductSerializer(product, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        product, _ = repository.upsert_by_id(product_id=product_id, **serializer.validated_data)
        logger.info(
            "product_updated",
            extra={"correlation_id": get_correlation_id(request), "product_id": product_id}
        )
        return Response(ProductSerializer(product).data)

    def delete(self, request, product_id):
        if not ProductRepository().remove(product_id):
            return Response({"detail": "Product not found"}, status=status.HTTP_404_NOT_FOUND)
        logger.info(
            "product_deleted",
            extra={"correlation_id": get_correlation_id(request), "product_id": product_id}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProductBulkImportAPIView(APIView):
    """Import ``name, price`` lines; bad lines are reported, good ones applied."""

    def post(self, request):
        correlation_id = get_correlation_id(request)
        text = request.data.get('text') if isinstance(request.data, dict) else None
        try:
            result = ProductRepository().import_text(text)
        except BulkImportError as e:
            return Response(
                {"detail": str(e), "correlation_id": correlation_id},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response({**result, "correlation_id": correlation_id})


class WithdrawalAPIView(APIView):
    def get(self, request):
        return Response(WithdrawalSerializer(WithdrawalRepository().list(), many=True).data)

    def delete(self, request):
        WithdrawalRepository().clear()
        logger.info("withdrawals_cleared", extra={"correlation_id": get_correlation_id(request)})
        return Response(status=status.HTTP_204_NO_CONTENT)

    def post(self, request):

        correlation_id = get_correlation_id(request)

        serializer = WithdrawalCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            credentials = get_active_credentials()
            balance = PaymentApiClient.from_settings().get_account_balance(credentials)
        except CredentialsNotConfigured:
            return missing_credentials_response(correlation_id)
        except PaymentApiError as e:
            return provider_error_response(e, correlation_id)

        if data['amount'] > balance.available:
            return Response(
                {"amount": ["Amount exceeds available balance"]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            send_withdrawal_request(
                credentials,
                data['amount'],
                data['wallet_address'],
                data['telegram_contact'],
                balance.available,
            )
        except WithdrawalRequestError as e:
            return Response(
                {"detail": str(e), "correlation_id": correlation_id},
                status=status.HTTP_502_BAD_GATEWAY,
            )

        withdrawal = WithdrawalRepository().add(**data)
        logger.info(
            "withdrawal_requested",
            extra={"correlation_id": correlation_id, "request_id": str(withdrawal.request_id)}
        )
        return Response(WithdrawalSerializer(withdrawal).data, status=status.HTTP_201_CREATED)
