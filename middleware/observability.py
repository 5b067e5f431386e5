import time
import logging
from django.utils.deprecation import MiddlewareMixin
from terminal.settings import set_correlation_id, get_correlation_id
http_logger = logging.getLogger("observability.http")


def _level_for(status_code):
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class ObservabilityMiddleware(MiddlewareMixin):
    """Correlation id per request plus one started/completed log pair.

    The id comes from X-Correlation-ID when the terminal app sends one and is
    echoed back so provider failures can be traced from the device.
    """

    def process_request(self, request):
        request.correlation_id = set_correlation_id(request.headers.get("X-Correlation-ID"))
        request.start_time = time.time()

        http_logger.info(
            "request_started",
            extra={
                "type": "request",
                "correlation_id": request.correlation_id,
                "method": request.method,
                "path": request.path,
                "client_ip": request.META.get("REMOTE_ADDR"),
                "user_agent": request.headers.get("User-Agent"),
                "status_code": 0,
                "response_bytes": request.META.get("CONTENT_LENGTH") or 0,
                "duration_sec": 0,
            }
        )

    def process_response(self, request, response):
        correlation_id = getattr(request, "correlation_id", None) or get_correlation_id()
        duration = None

        if hasattr(request, "start_time"):
            duration = round(time.time() - request.start_time, 4)

        http_logger.log(
            _level_for(response.status_code),
            "request_completed",
            extra={
                "type": "response",
                "correlation_id": correlation_id,
                "method": getattr(request, "method", None),
                "path": getattr(request, "path", None),
                "client_ip": request.META.get("REMOTE_ADDR"),
                "user_agent": request.headers.get("User-Agent"),
                "status_code": response.status_code,
                "duration_sec": duration,
                "response_bytes": len(response.content) if not response.streaming else None,
            }
        )

        if correlation_id:
            response["X-Correlation-ID"] = correlation_id

        return response
