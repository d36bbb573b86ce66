"""
GraphQL view with idempotency and logging support.
"""
import hashlib
import json
import logging
from uuid import UUID, uuid4

from ariadne import graphql_sync
from django.conf import settings
from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from orders.api.middleware import ErrorHandler
from orders.api.schema import schema
from orders.infra.models import IdempotencyKey
from orders.infra.pii_masker import mask_pii_in_dict

logger = logging.getLogger(__name__)

MUTATION_OPERATIONS = {
    "checkout": "CHECKOUT",
    "buyNow": "BUY_NOW",
    "acceptOrder": "ACCEPT_ORDER",
    "rejectOrder": "REJECT_ORDER",
    "cancelOrder": "CANCEL_ORDER",
    "updateOrderStatus": "UPDATE_ORDER_STATUS",
    "markOrderPaid": "MARK_ORDER_PAID",
    "markPaymentFailed": "MARK_PAYMENT_FAILED",
}


class OrdersGraphQLView:
    """GraphQL view with idempotency and structured logging."""

    def dispatch(self, request, *args, **kwargs):
        """Handle GraphQL request with idempotency."""
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        idempotency_key = request.headers.get("Idempotency-Key")
        user_id = request.headers.get("X-User-ID")

        logger.info(
            "graphql_request",
            extra=mask_pii_in_dict({
                "request_id": request_id,
                "user_id": user_id,
                "idempotency_key": idempotency_key[:8] + "..." if idempotency_key else None,
                "operation": "graphql",
            }),
        )

        if request.method == "GET":
            return JsonResponse({"message": "GraphQL endpoint. Use POST for queries."})

        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return ErrorHandler.error_response("INVALID_JSON", "Invalid JSON")
        if not isinstance(data, dict):
            return ErrorHandler.error_response("INVALID_JSON", "Request body must be a JSON object")

        operation = self._extract_operation(data)
        user_uuid = self._parse_user_id(user_id, request_id)

        if idempotency_key and operation and user_uuid:
            response = self._idempotent_execute(
                request, data, idempotency_key, user_uuid, operation, request_id
            )
        else:
            response = self._execute(request, data)

        logger.info(
            "graphql_response",
            extra={
                "request_id": request_id,
                "operation": operation or "query",
                "status": response.status_code,
            },
        )
        return response

    def _idempotent_execute(self, request, data, idempotency_key, user_uuid, operation, request_id):
        """Replay a stored response for a repeated key, or execute and store."""
        request_hash = self._create_request_hash(data.get("query", ""), data.get("variables") or {})
        existing = IdempotencyKey.objects.filter(
            key=idempotency_key,
            user_id=user_uuid,
            operation=operation,
        ).first()

        if existing:
            if existing.request_hash == request_hash:
                logger.info(
                    "idempotent_request_cached",
                    extra={
                        "request_id": request_id,
                        "idempotency_key": idempotency_key,
                        "operation": operation,
                    },
                )
                return JsonResponse(existing.response_payload, safe=False)

            logger.warning(
                "idempotency_key_conflict",
                extra={
                    "request_id": request_id,
                    "idempotency_key": idempotency_key,
                },
            )
            return ErrorHandler.error_response(
                "DUPLICATE_REQUEST", "Idempotency key already used with different request"
            )

        response = self._execute(request, data)
        if response.status_code == 200:
            try:
                with transaction.atomic():
                    IdempotencyKey.objects.create(
                        key=idempotency_key,
                        user_id=user_uuid,
                        operation=operation,
                        request_hash=request_hash,
                        response_payload=json.loads(response.content),
                    )
            except IntegrityError:
                # A concurrent request with the same key stored its response first.
                logger.warning(
                    "idempotency_key_race",
                    extra={"request_id": request_id, "idempotency_key": idempotency_key},
                )
        return response

    def _parse_user_id(self, user_id, request_id):
        if not user_id:
            return None
        try:
            return UUID(user_id)
        except ValueError:
            logger.warning(
                "invalid_user_id",
                extra={"request_id": request_id},
            )
            return None

    def _create_request_hash(self, query: str, variables: dict) -> str:
        """Create hash of request for deduplication."""
        content = json.dumps({"query": query, "variables": variables}, sort_keys=True, default=str)
        return hashlib.sha256(content.encode()).hexdigest()

    def _extract_operation(self, data: dict) -> str | None:
        """Mutation operation type, or None for queries."""
        query = data.get("query") or ""
        if "mutation" not in query:
            return None
        for field_name, operation in MUTATION_OPERATIONS.items():
            if f"{field_name}(" in query.replace(" (", "("):
                return operation
        return None

    def _execute(self, request, data):
        """Execute GraphQL query."""
        success, result = graphql_sync(
            schema,
            data,
            context_value={"request": request},
            debug=settings.DEBUG,
            error_formatter=ErrorHandler.format_graphql_error,
        )
        status_code = 200 if success else 400
        return JsonResponse(result, status=status_code)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def graphql_view(request):
    """GraphQL endpoint."""
    view = OrdersGraphQLView()
    return view.dispatch(request)
