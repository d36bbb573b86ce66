"""
Error handling for API responses.
"""
import logging

from ariadne import format_error, unwrap_graphql_error
from django.http import JsonResponse

from orders.domain.errors import OrderError

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Maps domain errors to API error payloads."""

    ERROR_CODES = {
        "INVALID_TRANSITION": 409,
        "INVALID_PAYMENT_TRANSITION": 409,
        "FORBIDDEN": 403,
        "UNAUTHENTICATED": 401,
        "MISSING_REQUIRED_FIELD": 400,
        "CONCURRENT_MODIFICATION": 409,
        "NOT_FOUND": 404,
        "EMPTY_CART": 400,
        "INVALID_PAYLOAD": 400,
        "INVALID_JSON": 400,
        "DUPLICATE_REQUEST": 409,
        "INTERNAL_ERROR": 500,
    }

    @classmethod
    def error_response(cls, code: str, message: str) -> JsonResponse:
        return JsonResponse(
            {
                "error": {
                    "code": code,
                    "message": message,
                }
            },
            status=cls.ERROR_CODES.get(code, 400),
        )

    @classmethod
    def format_graphql_error(cls, error, debug: bool = False) -> dict:
        """
        Ariadne error formatter.

        Domain errors become ``extensions`` with their code and structured
        fields. Anything unexpected is logged and reported as INTERNAL_ERROR.
        """
        formatted = format_error(error, debug)
        original = unwrap_graphql_error(error)

        if isinstance(original, OrderError):
            formatted["message"] = original.message
            formatted["extensions"] = {**formatted.get("extensions", {}), **original.to_dict()}
            logger.info(
                "order_error",
                extra={"error_code": original.code, "error": original.message},
            )
            return formatted

        if original is not None and original is not error:
            logger.error(
                "unexpected_error",
                extra={
                    "error": str(original),
                },
                exc_info=(type(original), original, original.__traceback__),
            )
            if not debug:
                formatted["message"] = "An internal error occurred"
            formatted["extensions"] = {
                **formatted.get("extensions", {}),
                "code": "INTERNAL_ERROR",
            }
        return formatted
