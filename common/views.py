"""Base API views translating domain errors into stable responses."""

import logging

from django.db import InterfaceError, OperationalError
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import CommerceError, StorageError

logger = logging.getLogger("shopcore.api")


def error_response(exc: CommerceError) -> Response:
    return Response(exc.as_dict(), status=exc.status_code)


class CommerceErrorMixin:
    """Render ``CommerceError`` as ``{"detail", "code"}`` with its HTTP status.

    Connectivity failures from the database surface as ``storage_error`` so
    callers can tell them apart from domain rejections.
    """

    def handle_exception(self, exc):
        if isinstance(exc, (OperationalError, InterfaceError)):
            logger.error(
                "storage_error",
                extra={"event": "storage_error", "path": getattr(self.request, "path", None), "error": str(exc)},
            )
            exc = StorageError()
        if isinstance(exc, CommerceError):
            return error_response(exc)
        return super().handle_exception(exc)


class CommerceAPIView(CommerceErrorMixin, APIView):
    pass
