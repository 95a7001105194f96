"""DRF exception handler rendering league errors as ``{"success": false, "error": ...}``."""
import logging

from django.db import DatabaseError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import InfrastructureError, LeagueError

logger = logging.getLogger(__name__)


def league_exception_handler(exc, context):
    """Map the league error taxonomy onto HTTP responses.

    Storage errors that escaped a service are reported as a generic 503;
    everything else falls through to DRF's default handler.
    """
    if isinstance(exc, DatabaseError):
        logger.exception(f"Unhandled database error in {context.get('view').__class__.__name__}")
        exc = InfrastructureError(str(exc))

    if isinstance(exc, LeagueError):
        if exc.status_code >= 500:
            logger.error(f"{exc.__class__.__name__}: {getattr(exc, 'detail', '')}")
        else:
            logger.warning(f"{exc.__class__.__name__}: {exc.message}")
        return Response({'success': False, 'error': exc.message}, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is not None:
        detail = response.data.get('detail') if isinstance(response.data, dict) else None
        if detail is not None:
            response.data = {'success': False, 'error': str(detail)}
        else:
            response.data = {'success': False, 'error': 'Invalid request', 'details': response.data}
    return response

