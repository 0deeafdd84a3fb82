import logging

from django.db import DatabaseError, connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health(request):
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
    except DatabaseError as e:
        logger.error("Health check failed: %s", e)
        return JsonResponse({'status': 'DOWN', 'components': {'db': {'status': 'DOWN', 'error': str(e)}}}, status=503)
    db_up = bool(row and row[0] == 1)
    return JsonResponse(
        {'status': 'UP' if db_up else 'DOWN', 'components': {'db': {'status': 'UP' if db_up else 'DOWN'}}},
        status=200 if db_up else 503,
    )
