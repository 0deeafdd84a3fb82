"""Greeting and job status endpoints used by smoke tests against the service."""
import logging

from rest_framework.decorators import api_view
from rest_framework.response import Response

logger = logging.getLogger(__name__)

HELLO_MESSAGE = "Hello ZETA!"


@api_view(['GET'])
def hello_zeta(request):
    logger.debug("Asking for hello zeta resource.")
    return Response({'message': HELLO_MESSAGE})


@api_view(['GET'])
def jobs_info(request):
    return Response({'status': 'fantastic!'})
