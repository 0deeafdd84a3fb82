"""
WSGI config for the Testfachdienst.

Serves the REST surface only; the STOMP endpoint needs the ASGI
application in :mod:`testfachdienst.asgi`.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'testfachdienst.settings')

application = get_wsgi_application()
