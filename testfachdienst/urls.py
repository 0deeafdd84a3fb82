"""
URL configuration for the Testfachdienst.

The API routes of the ``erezept`` app are mounted under the configured
context path.  OpenAPI documentation is exposed at ``/swagger/`` and
``/redoc/``, Prometheus metrics at ``/metrics``.
"""
from django.contrib import admin
from django.urls import include, path

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

from erezept.paths import configured_context_path

# API metadata for Swagger/OpenAPI documentation
api_info = openapi.Info(
    title="ZETA Testfachdienst API",
    default_version='v1',
    description="E-Rezept test service with REST and STOMP interfaces.",
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
)

_context = configured_context_path().lstrip('/')

urlpatterns = [
    path('admin/', admin.site.urls),
    path(f'{_context}/' if _context else '', include('erezept.routers')),
    path('', include('django_prometheus.urls')),
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]
