"""
URL mappings for the Testfachdienst API.

Every route is registered both with and without a trailing slash since
clients of the test service use either form.
"""
from django.urls import path

from .views import health
from .views.erezept import erezept_by_prescription, erezept_collection, erezept_detail
from .views.hello import hello_zeta, jobs_info


def _both(route: str, view, name: str):
    return [
        path(route, view, name=name),
        path(route + '/', view),
    ]


urlpatterns = [
    *_both('api/erezept', erezept_collection, 'erezept_collection'),
    *_both('api/erezept/by-prescription/<str:prescription_id>', erezept_by_prescription, 'erezept_by_prescription'),
    *_both('api/erezept/<int:pk>', erezept_detail, 'erezept_detail'),
    *_both('hellozeta', hello_zeta, 'hello_zeta'),
    *_both('jobs/info', jobs_info, 'jobs_info'),
    *_both('actuator/health', health.health, 'health'),
]
