"""
REST endpoints for electronic prescriptions under ``/api/erezept``.

Outcomes of the service are translated to status codes here; expected
failures are raised as :mod:`erezept.exceptions` errors and rendered by
the project-wide DRF exception handler.
"""
from __future__ import annotations

import logging

from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from erezept.exceptions import Conflict, NotFound
from erezept.paths import with_context_path
from erezept.serializers.erezept import ErezeptSerializer
from erezept.services import erezept as service

logger = logging.getLogger(__name__)


def erezept_location(pk) -> str:
    return with_context_path(f"/api/erezept/{pk}")


@swagger_auto_schema(method="get", responses={200: ErezeptSerializer(many=True)})
@swagger_auto_schema(method="post", request_body=ErezeptSerializer, responses={201: ErezeptSerializer})
@api_view(["GET", "POST"])
def erezept_collection(request):
    if request.method == "GET":
        logger.debug("List all E-Rezepte")
        return Response(ErezeptSerializer(service.find_all(), many=True).data)

    serializer = ErezeptSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    prescription_id = serializer.validated_data["prescription_id"]
    logger.info("Create E-Rezept prescriptionId=%s", prescription_id)
    try:
        saved = service.create(serializer.to_instance())
    except Conflict:
        logger.warning("Duplicate prescriptionId=%s", prescription_id)
        raise
    return Response(
        ErezeptSerializer(saved).data,
        status=status.HTTP_201_CREATED,
        headers={"Location": erezept_location(saved.pk)},
    )


@swagger_auto_schema(method="put", request_body=ErezeptSerializer, responses={200: ErezeptSerializer})
@api_view(["GET", "PUT", "DELETE"])
def erezept_detail(request, pk: int):
    if request.method == "GET":
        logger.debug("Fetch E-Rezept by id=%s", pk)
        prescription = service.find_by_id(pk)
        if prescription is None:
            logger.info("E-Rezept not found: id=%s", pk)
            raise NotFound(service.not_found_message(pk))
        return Response(ErezeptSerializer(prescription).data)

    if request.method == "PUT":
        logger.info("Update E-Rezept id=%s", pk)
        serializer = ErezeptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            updated = service.update(pk, serializer.to_changes())
        except NotFound:
            logger.warning("Update failed; E-Rezept not found id=%s", pk)
            raise
        return Response(ErezeptSerializer(updated).data)

    logger.info("Delete E-Rezept id=%s", pk)
    if not service.delete_if_exists(pk):
        logger.warning("Delete failed; E-Rezept not found id=%s", pk)
        raise NotFound(service.not_found_message(pk))
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["GET"])
def erezept_by_prescription(request, prescription_id: str):
    logger.debug("Fetch by prescriptionId=%s", prescription_id)
    prescription = service.find_by_prescription_id(prescription_id)
    if prescription is None:
        logger.info("E-Rezept not found: prescriptionId=%s", prescription_id)
        raise NotFound(f"ERezept with prescriptionId={prescription_id} not found")
    return Response(ErezeptSerializer(prescription).data)
