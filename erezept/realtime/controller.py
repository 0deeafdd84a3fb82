"""
STOMP command handlers for prescriptions.

Commands arrive on ``/app/erezept.<action>[.<id>]``.  Every handler
answers the caller on its private queue; ``create`` and ``update`` also
broadcast the stored record to the shared ``/topic/erezept``.  Handlers
are synchronous and touch the database, so the consumer runs them via
``database_sync_to_async``.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from django.utils import timezone

from erezept.exceptions import Conflict, NotFound, ValidationFailure, INVALID_FORMAT_MESSAGE
from erezept.models import Erezept, ErezeptStatus
from erezept.serializers.erezept import ErezeptSerializer
from erezept.services import erezept as service

logger = logging.getLogger(__name__)


@dataclass
class Reply:
    """Result of one command: a private reply and/or a broadcast body."""

    payload: Any = None
    broadcast: Any = None


def _decode(body: Optional[str]) -> Dict[str, Any]:
    try:
        data = json.loads(body or "")
    except ValueError as exc:
        raise ValidationFailure(INVALID_FORMAT_MESSAGE, {"error": str(exc)})
    if not isinstance(data, dict):
        raise ValidationFailure(INVALID_FORMAT_MESSAGE, {"error": "JSON object expected"})
    return data


def _validated(body: Optional[str]) -> Tuple[Dict[str, Any], ErezeptSerializer]:
    data = _decode(body)
    serializer = ErezeptSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    return data, serializer


def _require(pk: int) -> Erezept:
    prescription = service.find_by_id(pk)
    if prescription is None:
        raise NotFound(service.not_found_message(pk))
    return prescription


def create(body: Optional[str]) -> Reply:
    data, serializer = _validated(body)
    prescription_id = serializer.validated_data["prescription_id"]
    logger.info("STOMP erezept.create request received for prescriptionId=%s", prescription_id)

    requested_id = data.get("id")
    if requested_id is not None:
        try:
            requested_id = int(requested_id)
        except (TypeError, ValueError):
            raise ValidationFailure("Validation failed", {"errors": {"id": "A valid integer is required."}})
        if service.exists_by_id(requested_id):
            raise Conflict(f"ERezept with id={requested_id} already exists")

    to_save = serializer.to_instance()
    to_save.status = ErezeptStatus.CREATED
    to_save.issued_at = timezone.now()
    created = service.create(to_save)

    record = ErezeptSerializer(created).data
    logger.info("STOMP erezept.create persisted id=%s, broadcasting", created.pk)
    return Reply(payload=record, broadcast=record)


def list_all(body: Optional[str] = None) -> Reply:
    logger.info("STOMP erezept.list request received")
    return Reply(payload=ErezeptSerializer(service.find_all(), many=True).data)


def read(pk: int, body: Optional[str] = None) -> Reply:
    logger.info("STOMP erezept.read request received for id=%s", pk)
    return Reply(payload=ErezeptSerializer(_require(pk)).data)


def update(pk: int, body: Optional[str]) -> Reply:
    logger.info("STOMP erezept.update request received for id=%s", pk)
    _require(pk)
    _, serializer = _validated(body)
    saved = service.update(pk, serializer.to_changes())

    record = ErezeptSerializer(saved).data
    logger.info("STOMP erezept.update persisted id=%s, broadcasting", saved.pk)
    return Reply(payload=record, broadcast=record)


def delete(pk: int, body: Optional[str] = None) -> Reply:
    logger.info("STOMP erezept.delete request received for id=%s", pk)
    if not service.delete_if_exists(pk):
        raise NotFound(service.not_found_message(pk))
    logger.info("STOMP erezept.delete removed id=%s", pk)
    return Reply(payload={"id": pk, "status": "deleted"})


_ROUTES: Tuple[Tuple[re.Pattern, Callable[..., Reply]], ...] = (
    (re.compile(r"^erezept\.create$"), create),
    (re.compile(r"^erezept\.list$"), list_all),
    (re.compile(r"^erezept\.read\.(?P<pk>[^.]+)$"), read),
    (re.compile(r"^erezept\.update\.(?P<pk>[^.]+)$"), update),
    (re.compile(r"^erezept\.delete\.(?P<pk>[^.]+)$"), delete),
)


def dispatch(route: str, body: Optional[str]) -> Reply:
    """Run the handler mapped to ``route`` (destination without the app prefix)."""
    for pattern, handler in _ROUTES:
        match = pattern.match(route)
        if match is None:
            continue
        kwargs = match.groupdict()
        if "pk" in kwargs:
            try:
                kwargs["pk"] = int(kwargs["pk"])
            except ValueError:
                raise ValidationFailure(INVALID_FORMAT_MESSAGE, {"error": f"Invalid id {kwargs['pk']!r}"})
        return handler(body=body, **kwargs)
    raise NotFound(f"No handler for destination {route!r}")
