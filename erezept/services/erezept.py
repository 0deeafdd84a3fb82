"""
Prescription service.

All mutations of :class:`~erezept.models.Erezept` go through this module so
that both transports share one set of rules: the business key
(``prescription_id``) is never duplicated and ``issued_at`` never changes
after creation.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction

from erezept.exceptions import Conflict, NotFound
from erezept.models import Erezept, ErezeptStatus

logger = logging.getLogger(__name__)

# Fields a caller may change on an existing prescription.
MUTABLE_FIELDS = ("medication_name", "dosage", "expires_at")
REASSIGNABLE_FIELDS = ("patient_id", "practitioner_id", "prescription_id")


def duplicate_message(prescription_id: str) -> str:
    return f"ERezept with prescriptionId={prescription_id} already exists"


def not_found_message(pk) -> str:
    return f"ERezept with id={pk} not found"


def find_all() -> List[Erezept]:
    return list(Erezept.objects.all())


def find_by_id(pk) -> Optional[Erezept]:
    return Erezept.objects.find_by_id(pk)


def find_by_prescription_id(prescription_id: str) -> Optional[Erezept]:
    return Erezept.objects.find_by_prescription_id(prescription_id)


def exists_by_id(pk) -> bool:
    if pk is None:
        return False
    return Erezept.objects.exists_by_id(pk)


def exists_by_prescription_id(prescription_id: Optional[str]) -> bool:
    if not prescription_id:
        return False
    return Erezept.objects.exists_by_prescription_id(prescription_id)


def save(prescription: Erezept) -> Erezept:
    prescription.save()
    return prescription


def delete_by_id(pk) -> None:
    Erezept.objects.delete_by_id(pk)


def _save_unique(prescription: Erezept) -> Erezept:
    # The service-level check is a fast path; the UNIQUE constraint decides races.
    try:
        with transaction.atomic():
            prescription.save()
    except IntegrityError:
        taken = Erezept.objects.filter(prescription_id=prescription.prescription_id).exclude(pk=prescription.pk)
        if taken.exists():
            logger.warning("Duplicate prescriptionId=%s rejected by the database", prescription.prescription_id)
            raise Conflict(duplicate_message(prescription.prescription_id))
        raise
    return prescription


def create(prescription: Erezept) -> Erezept:
    """Store ``prescription`` when its business key is unique.

    Raises :class:`Conflict` without writing when the key already exists.
    """
    if exists_by_prescription_id(prescription.prescription_id):
        raise Conflict(duplicate_message(prescription.prescription_id))
    prescription.pk = None
    if not prescription.status:
        prescription.status = ErezeptStatus.CREATED
    return _save_unique(prescription)


def update(pk, changes: Dict[str, Any]) -> Erezept:
    """Apply ``changes`` (model field name -> value) to prescription ``pk``.

    Medication, dosage and expiry follow ``changes`` when present; an
    empty status keeps the current one.  Patient, practitioner and
    prescription identifiers are taken over when supplied, and a new
    prescription identifier must still be unique.  ``id`` and
    ``issued_at`` are never touched.
    """
    existing = find_by_id(pk)
    if existing is None:
        raise NotFound(not_found_message(pk))

    new_key = changes.get("prescription_id")
    if new_key and new_key != existing.prescription_id and exists_by_prescription_id(new_key):
        raise Conflict(duplicate_message(new_key))

    for field in MUTABLE_FIELDS:
        if field in changes:
            setattr(existing, field, changes[field])
    if changes.get("status"):
        existing.status = changes["status"]
    for field in REASSIGNABLE_FIELDS:
        if changes.get(field):
            setattr(existing, field, changes[field])
    return _save_unique(existing)


def delete_if_exists(pk) -> bool:
    if not exists_by_id(pk):
        return False
    delete_by_id(pk)
    return True
