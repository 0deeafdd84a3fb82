"""
Database models for the Testfachdienst.

The only domain entity is the electronic prescription (E-Rezept).  The
custom queryset exposes the lookups the service layer relies on so that
persistence stays a thin pass-through to the ORM.
"""
from __future__ import annotations

from typing import Optional

from django.db import models
from django.utils import timezone
from django_prometheus.models import ExportModelOperationsMixin


class ErezeptStatus(models.TextChoices):
    """Lifecycle states of a prescription."""

    CREATED = "CREATED", "Created"
    SIGNED = "SIGNED", "Signed"
    DISPENSED = "DISPENSED", "Dispensed"
    CANCELLED = "CANCELLED", "Cancelled"
    EXPIRED = "EXPIRED", "Expired"


class ErezeptQuerySet(models.QuerySet):
    def find_by_id(self, pk) -> Optional["Erezept"]:
        return self.filter(pk=pk).first()

    def find_by_prescription_id(self, prescription_id: str) -> Optional["Erezept"]:
        return self.filter(prescription_id=prescription_id).first()

    def exists_by_id(self, pk) -> bool:
        return self.filter(pk=pk).exists()

    def exists_by_prescription_id(self, prescription_id: str) -> bool:
        return self.filter(prescription_id=prescription_id).exists()

    def delete_by_id(self, pk) -> None:
        self.filter(pk=pk).delete()


class Erezept(ExportModelOperationsMixin("erezept"), models.Model):
    """A prescription (E-Rezept).

    ``prescription_id`` is the business key and carries a UNIQUE
    constraint; the service checks it before writing, the database is
    the final arbiter when two writers race.
    """

    medication_name = models.CharField(max_length=128, help_text="Medication name, e.g. 'Ibuprofen 400 mg'")
    dosage = models.CharField(max_length=256, help_text="Dosage instructions")
    issued_at = models.DateTimeField(default=timezone.now, help_text="When it was issued")
    expires_at = models.DateTimeField(null=True, blank=True, help_text="When it expires")
    status = models.CharField(
        max_length=16,
        choices=ErezeptStatus.choices,
        default=ErezeptStatus.CREATED,
    )
    patient_id = models.CharField(max_length=64, help_text="FHIR/PKV patient identifier")
    practitioner_id = models.CharField(max_length=64, help_text="Identifier of prescribing practitioner")
    prescription_id = models.CharField(max_length=64, unique=True, help_text="Prescription identifier")

    objects = ErezeptQuerySet.as_manager()

    class Meta:
        db_table = "erezept"
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.prescription_id} ({self.medication_name})"
