from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from erezept.models import Erezept, ErezeptStatus


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def erezept_payload():
    """Factory for a valid JSON prescription body."""
    def build(**overrides):
        now = timezone.now()
        data = {
            "medicationName": "Ibuprofen 400 mg",
            "dosage": "1 tablet, 3x daily after meals",
            "issuedAt": (now - timedelta(hours=1)).isoformat(),
            "expiresAt": (now + timedelta(days=30)).isoformat(),
            "status": "SIGNED",
            "patientId": "PAT-123456",
            "practitionerId": "PRAC-98765",
            "prescriptionId": "RX-001",
        }
        data.update(overrides)
        return data
    return build


@pytest.fixture
def make_erezept(db):
    """Factory storing a prescription directly through the ORM."""
    def build(**overrides):
        now = timezone.now()
        fields = {
            "medication_name": "Amoxicillin 500 mg",
            "dosage": "1 capsule every 8 hours",
            "issued_at": now - timedelta(days=1),
            "expires_at": now + timedelta(days=14),
            "status": ErezeptStatus.SIGNED,
            "patient_id": "PAT-000001",
            "practitioner_id": "PRAC-000001",
            "prescription_id": "RX-2025-000123",
        }
        fields.update(overrides)
        return Erezept.objects.create(**fields)
    return build
