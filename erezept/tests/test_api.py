"""
Integration tests for the E-Rezept REST API.

The tests drive the endpoints with DRF's APIClient inside the
APITestCase base class and check both the status codes and the shared
error payload rendered by the exception handler.
"""

from datetime import timedelta

from django.test import override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from ..models import Erezept, ErezeptStatus


def payload(**overrides):
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


class ErezeptAPITests(APITestCase):
    def setUp(self) -> None:
        self.collection_url = reverse("erezept_collection")
        self.stored = Erezept.objects.create(
            medication_name="Amoxicillin 500 mg",
            dosage="1 capsule every 8 hours",
            issued_at=timezone.now() - timedelta(days=1),
            expires_at=timezone.now() + timedelta(days=14),
            status=ErezeptStatus.SIGNED,
            patient_id="PAT-000001",
            practitioner_id="PRAC-000001",
            prescription_id="RX-2025-000123",
        )

    def detail_url(self, pk):
        return reverse("erezept_detail", kwargs={"pk": pk})

    def test_create_returns_201_with_location(self):
        resp = self.client.post(self.collection_url, payload(), format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        new_id = resp.data["id"]
        self.assertIsNotNone(new_id)
        self.assertEqual(resp["Location"], f"/api/erezept/{new_id}")
        self.assertEqual(resp.data["status"], "SIGNED")
        self.assertEqual(resp.data["prescriptionId"], "RX-001")

        # The created record is readable by id.
        fetched = self.client.get(self.detail_url(new_id))
        self.assertEqual(fetched.status_code, status.HTTP_200_OK)
        self.assertEqual(fetched.data["medicationName"], "Ibuprofen 400 mg")

    def test_create_without_status_defaults_to_created(self):
        body = payload(prescriptionId="RX-NOSTATUS")
        del body["status"]
        del body["issuedAt"]
        resp = self.client.post(self.collection_url, body, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["status"], "CREATED")
        self.assertIsNotNone(resp.data["issuedAt"])

    def test_free_text_is_stored_as_sent(self):
        dosage = "1 tablet morning & evening, <5 days"
        resp = self.client.post(
            self.collection_url, payload(prescriptionId="RX-TEXT", dosage=dosage), format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["dosage"], dosage)

        # Sending the stored value back must not change it.
        url = self.detail_url(resp.data["id"])
        updated = self.client.put(url, payload(prescriptionId="RX-TEXT", dosage=resp.data["dosage"]), format="json")
        self.assertEqual(updated.data["dosage"], dosage)
        self.assertEqual(Erezept.objects.get(pk=resp.data["id"]).dosage, dosage)

    def test_medication_name_at_max_length_keeps_its_length(self):
        name = "&" * 128
        resp = self.client.post(
            self.collection_url, payload(prescriptionId="RX-LONG", medicationName=name), format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Erezept.objects.get(pk=resp.data["id"]).medication_name, name)

    def test_duplicate_prescription_id_is_rejected(self):
        first = self.client.post(self.collection_url, payload(prescriptionId="RX-DUP"), format="json")
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        count = Erezept.objects.count()

        second = self.client.post(
            self.collection_url,
            payload(prescriptionId="RX-DUP", medicationName="Paracetamol 500 mg"),
            format="json",
        )
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data["status"], 409)
        self.assertIn("RX-DUP", second.data["message"])
        self.assertIn("timestamp", second.data)
        self.assertEqual(Erezept.objects.count(), count)

    def test_validation_errors_use_shared_payload(self):
        future = (timezone.now() + timedelta(days=1)).isoformat()
        resp = self.client.post(
            self.collection_url,
            payload(medicationName="   ", issuedAt=future),
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["status"], 400)
        self.assertEqual(resp.data["message"], "Validation failed")
        errors = resp.data["details"]["errors"]
        self.assertIn("medicationName", errors)
        self.assertEqual(errors["issuedAt"], "must be a date in the past or in the present")

    def test_expired_prescription_is_rejected(self):
        past = (timezone.now() - timedelta(days=1)).isoformat()
        resp = self.client.post(self.collection_url, payload(expiresAt=past), format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            resp.data["details"]["errors"]["expiresAt"],
            "must be a date in the present or in the future",
        )

    def test_missing_required_fields(self):
        resp = self.client.post(self.collection_url, {"dosage": "1 tablet"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        errors = resp.data["details"]["errors"]
        for name in ("medicationName", "patientId", "practitionerId", "prescriptionId"):
            self.assertIn(name, errors)

    def test_malformed_json_is_reported_as_invalid_format(self):
        resp = self.client.post(self.collection_url, "{not json", content_type="application/json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["message"], "Invalid message format or missing required fields")

    def test_list_returns_all_records(self):
        self.client.post(self.collection_url, payload(), format="json")
        resp = self.client.get(self.collection_url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [item["prescriptionId"] for item in resp.data],
            ["RX-2025-000123", "RX-001"],
        )

    def test_trailing_slash_is_accepted(self):
        resp = self.client.get(self.collection_url + "/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

    def test_get_unknown_id_returns_404(self):
        resp = self.client.get(self.detail_url(999999))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["status"], 404)
        self.assertEqual(resp.data["message"], "ERezept with id=999999 not found")

    def test_find_by_prescription_id(self):
        url = reverse("erezept_by_prescription", kwargs={"prescription_id": "RX-2025-000123"})
        resp = self.client.get(url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["id"], self.stored.pk)

        missing = reverse("erezept_by_prescription", kwargs={"prescription_id": "RX-NONE"})
        self.assertEqual(self.client.get(missing).status_code, status.HTTP_404_NOT_FOUND)

    def test_update_preserves_issued_at(self):
        issued_at = self.stored.issued_at
        body = payload(
            medicationName="Amoxicillin 1000 mg",
            status="DISPENSED",
            prescriptionId="RX-2025-000123",
            issuedAt=(timezone.now() - timedelta(days=100)).isoformat(),
        )
        resp = self.client.put(self.detail_url(self.stored.pk), body, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["medicationName"], "Amoxicillin 1000 mg")
        self.assertEqual(resp.data["status"], "DISPENSED")

        self.stored.refresh_from_db()
        self.assertEqual(self.stored.issued_at, issued_at)
        self.assertEqual(self.stored.status, ErezeptStatus.DISPENSED)

    def test_update_to_taken_prescription_id_conflicts(self):
        self.client.post(self.collection_url, payload(prescriptionId="RX-TAKEN"), format="json")
        resp = self.client.put(
            self.detail_url(self.stored.pk), payload(prescriptionId="RX-TAKEN"), format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_update_unknown_id_returns_404(self):
        resp = self.client.put(self.detail_url(424242), payload(), format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete(self):
        url = self.detail_url(self.stored.pk)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Erezept.objects.filter(pk=self.stored.pk).exists())
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_404_NOT_FOUND)

    @override_settings(SERVER_CONTEXT_PATH="/achelos_testfachdienst/")
    def test_location_carries_context_path(self):
        resp = self.client.post(self.collection_url, payload(prescriptionId="RX-CTX"), format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp["Location"], f"/achelos_testfachdienst/api/erezept/{resp.data['id']}")


class AuxiliaryEndpointTests(APITestCase):
    def test_hello_zeta(self):
        resp = self.client.get(reverse("hello_zeta"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json(), {"message": "Hello ZETA!"})

    def test_jobs_info(self):
        resp = self.client.get(reverse("jobs_info"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json(), {"status": "fantastic!"})

    def test_health_reports_database(self):
        resp = self.client.get(reverse("health"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json()["status"], "UP")
        self.assertEqual(resp.json()["components"]["db"]["status"], "UP")
