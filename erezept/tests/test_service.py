from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from erezept.exceptions import Conflict, NotFound
from erezept.models import Erezept, ErezeptStatus
from erezept.services import erezept as service

pytestmark = pytest.mark.django_db


def _new(**overrides):
    fields = dict(
        medication_name="Ibuprofen 400 mg",
        dosage="1 tablet",
        expires_at=timezone.now() + timedelta(days=7),
        patient_id="PAT-1",
        practitioner_id="PRAC-1",
        prescription_id="RX-100",
    )
    fields.update(overrides)
    return Erezept(**fields)


def test_find_all_empty():
    assert service.find_all() == []


def test_create_assigns_id_and_default_status():
    created = service.create(_new())
    assert created.pk is not None
    assert created.status == ErezeptStatus.CREATED
    assert service.find_by_id(created.pk) == created


def test_create_ignores_caller_supplied_id(make_erezept):
    existing = make_erezept(prescription_id="RX-EXISTING")
    created = service.create(_new(id=existing.pk, prescription_id="RX-OTHER"))
    assert created.pk != existing.pk
    assert Erezept.objects.count() == 2


def test_duplicate_business_key_is_rejected_without_write():
    service.create(_new(prescription_id="RX-DUP"))
    with pytest.raises(Conflict) as excinfo:
        service.create(_new(prescription_id="RX-DUP", medication_name="Other"))
    assert "RX-DUP" in excinfo.value.message
    assert Erezept.objects.count() == 1


def test_database_constraint_settles_concurrent_duplicate():
    service.create(_new(prescription_id="RX-RACE"))
    # Both writers passed the existence check before either one saved.
    with mock.patch.object(service, "exists_by_prescription_id", return_value=False):
        with pytest.raises(Conflict) as excinfo:
            service.create(_new(prescription_id="RX-RACE", medication_name="Other"))
    assert excinfo.value.message == service.duplicate_message("RX-RACE")
    assert Erezept.objects.filter(prescription_id="RX-RACE").count() == 1


def test_find_by_prescription_id(make_erezept):
    stored = make_erezept(prescription_id="RX-FIND")
    assert service.find_by_prescription_id("RX-FIND") == stored
    assert service.find_by_prescription_id("RX-MISSING") is None


def test_exists_predicates_treat_missing_keys_as_false(make_erezept):
    stored = make_erezept()
    assert service.exists_by_id(stored.pk)
    assert not service.exists_by_id(stored.pk + 1)
    assert not service.exists_by_id(None)
    assert service.exists_by_prescription_id(stored.prescription_id)
    assert not service.exists_by_prescription_id(None)
    assert not service.exists_by_prescription_id("")


def test_update_applies_fields_and_preserves_issued_at(make_erezept):
    stored = make_erezept(prescription_id="RX-UPD")
    issued_at = stored.issued_at
    new_expiry = timezone.now() + timedelta(days=60)

    updated = service.update(stored.pk, {
        "medication_name": "Updated med",
        "dosage": "2 tablets",
        "expires_at": new_expiry,
        "status": ErezeptStatus.DISPENSED,
        "issued_at": timezone.now() - timedelta(days=365),
    })

    stored.refresh_from_db()
    assert updated.pk == stored.pk
    assert stored.medication_name == "Updated med"
    assert stored.dosage == "2 tablets"
    assert stored.expires_at == new_expiry
    assert stored.status == ErezeptStatus.DISPENSED
    assert stored.issued_at == issued_at
    assert stored.prescription_id == "RX-UPD"


def test_update_without_status_keeps_current_status(make_erezept):
    stored = make_erezept(status=ErezeptStatus.SIGNED)
    service.update(stored.pk, {"medication_name": "X", "dosage": "Y"})
    stored.refresh_from_db()
    assert stored.status == ErezeptStatus.SIGNED


def test_update_can_reassign_business_key(make_erezept):
    stored = make_erezept(prescription_id="RX-OLD")
    service.update(stored.pk, {"prescription_id": "RX-NEW", "patient_id": "PAT-9"})
    stored.refresh_from_db()
    assert stored.prescription_id == "RX-NEW"
    assert stored.patient_id == "PAT-9"


def test_update_rejects_business_key_of_other_record(make_erezept):
    make_erezept(prescription_id="RX-A")
    b = make_erezept(prescription_id="RX-B")
    with pytest.raises(Conflict):
        service.update(b.pk, {"prescription_id": "RX-A"})
    b.refresh_from_db()
    assert b.prescription_id == "RX-B"


def test_update_missing_record_raises_not_found():
    with pytest.raises(NotFound):
        service.update(4711, {"medication_name": "X"})


def test_delete_if_exists_is_idempotent(make_erezept):
    stored = make_erezept()
    assert service.delete_if_exists(stored.pk) is True
    assert service.delete_if_exists(stored.pk) is False
    assert service.delete_if_exists(stored.pk) is False
    assert Erezept.objects.count() == 0
