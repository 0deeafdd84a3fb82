from django.utils import timezone
from rest_framework import serializers

from erezept.models import Erezept, ErezeptStatus


class ErezeptSerializer(serializers.ModelSerializer):
    """JSON representation of a prescription (camelCase field names).

    ``prescriptionId`` is declared explicitly so DRF does not attach its
    own uniqueness validator; duplicates are the service's concern and are
    answered with 409, not 400.
    """

    medicationName = serializers.CharField(source="medication_name", max_length=128)
    dosage = serializers.CharField(max_length=256)
    issuedAt = serializers.DateTimeField(source="issued_at", required=False)
    expiresAt = serializers.DateTimeField(source="expires_at", required=False, allow_null=True)
    status = serializers.ChoiceField(choices=ErezeptStatus.choices, required=False)
    patientId = serializers.CharField(source="patient_id", max_length=64)
    practitionerId = serializers.CharField(source="practitioner_id", max_length=64)
    prescriptionId = serializers.CharField(source="prescription_id", max_length=64)

    class Meta:
        model = Erezept
        fields = [
            "id",
            "medicationName",
            "dosage",
            "issuedAt",
            "expiresAt",
            "status",
            "patientId",
            "practitionerId",
            "prescriptionId",
        ]
        read_only_fields = ["id"]

    def validate_medicationName(self, v):
        return _clean_text(v)

    def validate_dosage(self, v):
        return _clean_text(v)

    def validate_issuedAt(self, v):
        if v is not None and v > timezone.now():
            raise serializers.ValidationError("must be a date in the past or in the present")
        return v

    def validate_expiresAt(self, v):
        if v is not None and v < timezone.now():
            raise serializers.ValidationError("must be a date in the present or in the future")
        return v

    def to_instance(self) -> Erezept:
        """Unsaved model built from the validated payload."""
        return Erezept(**self.validated_data)

    def to_changes(self) -> dict:
        """Validated payload as model field name -> value, without ``issued_at``."""
        changes = dict(self.validated_data)
        changes.pop("issued_at", None)
        return changes


def _clean_text(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise serializers.ValidationError("must not be blank")
    return v
