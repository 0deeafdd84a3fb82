"""
Django admin registration for prescriptions.

Lets developers inspect and edit stored E-Rezepte via ``/admin/`` while
exercising the REST and STOMP interfaces.
"""

from django.contrib import admin

from .models import Erezept


@admin.register(Erezept)
class ErezeptAdmin(admin.ModelAdmin):
    list_display = ('id', 'prescription_id', 'medication_name', 'status', 'patient_id', 'issued_at', 'expires_at')
    list_filter = ('status',)
    search_fields = ('prescription_id', 'patient_id', 'practitioner_id', 'medication_name')
    readonly_fields = ('issued_at',)
