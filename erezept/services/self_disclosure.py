import os
import time
from typing import Dict, Optional

from django.conf import settings
from opentelemetry.sdk._logs import LogData, LogRecord
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.util.instrumentation import InstrumentationScope

SELF_DISCLOSURE_BODY = "Selbstauskunft"
SCOPE_NAME = "erezept.self_disclosure"


class SelfDisclosureService:
    """Builds the OTLP log record that describes this running instance."""

    def __init__(self, resource_attributes: Optional[Dict[str, str]] = None):
        if resource_attributes is None:
            resource_attributes = getattr(settings, "SELF_DISCLOSURE_RESOURCE_ATTRIBUTES", {})
        self.resource_attributes = dict(resource_attributes)

    def generate_self_disclosure_record(self) -> LogData:
        attributes = dict(self.resource_attributes)
        # $HOSTNAME is the pod name in Kubernetes.
        pod_name = os.environ.get("HOSTNAME", "")
        if pod_name.strip():
            attributes["pod_name"] = pod_name

        now = time.time_ns()
        record = LogRecord(
            timestamp=now,
            observed_timestamp=now,
            body=SELF_DISCLOSURE_BODY,
            attributes=attributes,
            resource=Resource.create({}),
        )
        return LogData(log_record=record, instrumentation_scope=InstrumentationScope(SCOPE_NAME))
