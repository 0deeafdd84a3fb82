"""
Periodic OTLP export of the self disclosure record.

Either the gRPC or the HTTP OTLP log exporter is used; gRPC wins when both
are enabled.  The exporter is built on the first export and reused for
the lifetime of the process.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from erezept.services.self_disclosure import SelfDisclosureService

logger = logging.getLogger(__name__)

HTTP_SCHEME = "http://"
HTTPS_SCHEME = "https://"


@dataclass(frozen=True)
class SelfDisclosureExportConfig:
    grpc_export_enabled: bool = False
    grpc_host: str = ""
    http_export_enabled: bool = False
    http_host: str = ""
    interval_seconds: int = 60

    @property
    def enabled(self) -> bool:
        return self.grpc_export_enabled or self.http_export_enabled

    @classmethod
    def from_settings(cls) -> "SelfDisclosureExportConfig":
        return cls(
            grpc_export_enabled=settings.OTLP_EXPORT_LOGS_GRPC_ENABLED,
            grpc_host=settings.OTLP_EXPORT_LOGS_GRPC_HOST,
            http_export_enabled=settings.OTLP_EXPORT_LOGS_HTTP_ENABLED,
            http_host=settings.OTLP_EXPORT_LOGS_HTTP_HOST,
            interval_seconds=settings.OTLP_EXPORT_LOGS_INTERVAL_SECONDS,
        )


class OtlpLogExporterFactory:
    """Creates OTLP log exporters; imports are deferred so only the chosen transport is loaded."""

    def create_http_exporter(self, endpoint: str):
        from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter

        return OTLPLogExporter(endpoint=endpoint)

    def create_grpc_exporter(self, endpoint: str):
        from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter

        return OTLPLogExporter(endpoint=endpoint)


def normalize_endpoint(endpoint: Optional[str], exporter_type: str) -> str:
    """Ensure ``endpoint`` carries an http(s) scheme, defaulting to ``http://``."""
    if endpoint is None or not endpoint.strip():
        raise ImproperlyConfigured(f"OTLP {exporter_type} host must not be empty")
    endpoint = endpoint.strip()
    if endpoint.startswith(HTTP_SCHEME) or endpoint.startswith(HTTPS_SCHEME):
        return endpoint
    normalized = HTTP_SCHEME + endpoint
    logger.info("OTLP %s host '%s' missing scheme, defaulting to '%s'", exporter_type, endpoint, normalized)
    return normalized


class SelfDisclosureExportService:
    def __init__(
        self,
        self_disclosure_service: Optional[SelfDisclosureService] = None,
        config: Optional[SelfDisclosureExportConfig] = None,
        exporter_factory: Optional[OtlpLogExporterFactory] = None,
    ):
        self.self_disclosure_service = self_disclosure_service or SelfDisclosureService()
        self.config = config or SelfDisclosureExportConfig.from_settings()
        self.exporter_factory = exporter_factory or OtlpLogExporterFactory()
        self._log_exporter = None
        self._lock = threading.Lock()

    @property
    def export_interval_seconds(self) -> int:
        return self.config.interval_seconds

    def _setup_log_exporter(self):
        config = self.config
        if config.grpc_export_enabled and config.http_export_enabled:
            logger.info("Both OTLP HTTP and gRPC export are enabled; defaulting to gRPC exporter")
        if config.grpc_export_enabled:
            return self.exporter_factory.create_grpc_exporter(normalize_endpoint(config.grpc_host, "gRPC"))
        if config.http_export_enabled:
            return self.exporter_factory.create_http_exporter(normalize_endpoint(config.http_host, "HTTP"))
        raise ImproperlyConfigured("No OTLP exporter enabled")

    def _get_log_exporter(self):
        if self._log_exporter is None:
            with self._lock:
                if self._log_exporter is None:
                    self._log_exporter = self._setup_log_exporter()
        return self._log_exporter

    def export_self_disclosure(self):
        """Export one self disclosure record; a no-op while both transports are disabled."""
        if not self.config.enabled:
            logger.debug("OTLP export disabled; skipping self disclosure export")
            return None
        exporter = self._get_log_exporter()
        record = self.self_disclosure_service.generate_self_disclosure_record()
        result = exporter.export([record])
        logger.debug("Self disclosure exported: %s", result)
        return result

    def shutdown(self):
        with self._lock:
            if self._log_exporter is not None:
                self._log_exporter.shutdown()
                self._log_exporter = None
