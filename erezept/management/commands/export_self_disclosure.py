from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError

from erezept.jobs import SELF_DISCLOSURE_JOB_ID, RecurringJob
from erezept.services.self_disclosure_export import SelfDisclosureExportService


class Command(BaseCommand):
    help = "Export the OTLP self disclosure record once, or repeatedly with --loop."

    def add_arguments(self, parser):
        parser.add_argument("--loop", action="store_true", help="Keep exporting at the configured interval.")
        parser.add_argument("--interval", type=int, default=None, help="Override the interval in seconds.")

    def handle(self, *args, **options):
        service = SelfDisclosureExportService()
        if not service.config.enabled:
            self.stdout.write(self.style.WARNING("OTLP export disabled (neither gRPC nor HTTP enabled)"))
            return

        if options["loop"]:
            interval = options["interval"] or service.export_interval_seconds
            job = RecurringJob(SELF_DISCLOSURE_JOB_ID, interval, service.export_self_disclosure)
            self.stdout.write(f"Exporting self disclosure every {interval}s; Ctrl+C to stop")
            job.run_once()
            job.start()
            try:
                job._thread.join()
            except KeyboardInterrupt:
                job.stop()
            finally:
                service.shutdown()
            return

        try:
            result = service.export_self_disclosure()
        except ImproperlyConfigured as exc:
            raise CommandError(str(exc))
        finally:
            service.shutdown()
        self.stdout.write(self.style.SUCCESS(f"Self disclosure exported: {result}"))
