from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from kitchen.scheduler import LaunchTicker

from backend.scheduling.services import build_services


class Command(BaseCommand):
    help = "Run the kitchen launch scheduler for every establishment on a fixed interval."

    def add_arguments(self, parser):
        parser.add_argument("--once", action="store_true", help="Run a single tick and exit.")
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds between two ticks (default: LAUNCH_TICK_SECONDS).",
        )

    def handle(self, *args, **options):
        interval = options["interval"] or settings.LAUNCH_TICK_SECONDS
        if interval <= 0:
            raise CommandError("--interval must be > 0")

        services = build_services()
        ticker = LaunchTicker(services.scheduler, services.establishment_ids, interval_seconds=interval)

        if options["once"]:
            for report in ticker.tick():
                self.stdout.write(
                    f"{report.establishment_id}: prep={report.current_prep_minutes} min, "
                    f"updated={report.orders_updated}, launched={report.orders_launched}, "
                    f"failed={len(report.failed_ids)}"
                )
            return

        self.stdout.write(f"Launch scheduler running every {interval:g}s (Ctrl+C to stop)")
        try:
            ticker.run_forever()
        except KeyboardInterrupt:
            self.stdout.write("Launch scheduler stopped")
