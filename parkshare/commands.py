import json

import click

from parkshare.services import JobService, PayoutService, SweeperService
from parkshare.utils.clock import parse_timestamp


def register_commands(app):
    @app.cli.command("sweep")
    @click.option("--now", "now_raw", default=None, help="ISO-8601 timestamp to sweep as of (defaults to now).")
    def sweep_command(now_raw):
        """Apply due booking transitions once."""
        result = SweeperService.sweep(now=parse_timestamp(now_raw))
        click.echo(json.dumps(result.to_dict()))

    @app.cli.command("run-payouts")
    def run_payouts_command():
        """Consolidate unprocessed commissions into owner payouts."""
        result = PayoutService.run_payouts()
        click.echo(json.dumps(result.to_dict()))
        if not result.success:
            raise SystemExit(1)

    @app.cli.command("health-check")
    def health_check_command():
        report = JobService.health_check()
        click.echo(json.dumps(report))
        if not report["healthy"]:
            raise SystemExit(1)
