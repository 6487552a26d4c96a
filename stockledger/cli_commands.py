"""
Flask CLI commands for stock and cost reporting.

Commands:
- flask init-db: Create database tables
- flask cogs-report: COGS and gross profit for a team and window
- flask unit-cost: Cost basis preview for a batch
- flask expiring-stock: Batches with stock expiring soon
"""

import click
from stockledger import database
from stockledger.exceptions import StockLedgerError
from stockledger.services.report_service import (
    compute_unit_cost, find_expiring_batches, get_window_summary
)
from stockledger.utils.dates import parse_iso_datetime, parse_period
from stockledger.utils.money import round_rate


def _resolve_window(period, start, end):
    if period:
        return parse_period(period)
    if not start or not end:
        raise click.UsageError('Provide --period, or both --start and --end')
    return parse_iso_datetime(start), parse_iso_datetime(end, end_of_day=True)


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables."""
        database.create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('cogs-report')
    @click.option('--team-id', type=int, required=True, help='Team ID')
    @click.option('--period', help='YYYY-MM or YYYY-Qn')
    @click.option('--start', help='Window start (ISO-8601)')
    @click.option('--end', help='Window end (ISO-8601, inclusive)')
    @click.option('--method', type=click.Choice(['direct', 'pooled']), default=None,
                  help='Override COST_BASIS_METHOD')
    def cogs_report(team_id, period, start, end, method):
        """Print revenue, COGS and gross profit for a window."""
        try:
            window_start, window_end = _resolve_window(period, start, end)
            summary = get_window_summary(database.db_session, team_id, window_start, window_end, method=method)
        except StockLedgerError as e:
            raise click.ClickException(e.message)

        click.echo(f"Window:       {summary['start']} .. {summary['end']}")
        click.echo(f"Revenue:      {summary['revenue']}")
        click.echo(f"COGS:         {summary['total_cogs']}")
        click.echo(f"Gross profit: {summary['gross_profit']} ({summary['gross_margin']}%)")
        click.echo(f"Units sold:   {summary['units_sold']}")
        click.echo(f"Transactions: {summary['transaction_count']}")
        if summary['skipped_count']:
            click.echo(click.style(
                f"Warning: {summary['skipped_count']} record(s) had no resolvable batch and carry no cost.",
                fg='yellow'
            ))

    @app.cli.command('unit-cost')
    @click.option('--batch-id', type=int, required=True, help='Inventory batch ID')
    @click.option('--method', type=click.Choice(['direct', 'pooled']), default=None)
    def unit_cost(batch_id, method):
        """Print the unit cost of a batch (minor units)."""
        try:
            cost = compute_unit_cost(database.db_session, batch_id, method=method)
        except StockLedgerError as e:
            raise click.ClickException(e.message)
        click.echo(round_rate(cost))

    @app.cli.command('expiring-stock')
    @click.option('--team-id', type=int, required=True, help='Team ID')
    @click.option('--days', type=int, default=None, help='Look-ahead window (EXPIRING_STOCK_DAYS)')
    def expiring_stock(team_id, days):
        """List batches with stock expiring soon."""
        batches = find_expiring_batches(database.db_session, team_id, within_days=days)
        if not batches:
            click.echo('No expiring stock.')
            return
        for batch in batches:
            click.echo(
                f"#{batch.id}  product={batch.product_id}  remaining={batch.quantity_remaining}  "
                f"expires={batch.expiration_date.isoformat()}  location={batch.location or '-'}"
            )
