"""
Integration tests for the flask CLI commands.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from stockledger.services.sales_service import record_sale


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestCliCommands:
    """Test cogs-report, unit-cost and expiring-stock."""

    def test_cogs_report(self, runner, session, team1, user1, product_team1, make_batch):
        batch_id = make_batch(product_team1).id
        team_id = team1.id
        record_sale(session, team_id, [{'batch_id': batch_id, 'quantity': 3, 'unit_price': 150}],
                    user_id=user1.id, sold_at=datetime(2024, 1, 15, tzinfo=timezone.utc))

        result = runner.invoke(args=['cogs-report', '--team-id', str(team_id), '--period', '2024-01'])

        assert result.exit_code == 0, result.output
        assert 'Revenue:      450' in result.output
        assert 'COGS:         300' in result.output
        assert 'Gross profit: 150 (33.33%)' in result.output

    def test_cogs_report_needs_window(self, runner, session, team1):
        result = runner.invoke(args=['cogs-report', '--team-id', str(team1.id), '--start', '2024-01-01'])

        assert result.exit_code != 0
        assert '--period' in result.output

    def test_cogs_report_invalid_period(self, runner, session, team1):
        result = runner.invoke(args=['cogs-report', '--team-id', str(team1.id), '--period', 'soon'])

        assert result.exit_code != 0
        assert 'Invalid period' in result.output

    def test_unit_cost(self, runner, session, product_team1, make_batch):
        batch_id = make_batch(product_team1, total_cost=1000, units_per_pack=3, quantity_received=3).id

        result = runner.invoke(args=['unit-cost', '--batch-id', str(batch_id)])

        assert result.exit_code == 0, result.output
        assert result.output.strip() == '333.3333'

    def test_unit_cost_missing_batch(self, runner, session):
        result = runner.invoke(args=['unit-cost', '--batch-id', '999999'])

        assert result.exit_code != 0
        assert 'not found' in result.output

    def test_expiring_stock(self, runner, session, team1, product_team1, make_batch):
        expires = (datetime.now(timezone.utc) + timedelta(days=3)).date()
        batch_id = make_batch(product_team1, expiration_date=expires, location='Fridge').id
        team_id = team1.id

        result = runner.invoke(args=['expiring-stock', '--team-id', str(team_id), '--days', '10'])

        assert result.exit_code == 0, result.output
        assert f'#{batch_id}' in result.output
        assert 'location=Fridge' in result.output

    def test_no_expiring_stock(self, runner, session, team1, product_team1, make_batch):
        make_batch(product_team1, expiration_date=date(2999, 1, 1))

        result = runner.invoke(args=['expiring-stock', '--team-id', str(team1.id)])

        assert result.exit_code == 0
        assert 'No expiring stock.' in result.output
