"""Unit tests for sale validation and totals (no database)."""
import pytest

from stockledger.exceptions import (
    ForbiddenError, InsufficientStockError, InvalidAmountError, InvalidQuantityError, NotFoundError
)
from stockledger.models import InventoryBatch
from stockledger.services.sales_service import (
    SaleLineRequest, _backoff_delay, _is_retryable_db_error, stage_sale
)


def _batches(*specs):
    """{id: batch} from (id, team_id, remaining) tuples."""
    return {
        batch_id: InventoryBatch(id=batch_id, team_id=team_id, quantity_received=50, quantity_remaining=remaining)
        for batch_id, team_id, remaining in specs
    }


class TestSaleLineRequest:
    """Test request parsing."""

    def test_snake_case(self):
        request = SaleLineRequest.from_mapping({'batch_id': 4, 'quantity': 2, 'unit_price': 150})
        assert request == SaleLineRequest(batch_id=4, quantity=2, unit_price=150)

    def test_camel_case_and_string_id(self):
        request = SaleLineRequest.from_mapping({'batchId': '12', 'quantity': 1, 'unitPrice': 99})
        assert request.batch_id == 12
        assert request.unit_price == 99


class TestStageSale:
    """Test stage_sale."""

    def test_totals(self):
        batches = _batches((1, 1, 24), (2, 1, 10))
        requests = [
            SaleLineRequest(batch_id=1, quantity=3, unit_price=150),
            SaleLineRequest(batch_id=2, quantity=2, unit_price=500),
        ]

        staged = stage_sale(1, requests, batches, tax=100, discount=50)

        assert [line.line_total for line in staged.lines] == [450, 1000]
        assert staged.subtotal == 1450
        assert staged.tax == 100
        assert staged.discount == 50
        assert staged.total == 1500
        assert staged.debits[1].new_remaining == 21
        assert staged.debits[2].new_remaining == 8

    def test_batches_are_not_mutated(self):
        batches = _batches((1, 1, 24))

        stage_sale(1, [SaleLineRequest(batch_id=1, quantity=3, unit_price=150)], batches)

        assert batches[1].quantity_remaining == 24

    def test_missing_tax_and_discount_are_zero(self):
        staged = stage_sale(1, [SaleLineRequest(1, 1, 200)], _batches((1, 1, 5)))

        assert staged.tax == 0
        assert staged.discount == 0
        assert staged.total == 200

    def test_empty_sale_rejected(self):
        with pytest.raises(InvalidQuantityError):
            stage_sale(1, [], _batches((1, 1, 5)))

    def test_first_failing_line_is_reported(self):
        """Line 2 and line 3 are both bad; line 2 (index 1) is reported."""
        batches = _batches((1, 1, 10), (2, 1, 1), (3, 1, 0))
        requests = [
            SaleLineRequest(1, 1, 100),
            SaleLineRequest(2, 5, 100),
            SaleLineRequest(3, 5, 100),
        ]

        with pytest.raises(InsufficientStockError) as exc_info:
            stage_sale(1, requests, batches)

        assert exc_info.value.line_index == 1
        assert exc_info.value.batch_id == 2

    def test_same_batch_on_two_lines_is_validated_cumulatively(self):
        batches = _batches((1, 1, 5))
        requests = [SaleLineRequest(1, 3, 100), SaleLineRequest(1, 3, 100)]

        with pytest.raises(InsufficientStockError) as exc_info:
            stage_sale(1, requests, batches)

        assert exc_info.value.available == 2
        assert exc_info.value.requested == 3

    def test_same_batch_on_two_lines_within_stock(self):
        batches = _batches((1, 1, 5))
        requests = [SaleLineRequest(1, 3, 100), SaleLineRequest(1, 2, 100)]

        staged = stage_sale(1, requests, batches)

        assert len(staged.lines) == 2
        assert staged.debits[1].quantity == 5
        assert staged.debits[1].new_remaining == 0

    def test_unknown_batch(self):
        with pytest.raises(NotFoundError) as exc_info:
            stage_sale(1, [SaleLineRequest(42, 1, 100)], _batches((1, 1, 5)))
        assert 'Inventory not found: 42' in exc_info.value.message

    def test_boolean_batch_id_matches_no_batch(self):
        """True == 1, but a flag is not a batch reference."""
        request = SaleLineRequest.from_mapping({'batchId': True, 'quantity': 1, 'unitPrice': 100})

        with pytest.raises(NotFoundError):
            stage_sale(1, [request], _batches((1, 1, 5)))

    def test_other_team_batch(self):
        with pytest.raises(ForbiddenError):
            stage_sale(1, [SaleLineRequest(1, 1, 100)], _batches((1, 2, 5)))

    @pytest.mark.parametrize('quantity', [0, -2, 2.5, '3'])
    def test_invalid_quantity(self, quantity):
        with pytest.raises(InvalidQuantityError):
            stage_sale(1, [SaleLineRequest(1, quantity, 100)], _batches((1, 1, 5)))

    @pytest.mark.parametrize('unit_price', [-1, 1.5, None])
    def test_invalid_unit_price(self, unit_price):
        with pytest.raises(InvalidAmountError):
            stage_sale(1, [SaleLineRequest(1, 1, unit_price)], _batches((1, 1, 5)))

    def test_zero_unit_price_allowed(self):
        staged = stage_sale(1, [SaleLineRequest(1, 2, 0)], _batches((1, 1, 5)))
        assert staged.total == 0

    def test_negative_tax_rejected(self):
        with pytest.raises(InvalidAmountError):
            stage_sale(1, [SaleLineRequest(1, 1, 100)], _batches((1, 1, 5)), tax=-5)

    def test_discount_above_subtotal_plus_tax_rejected(self):
        with pytest.raises(InvalidAmountError):
            stage_sale(1, [SaleLineRequest(1, 1, 100)], _batches((1, 1, 5)), tax=10, discount=111)

    def test_discount_equal_to_subtotal_plus_tax_allowed(self):
        staged = stage_sale(1, [SaleLineRequest(1, 1, 100)], _batches((1, 1, 5)), tax=10, discount=110)
        assert staged.total == 0


class TestRetryHelpers:
    """Test retry classification and backoff."""

    def test_backoff_grows_and_is_capped(self, app):
        previous = dict(app.config)
        app.config.update(SALE_COMMIT_BACKOFF_BASE=0.1, SALE_COMMIT_BACKOFF_MAX=0.3)
        try:
            with app.app_context():
                assert _backoff_delay(1) == pytest.approx(0.1)
                assert _backoff_delay(2) == pytest.approx(0.2)
                assert _backoff_delay(3) == pytest.approx(0.3)
                assert _backoff_delay(6) == pytest.approx(0.3)
        finally:
            app.config.update(
                SALE_COMMIT_BACKOFF_BASE=previous['SALE_COMMIT_BACKOFF_BASE'],
                SALE_COMMIT_BACKOFF_MAX=previous['SALE_COMMIT_BACKOFF_MAX'],
            )

    def test_retryable_errors(self):
        from sqlalchemy.exc import OperationalError

        class _PgError(Exception):
            sqlstate = '40001'

        assert _is_retryable_db_error(OperationalError('UPDATE', {}, _PgError('could not serialize')))
        assert _is_retryable_db_error(OperationalError('UPDATE', {}, Exception('database is locked')))
        assert not _is_retryable_db_error(OperationalError('UPDATE', {}, Exception('no such table: x')))
