"""Reporting service - COGS, unit cost previews and window summaries."""
from datetime import datetime
from decimal import Decimal
from typing import Optional
import logging

from sqlalchemy import func

from stockledger.exceptions import ForbiddenError, NotFoundError
from stockledger.models import InventoryBatch
from stockledger.services.cogs_service import CogsResult, aggregate_cogs
from stockledger.services.cost_basis import get_cost_basis
from stockledger.services.report_query_service import (
    ReportReadSet, select_for_window, window_revenue
)
from stockledger.utils.dates import days_from_now
from stockledger.utils.money import percentage, to_minor_units
from stockledger.utils.settings import get_setting

logger = logging.getLogger(__name__)


def compute_cogs_for_window(session, team_id: int, start: datetime, end: datetime,
                            method: Optional[str] = None) -> CogsResult:
    """
    Cost of goods sold for a team's sales in [start, end].

    Lines whose batch cannot be resolved are skipped and counted in the
    result's skipped_count.
    """
    read_set = select_for_window(session, team_id, start, end)
    return _cogs_for_read_set(read_set, method)


def compute_unit_cost(session, batch_id: int, team_id: Optional[int] = None,
                      method: Optional[str] = None) -> Decimal:
    """
    Unit cost preview for a batch before anything is sold from it.

    Raises:
        NotFoundError: batch (or, for the pooled method, its lot) is missing
        ForbiddenError: team_id given and the batch belongs to another team
    """
    batch = session.get(InventoryBatch, batch_id)
    if batch is None:
        raise NotFoundError(f'Inventory batch #{batch_id} not found')
    if team_id is not None and batch.team_id != team_id:
        raise ForbiddenError('Not authorized')

    strategy = get_cost_basis(method)
    if not strategy.is_resolvable(batch):
        raise NotFoundError(f'Purchase lot not found for batch #{batch_id}')

    siblings = None
    if strategy.uses_siblings:
        siblings = (
            session.query(InventoryBatch)
            .filter(InventoryBatch.lot_id == batch.lot_id)
            .filter(InventoryBatch.team_id == batch.team_id)
            .all()
        )
    return strategy.unit_cost(batch, siblings)


def get_window_summary(session, team_id: int, start: datetime, end: datetime,
                       method: Optional[str] = None) -> dict:
    """
    Revenue, COGS and gross profit for a window (the quarterly tax report).

    Returns:
        dict with revenue, total_cogs, gross_profit, gross_margin (percent,
        string), units_sold, transaction_count, skipped_count, product_sales
    """
    read_set = select_for_window(session, team_id, start, end)
    cogs = _cogs_for_read_set(read_set, method)

    revenue = window_revenue(read_set)
    total_cogs = to_minor_units(cogs.total_cogs)
    gross_profit = revenue - total_cogs

    units_sold = (
        sum(line.quantity for line in read_set.lines)
        + sum(sale.quantity for sale in read_set.legacy_records)
    )

    return {
        'start': read_set.start.isoformat(),
        'end': read_set.end.isoformat(),
        'revenue': revenue,
        'total_cogs': total_cogs,
        'gross_profit': gross_profit,
        'gross_margin': str(percentage(gross_profit, revenue)),
        'units_sold': units_sold,
        'transaction_count': len(read_set.transactions) + len(read_set.legacy_records),
        'skipped_count': cogs.skipped_count,
        'product_sales': get_product_sales(read_set),
    }


def get_product_sales(read_set: ReportReadSet) -> list:
    """
    Per-product units, revenue and average price for a window, by revenue desc.

    Records whose batch is unknown cannot be attributed to a product and
    are left out of this breakdown.
    """
    products = {}

    def _accumulate(record, revenue):
        batch = read_set.batch_index.get(record.batch_id)
        if batch is None:
            return
        entry = products.get(batch.product_id)
        if entry is None:
            entry = {
                'product_id': batch.product_id,
                'product_name': batch.product.name if batch.product else f'Unknown Product ({batch.product_id})',
                'units_sold': 0,
                'revenue': 0,
                'transaction_count': 0,
            }
            products[batch.product_id] = entry
        entry['units_sold'] += record.quantity
        entry['revenue'] += revenue
        entry['transaction_count'] += 1

    for line in read_set.lines:
        _accumulate(line, line.line_total)
    for sale in read_set.legacy_records:
        _accumulate(sale, sale.unit_price * sale.quantity)

    rows = []
    for entry in products.values():
        units = entry['units_sold']
        entry['average_price'] = to_minor_units(Decimal(entry['revenue']) / units) if units else 0
        rows.append(entry)

    rows.sort(key=lambda row: (-row['revenue'], row['product_id']))
    return rows


def get_stock_on_hand(session, team_id: int) -> int:
    """Units remaining across all of a team's batches."""
    total = (
        session.query(func.coalesce(func.sum(InventoryBatch.quantity_remaining), 0))
        .filter(InventoryBatch.team_id == team_id)
        .scalar()
    )
    return int(total or 0)


def find_expiring_batches(session, team_id: int, within_days: Optional[int] = None,
                          now: Optional[datetime] = None) -> list:
    """
    Batches with stock left that expire within the next N days (or already have).

    The alert job that mails these lives outside this service.
    """
    days = within_days if within_days is not None else int(get_setting('EXPIRING_STOCK_DAYS', 30))
    cutoff = days_from_now(days, now).date()

    return (
        session.query(InventoryBatch)
        .filter(InventoryBatch.team_id == team_id)
        .filter(InventoryBatch.expiration_date.isnot(None))
        .filter(InventoryBatch.expiration_date <= cutoff)
        .filter(InventoryBatch.quantity_remaining > 0)
        .order_by(InventoryBatch.expiration_date.asc(), InventoryBatch.id.asc())
        .all()
    )


def _cogs_for_read_set(read_set: ReportReadSet, method: Optional[str]) -> CogsResult:
    strategy = get_cost_basis(method)
    result = aggregate_cogs(read_set.records, read_set.batch_index, strategy)

    if result.skipped_count:
        logger.warning(
            f"[COGS] team={read_set.team_id} skipped {result.skipped_count} record(s) "
            f"with unresolved batches: {result.skipped_record_ids}"
        )
    return result
