"""
Report query planning - fetch the read set for a reporting window.

A window covers sale transactions (by sale_datetime) plus legacy single-item
sales (by their own sale_datetime), both inclusive at start and end.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List
import logging

from sqlalchemy.orm import joinedload

from stockledger.models import InventoryBatch, LegacySale, SaleLine, SaleTransaction
from stockledger.services.cogs_service import BatchIndex
from stockledger.utils.dates import validate_window

logger = logging.getLogger(__name__)


@dataclass
class ReportReadSet:
    """Everything a window report needs, already fetched."""
    team_id: int
    start: datetime
    end: datetime
    transactions: List[SaleTransaction] = field(default_factory=list)
    lines: List[SaleLine] = field(default_factory=list)
    legacy_records: List[LegacySale] = field(default_factory=list)
    batch_index: BatchIndex = field(default_factory=BatchIndex)

    @property
    def records(self) -> list:
        """Sale lines followed by legacy sales, the COGS input order."""
        return list(self.lines) + list(self.legacy_records)


def select_for_window(session, team_id: int, start: datetime, end: datetime) -> ReportReadSet:
    """
    Fetch a team's sales for [start, end] and the batches they reference.

    Args:
        session: SQLAlchemy session
        team_id: Team ID (REQUIRED for team isolation)
        start: window start (inclusive); naive values are UTC
        end: window end (inclusive)

    Returns:
        ReportReadSet

    Raises:
        InvalidDateRangeError: start is after end
    """
    start, end = validate_window(start, end)

    transactions = (
        session.query(SaleTransaction)
        .filter(SaleTransaction.team_id == team_id)  # CRITICAL: team filter
        .filter(SaleTransaction.sale_datetime >= start)
        .filter(SaleTransaction.sale_datetime <= end)
        .order_by(SaleTransaction.sale_datetime.asc(), SaleTransaction.id.asc())
        .all()
    )

    lines = []
    transaction_ids = [t.id for t in transactions]
    if transaction_ids:
        lines = (
            session.query(SaleLine)
            .filter(SaleLine.transaction_id.in_(transaction_ids))
            .order_by(SaleLine.transaction_id.asc(), SaleLine.id.asc())
            .all()
        )

    legacy_records = (
        session.query(LegacySale)
        .filter(LegacySale.team_id == team_id)  # CRITICAL: team filter
        .filter(LegacySale.sale_datetime >= start)
        .filter(LegacySale.sale_datetime <= end)
        .order_by(LegacySale.sale_datetime.asc(), LegacySale.id.asc())
        .all()
    )

    batch_ids = {line.batch_id for line in lines} | {sale.batch_id for sale in legacy_records}
    batches = load_batches_with_siblings(session, team_id, batch_ids)

    logger.debug(
        f"[REPORTS] Window {start.isoformat()}..{end.isoformat()} team={team_id}: "
        f"{len(transactions)} transactions, {len(lines)} lines, "
        f"{len(legacy_records)} legacy sales, {len(batches)} batches"
    )

    return ReportReadSet(
        team_id=team_id,
        start=start,
        end=end,
        transactions=transactions,
        lines=lines,
        legacy_records=legacy_records,
        batch_index=BatchIndex(batches),
    )


def load_batches_with_siblings(session, team_id: int, batch_ids) -> list:
    """Team batches by id, plus every batch sharing a lot with them."""
    batch_ids = [batch_id for batch_id in batch_ids if batch_id is not None]
    if not batch_ids:
        return []

    batches = (
        session.query(InventoryBatch)
        .options(joinedload(InventoryBatch.lot), joinedload(InventoryBatch.product))
        .filter(InventoryBatch.team_id == team_id)  # CRITICAL: team filter
        .filter(InventoryBatch.id.in_(batch_ids))
        .all()
    )

    lot_ids = {batch.lot_id for batch in batches if batch.lot_id is not None}
    if lot_ids:
        siblings = (
            session.query(InventoryBatch)
            .options(joinedload(InventoryBatch.lot), joinedload(InventoryBatch.product))
            .filter(InventoryBatch.team_id == team_id)
            .filter(InventoryBatch.lot_id.in_(lot_ids))
            .all()
        )
        known = {batch.id for batch in batches}
        batches.extend(batch for batch in siblings if batch.id not in known)

    return batches


def window_revenue(read_set: ReportReadSet) -> int:
    """
    Revenue for the window in minor units.

    Uses each transaction's stored total (tax and discount included) rather
    than re-summing its lines; legacy sales contribute unit_price * quantity.
    """
    transaction_revenue = sum(t.total for t in read_set.transactions)
    legacy_revenue = sum(sale.unit_price * sale.quantity for sale in read_set.legacy_records)
    return transaction_revenue + legacy_revenue
