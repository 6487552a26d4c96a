"""
COGS aggregation over already-fetched sale records.

No queries run here: the report query service fetches the window's lines,
legacy sales and batches, and this module prices them.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List

from stockledger.utils.money import to_minor_units, round_rate


class BatchIndex:
    """In-memory lookup of batches by id and by purchase lot."""

    def __init__(self, batches: Iterable = ()):
        self._by_id = {}
        self._by_lot = defaultdict(list)
        for batch in batches:
            if batch.id in self._by_id:
                continue
            self._by_id[batch.id] = batch
            if batch.lot_id is not None:
                self._by_lot[batch.lot_id].append(batch)

    def get(self, batch_id):
        return self._by_id.get(batch_id)

    def siblings(self, batch) -> list:
        """Every indexed batch sharing the batch's lot (the batch included)."""
        if batch.lot_id is None:
            return [batch]
        return list(self._by_lot.get(batch.lot_id, [batch]))

    def __contains__(self, batch_id):
        return batch_id in self._by_id

    def __iter__(self):
        return iter(self._by_id.values())

    def __len__(self):
        return len(self._by_id)


@dataclass(frozen=True)
class CogsItem:
    record_id: int
    record_type: str
    batch_id: int
    quantity_sold: int
    unit_cost: Decimal
    item_cogs: Decimal

    def to_dict(self):
        return {
            'record_id': self.record_id,
            'record_type': self.record_type,
            'batch_id': self.batch_id,
            'quantity_sold': self.quantity_sold,
            'unit_cost': round_rate(self.unit_cost),
            'item_cogs': to_minor_units(self.item_cogs),
        }


@dataclass
class CogsResult:
    total_cogs: Decimal = Decimal('0')
    itemized: List[CogsItem] = field(default_factory=list)
    skipped_record_ids: List[tuple] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_record_ids)

    def to_dict(self):
        return {
            'total_cogs': to_minor_units(self.total_cogs),
            'itemized': [item.to_dict() for item in self.itemized],
            'skipped_count': self.skipped_count,
            'skipped_records': [
                {'record_type': record_type, 'record_id': record_id}
                for record_type, record_id in self.skipped_record_ids
            ],
        }


def aggregate_cogs(records: Iterable, batch_index: BatchIndex, strategy) -> CogsResult:
    """
    Price each sold record and total the cost of goods sold.

    Records whose batch (or, for the pooled method, lot) cannot be resolved
    are skipped and reported in skipped_record_ids; they still count towards
    revenue elsewhere.

    Args:
        records: SaleLine / LegacySale rows, priced in input order
        batch_index: BatchIndex over the fetched batches
        strategy: CostBasisStrategy

    Returns:
        CogsResult
    """
    result = CogsResult()

    for record in records:
        record_type = getattr(record, 'record_type', 'sale_line')
        batch = batch_index.get(record.batch_id)
        if not strategy.is_resolvable(batch):
            result.skipped_record_ids.append((record_type, record.id))
            continue

        siblings = batch_index.siblings(batch) if strategy.uses_siblings else None
        unit_cost = strategy.unit_cost(batch, siblings)
        item_cogs = unit_cost * record.quantity

        result.itemized.append(CogsItem(
            record_id=record.id,
            record_type=record_type,
            batch_id=batch.id,
            quantity_sold=record.quantity,
            unit_cost=unit_cost,
            item_cogs=item_cogs,
        ))
        result.total_cogs += item_cogs

    return result
