"""
Cost basis strategies - unit cost of a batch, in minor units per unit.

Two methods exist and a deployment uses exactly one (COST_BASIS_METHOD):

- pooled: lot weighted average. A purchase lot's total cost is spread over
  every unit received across all of its batches.
- direct: the batch's own cost over its sellable units
  (purchase_quantity * units_per_pack).

Results are unrounded Decimals; round at presentation time only.
"""
from decimal import Decimal
import logging

from stockledger.exceptions import ConfigurationError, NotFoundError, ValidationError
from stockledger.utils.settings import get_setting

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


class CostBasisStrategy:
    """Contract shared by both cost basis methods."""

    method = None
    uses_siblings = False

    def is_resolvable(self, batch) -> bool:
        """Whether a unit cost can be derived for this batch."""
        return batch is not None

    def unit_cost(self, batch, siblings=None) -> Decimal:
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__}(method='{self.method}')>"


class PooledLotCostBasis(CostBasisStrategy):
    """Lot weighted average cost: lot.total_cost / units received by the lot."""

    method = 'pooled'
    uses_siblings = True

    def is_resolvable(self, batch) -> bool:
        return batch is not None and batch.lot is not None

    def unit_cost(self, batch, siblings=None) -> Decimal:
        lot = batch.lot
        if lot is None:
            raise NotFoundError(f'Purchase lot not found for batch {batch.id}')

        members = list(siblings) if siblings is not None else []
        if not any(_same_batch(member, batch) for member in members):
            members.append(batch)

        units_received = sum(member.quantity_received or 0 for member in members)
        # Nothing received yet: show zero instead of failing
        if units_received <= 0:
            return ZERO
        return Decimal(lot.total_cost or 0) / Decimal(units_received)


class DirectBatchCostBasis(CostBasisStrategy):
    """Direct batch cost: batch.total_cost / max(1, purchase_quantity * units_per_pack)."""

    method = 'direct'

    def unit_cost(self, batch, siblings=None) -> Decimal:
        sellable_units = max(1, batch.sellable_units)
        return Decimal(batch.total_cost or 0) / Decimal(sellable_units)


_STRATEGIES = {
    PooledLotCostBasis.method: PooledLotCostBasis,
    DirectBatchCostBasis.method: DirectBatchCostBasis,
}


def get_cost_basis(method: str = None) -> CostBasisStrategy:
    """
    Strategy for the given method, or the deployment's COST_BASIS_METHOD.

    Raises:
        ValidationError: unknown method passed by the caller
        ConfigurationError: unknown COST_BASIS_METHOD setting
    """
    from_caller = bool(method)
    name = (method or get_setting('COST_BASIS_METHOD', 'direct') or '').strip().lower()
    strategy_cls = _STRATEGIES.get(name)
    if strategy_cls is None:
        message = f"Unknown cost basis method '{name}'. Use one of: {', '.join(sorted(_STRATEGIES))}"
        if from_caller:
            raise ValidationError(message, payload={'method': name})
        raise ConfigurationError(message)
    return strategy_cls()


def _same_batch(a, b) -> bool:
    if a is b:
        return True
    return a.id is not None and a.id == b.id
