"""
Inventory ledger - stock validation for a single batch debit.

Pure logic: nothing here touches the session. The committer persists the
returned remaining quantity as part of its atomic write, so the same checks
run inside the retry loop and in plain unit tests.
"""
from dataclasses import dataclass

from stockledger.exceptions import InvalidQuantityError, InsufficientStockError, StockInvariantError


@dataclass(frozen=True)
class DebitResult:
    """Outcome of a validated debit. The batch itself is left untouched."""
    batch_id: int
    quantity: int
    previous_remaining: int
    new_remaining: int


def is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_and_debit(batch, quantity, already_debited: int = 0, line_index: int = None) -> DebitResult:
    """
    Validate that `quantity` units can leave `batch`.

    Args:
        batch: InventoryBatch (or any object with id / quantity_remaining)
        quantity: units requested, must be a positive integer
        already_debited: units taken from the same batch earlier in the same sale
        line_index: position of the requesting line, for error reporting

    Returns:
        DebitResult with the remaining quantity after this debit

    Raises:
        InvalidQuantityError: quantity is not a positive integer
        InsufficientStockError: quantity exceeds what is left
    """
    if not is_positive_int(quantity):
        raise InvalidQuantityError(
            f'Quantity must be a positive integer (got {quantity!r})',
            payload={'line_index': line_index} if line_index is not None else None,
        )

    available = batch.quantity_remaining - already_debited
    if available < quantity:
        raise InsufficientStockError(
            available=max(available, 0),
            requested=quantity,
            batch_id=batch.id,
            line_index=line_index,
        )

    return DebitResult(
        batch_id=batch.id,
        quantity=quantity,
        previous_remaining=available,
        new_remaining=available - quantity,
    )


def check_stock_invariant(batch) -> None:
    """Raise if 0 <= quantity_remaining <= quantity_received does not hold."""
    remaining = batch.quantity_remaining
    received = batch.quantity_received
    if remaining is None or received is None or not 0 <= remaining <= received:
        raise StockInvariantError(batch.id, remaining, received)
