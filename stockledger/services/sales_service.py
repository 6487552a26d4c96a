"""
Sales service with transactional logic - team scoped.

A sale is committed as one unit: the transaction row, one line per requested
batch, and the debited quantity_remaining of every touched batch. Batches are
version-counted, so a concurrent commit that changed a batch after we read it
makes our flush fail with StaleDataError; the whole read-validate-write cycle
then runs again with fresh reads.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from stockledger.blueprints.metrics import (
    sale_commit_conflicts_total, sale_commit_retries_total, sale_commits_total
)
from stockledger.exceptions import (
    StockLedgerError, NotAuthenticatedError, ForbiddenError, NotFoundError,
    InvalidQuantityError, InvalidAmountError, ConflictError
)
from stockledger.models import InventoryBatch, SaleLine, SaleTransaction
from stockledger.services.inventory_ledger import (
    DebitResult, check_stock_invariant, is_positive_int, validate_and_debit
)
from stockledger.utils.dates import ensure_utc, utcnow
from stockledger.utils.settings import get_setting

logger = logging.getLogger(__name__)

# SQLSTATEs a database reports when it aborts a transaction to keep it serializable
_RETRYABLE_SQLSTATES = {'40001', '40P01'}


@dataclass(frozen=True)
class SaleLineRequest:
    """One requested line: units of a batch at a price (minor units)."""
    batch_id: Any
    quantity: Any
    unit_price: Any

    @classmethod
    def from_mapping(cls, data: Mapping) -> 'SaleLineRequest':
        """Accept snake_case or camelCase keys (batchId, unitPrice)."""
        batch_id = data.get('batch_id', data.get('batchId'))
        unit_price = data.get('unit_price', data.get('unitPrice'))
        return cls(
            batch_id=_coerce_id(batch_id),
            quantity=data.get('quantity'),
            unit_price=unit_price,
        )


@dataclass(frozen=True)
class StagedLine:
    index: int
    batch_id: int
    quantity: int
    unit_price: int
    line_total: int


@dataclass
class StagedSale:
    """Validated, fully computed sale that has not been written yet."""
    team_id: int
    lines: List[StagedLine]
    debits: Dict[int, DebitResult]
    subtotal: int
    tax: int
    discount: int
    total: int = field(init=False)

    def __post_init__(self):
        self.total = self.subtotal + self.tax - self.discount


def stage_sale(
    team_id: int,
    requests: Sequence[SaleLineRequest],
    batches_by_id: Mapping[Any, Any],
    tax: Optional[int] = None,
    discount: Optional[int] = None,
) -> StagedSale:
    """
    Validate every line and compute totals without touching storage.

    Lines are checked in input order, so the first failing line (lowest
    index) is the one reported.

    Raises:
        InvalidQuantityError, InvalidAmountError, NotFoundError,
        ForbiddenError, InsufficientStockError
    """
    if not requests:
        raise InvalidQuantityError('Transaction must contain at least one item')

    staged_lines = []
    debits: Dict[int, DebitResult] = {}
    debited: Dict[int, int] = {}
    subtotal = 0

    for index, request in enumerate(requests):
        if not is_positive_int(request.quantity):
            raise InvalidQuantityError(
                f'Quantity must be a positive integer (line {index + 1})',
                payload={'line_index': index},
            )
        if not _is_non_negative_int(request.unit_price):
            raise InvalidAmountError(
                f'Unit price must be a non-negative integer amount (line {index + 1})',
                payload={'line_index': index},
            )

        batch = batches_by_id.get(request.batch_id) if _is_id(request.batch_id) else None
        if batch is None:
            raise NotFoundError(
                f'Inventory not found: {request.batch_id}',
                payload={'line_index': index},
            )
        if batch.team_id != team_id:
            raise ForbiddenError('Not authorized')

        debit = validate_and_debit(
            batch,
            request.quantity,
            already_debited=debited.get(batch.id, 0),
            line_index=index,
        )
        debited[batch.id] = debited.get(batch.id, 0) + request.quantity
        # Later lines on the same batch supersede earlier ones
        debits[batch.id] = DebitResult(
            batch_id=batch.id,
            quantity=debited[batch.id],
            previous_remaining=batch.quantity_remaining,
            new_remaining=debit.new_remaining,
        )

        line_total = request.quantity * request.unit_price
        staged_lines.append(StagedLine(
            index=index,
            batch_id=batch.id,
            quantity=request.quantity,
            unit_price=request.unit_price,
            line_total=line_total,
        ))
        subtotal += line_total

    tax_amount = _normalize_amount(tax, 'Tax')
    discount_amount = _normalize_amount(discount, 'Discount')
    if discount_amount > subtotal + tax_amount:
        raise InvalidAmountError(
            f'Discount ({discount_amount}) cannot exceed subtotal plus tax ({subtotal + tax_amount})'
        )

    return StagedSale(
        team_id=team_id,
        lines=staged_lines,
        debits=debits,
        subtotal=subtotal,
        tax=tax_amount,
        discount=discount_amount,
    )


def record_sale(
    session,
    team_id: int,
    lines: Sequence,
    customer_name: Optional[str] = None,
    tax: Optional[int] = None,
    discount: Optional[int] = None,
    *,
    user_id: Optional[int],
    sold_at: Optional[datetime] = None,
    max_attempts: Optional[int] = None,
) -> SaleTransaction:
    """
    Commit a multi-line sale atomically (team-scoped).

    Args:
        session: SQLAlchemy session
        team_id: caller's team (REQUIRED)
        lines: SaleLineRequest objects or mappings with batch_id/quantity/unit_price
        customer_name: optional customer label
        tax: optional tax in minor units
        discount: optional discount in minor units
        user_id: caller identity from the auth provider
        sold_at: sale instant (defaults to now, UTC)
        max_attempts: retry budget override (SALE_COMMIT_MAX_ATTEMPTS)

    Returns:
        The committed SaleTransaction

    Raises:
        NotAuthenticatedError, ForbiddenError, NotFoundError,
        InvalidQuantityError, InvalidAmountError, InsufficientStockError,
        ConflictError
    """
    if not user_id:
        raise NotAuthenticatedError()
    if not team_id:
        raise ForbiddenError('User not assigned to a team')

    if lines is not None and not isinstance(lines, (list, tuple)):
        raise InvalidQuantityError('Sale lines must be a list')
    requests = [_as_request(line) for line in (lines or [])]
    attempts = max_attempts or int(get_setting('SALE_COMMIT_MAX_ATTEMPTS', 5))
    sale_datetime = ensure_utc(sold_at) if sold_at else utcnow()

    for attempt in range(1, attempts + 1):
        try:
            # 1. Fresh read of every referenced batch
            batches = _load_batches(session, {r.batch_id for r in requests})

            # 2. Validate and compute (pure)
            staged = stage_sale(team_id, requests, batches, tax=tax, discount=discount)

            # 3. Stage writes and commit as one unit
            sale = _apply_staged_sale(
                session, staged, batches,
                customer_name=customer_name,
                user_id=user_id,
                sale_datetime=sale_datetime,
            )
            session.commit()

            sale_commits_total.inc()
            logger.info(
                f"[SALES] Committed sale #{sale.id} team={team_id} lines={len(staged.lines)} "
                f"total={staged.total} attempt={attempt}"
            )
            return sale

        except StockLedgerError as e:
            session.rollback()
            logger.info(f"[SALES] Sale aborted team={team_id}: {e.message}")
            raise

        except StaleDataError as e:
            session.rollback()
            sale_commit_retries_total.labels(reason='stale').inc()
            logger.warning(
                f"[SALES] Concurrent stock update detected team={team_id} "
                f"(attempt {attempt}/{attempts}): {e}"
            )

        except OperationalError as e:
            session.rollback()
            if not _is_retryable_db_error(e):
                raise
            sale_commit_retries_total.labels(reason='serialization').inc()
            logger.warning(
                f"[SALES] Transaction serialization failure team={team_id} "
                f"(attempt {attempt}/{attempts}): {e.orig}"
            )

        except Exception:
            session.rollback()
            raise

        if attempt < attempts:
            time.sleep(_backoff_delay(attempt))

    logger.error(f"[SALES] Giving up after {attempts} attempts team={team_id}")
    sale_commit_conflicts_total.inc()
    raise ConflictError(attempts)


def record_single_item_sale(
    session,
    team_id: int,
    batch_id: int,
    quantity: int,
    unit_price: int,
    *,
    user_id: Optional[int],
) -> SaleTransaction:
    """Single-item entry point kept for callers of the pre-transaction API."""
    return record_sale(
        session,
        team_id,
        [SaleLineRequest(batch_id=batch_id, quantity=quantity, unit_price=unit_price)],
        user_id=user_id,
    )


def get_sale_transaction(session, transaction_id: int, team_id: int) -> SaleTransaction:
    """Point read of a transaction, enforcing team ownership."""
    sale = session.get(SaleTransaction, transaction_id)
    if sale is None:
        raise NotFoundError(f'Sale transaction #{transaction_id} not found')
    if sale.team_id != team_id:
        raise ForbiddenError('Not authorized')
    return sale


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _load_batches(session, batch_ids) -> Dict[Any, InventoryBatch]:
    """Read the referenced batches, bypassing anything cached in the session."""
    ids = [batch_id for batch_id in batch_ids if _is_id(batch_id)]
    if not ids:
        return {}
    batches = (
        session.query(InventoryBatch)
        .filter(InventoryBatch.id.in_(ids))
        .populate_existing()
        .all()
    )
    return {batch.id: batch for batch in batches}


def _apply_staged_sale(session, staged: StagedSale, batches, customer_name, user_id, sale_datetime) -> SaleTransaction:
    """Add the transaction, its lines and the batch debits to the session."""
    sale = SaleTransaction(
        team_id=staged.team_id,
        sale_datetime=sale_datetime,
        customer_name=_normalize_customer(customer_name),
        subtotal=staged.subtotal,
        tax=staged.tax or None,
        discount=staged.discount or None,
        total=staged.total,
        created_by=user_id,
    )
    session.add(sale)
    session.flush()

    for line in staged.lines:
        session.add(SaleLine(
            transaction_id=sale.id,
            batch_id=line.batch_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=line.line_total,
        ))

    for batch_id, debit in staged.debits.items():
        batch = batches[batch_id]
        batch.quantity_remaining = debit.new_remaining
        check_stock_invariant(batch)

    return sale


def _as_request(line) -> SaleLineRequest:
    if isinstance(line, SaleLineRequest):
        return line
    if isinstance(line, Mapping):
        return SaleLineRequest.from_mapping(line)
    raise InvalidQuantityError(f'Invalid sale line: {line!r}')


def _coerce_id(value):
    """Integer id when the value looks like one; otherwise leave it (it will not be found)."""
    if _is_id(value):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def _is_id(value) -> bool:
    # bool is an int subclass and True == 1
    return isinstance(value, int) and not isinstance(value, bool)


def _is_non_negative_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _normalize_amount(value, label: str) -> int:
    if value is None:
        return 0
    if not _is_non_negative_int(value):
        raise InvalidAmountError(f'{label} must be a non-negative integer amount')
    return value


def _normalize_customer(customer: Optional[str]) -> Optional[str]:
    if customer is None:
        return None
    s = str(customer).strip()
    return s if s else None


def _is_retryable_db_error(error: OperationalError) -> bool:
    """Serialization failures and deadlocks (PostgreSQL), lock timeouts (SQLite)."""
    orig = getattr(error, 'orig', None)
    sqlstate = getattr(orig, 'sqlstate', None) or getattr(orig, 'pgcode', None)
    if sqlstate in _RETRYABLE_SQLSTATES:
        return True
    return 'database is locked' in str(orig or error).lower()


def _backoff_delay(attempt: int) -> float:
    """Exponential backoff: base * 2^(attempt-1), capped."""
    base = float(get_setting('SALE_COMMIT_BACKOFF_BASE', 0.05))
    cap = float(get_setting('SALE_COMMIT_BACKOFF_MAX', 1.0))
    return min(cap, base * (2 ** (attempt - 1)))
