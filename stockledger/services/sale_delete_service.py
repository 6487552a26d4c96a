"""Service for deleting sale transactions - team scoped."""
import logging

from stockledger.models import SaleLine
from stockledger.services.sales_service import get_sale_transaction

logger = logging.getLogger(__name__)


def delete_sale_transaction(session, transaction_id: int, team_id: int, *, user_id=None) -> dict:
    """
    Delete a sale transaction and its lines (team-scoped).

    Stock is NOT restored: deleting a sale writes the units off rather than
    undoing the sale. Debited batches keep their current quantity_remaining.

    Steps:
    1. Validate transaction exists and belongs to team
    2. Delete sale lines
    3. Delete transaction
    4. Commit

    Args:
        session: SQLAlchemy session
        transaction_id: SaleTransaction ID to delete
        team_id: Team ID (REQUIRED for security)
        user_id: caller, for the audit log line

    Returns:
        dict with success message and details

    Raises:
        NotFoundError: transaction does not exist
        ForbiddenError: transaction belongs to another team
    """
    try:
        # Step 1: Get transaction and validate team ownership
        sale = get_sale_transaction(session, transaction_id, team_id)

        # Step 2: Delete sale lines first
        sale_lines = session.query(SaleLine).filter(
            SaleLine.transaction_id == transaction_id
        ).all()
        for line in sale_lines:
            session.delete(line)
        session.flush()
        session.expire(sale, ['lines'])

        # Step 3: Delete transaction
        session.delete(sale)

        # Step 4: Commit transaction
        session.commit()

        logger.info(
            f"[SALES] Deleted sale #{transaction_id} team={team_id} user={user_id} "
            f"lines={len(sale_lines)} (stock not restored)"
        )

        return {
            'success': True,
            'message': f'Sale #{transaction_id} deleted. Stock was not restored.',
            'transaction_id': transaction_id,
            'deleted_lines': len(sale_lines),
            'stock_restored': False,
        }

    except Exception:
        session.rollback()
        raise
