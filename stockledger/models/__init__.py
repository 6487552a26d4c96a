"""Models package - exports all SQLAlchemy models."""
# Team Models
from stockledger.models.team import Team
from stockledger.models.app_user import AppUser
from stockledger.models.team_member import TeamMember, MemberRole

# Catalog Models
from stockledger.models.category import Category
from stockledger.models.product import Product

# Stock Models
from stockledger.models.purchase_lot import PurchaseLot
from stockledger.models.inventory_batch import InventoryBatch

# Sales Models
from stockledger.models.sale_transaction import SaleTransaction
from stockledger.models.sale_line import SaleLine
from stockledger.models.legacy_sale import LegacySale

__all__ = [
    # Team
    'Team', 'AppUser', 'TeamMember', 'MemberRole',
    # Catalog
    'Category', 'Product',
    # Stock
    'PurchaseLot', 'InventoryBatch',
    # Sales
    'SaleTransaction', 'SaleLine', 'LegacySale',
]
