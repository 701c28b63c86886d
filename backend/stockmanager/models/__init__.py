from .tenancy import Seller, Subscription
from .auth import User, SessionToken
from .inventory import Category, Unit, Product, StockTransaction
from .customers import Customer
from .sales import Sale, SaleItem, SaleSequence
from .expenses import Expense
from .notifications import Notification

__all__ = [
    'Seller', 'Subscription',
    'User', 'SessionToken',
    'Category', 'Unit', 'Product', 'StockTransaction',
    'Customer',
    'Sale', 'SaleItem', 'SaleSequence',
    'Expense',
    'Notification',
]
