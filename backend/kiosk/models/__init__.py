from .tenancy import Country, PettyCashLog
from .inventory import Product
from .sales import Transaction, TransactionItem
from .auth import User, Admin, SessionToken

__all__ = [
    'Country', 'PettyCashLog',
    'Product',
    'Transaction', 'TransactionItem',
    'User', 'Admin', 'SessionToken',
]
