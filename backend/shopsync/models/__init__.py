from .tenancy import Tenant, ApiToken
from .commerce import Customer, Order, OrderItem, Product
from .sync import SyncLog

__all__ = [
    'Tenant', 'ApiToken',
    'Customer', 'Order', 'OrderItem', 'Product',
    'SyncLog',
]
