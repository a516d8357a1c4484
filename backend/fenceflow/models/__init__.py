from .auth import User, ROLE_ADMIN, ROLE_AGENCY, USER_ROLES
from .security import SecurityEvent
from .projects import Project, PROJECT_STATUSES
from .inventory import (
    Category,
    Product,
    InventoryTransaction,
    PRODUCT_STATUSES,
    TRANSACTION_TYPES,
    REFERENCE_TYPES,
    TXN_IN,
    TXN_OUT,
    TXN_ADJUSTMENT,
)
from .orders import Order, OrderItem, ORDER_STATUSES, STATUS_CANCELLED

__all__ = [
    'User', 'ROLE_ADMIN', 'ROLE_AGENCY', 'USER_ROLES',
    'SecurityEvent',
    'Project', 'PROJECT_STATUSES',
    'Category', 'Product', 'InventoryTransaction',
    'PRODUCT_STATUSES', 'TRANSACTION_TYPES', 'REFERENCE_TYPES',
    'TXN_IN', 'TXN_OUT', 'TXN_ADJUSTMENT',
    'Order', 'OrderItem', 'ORDER_STATUSES', 'STATUS_CANCELLED',
]
