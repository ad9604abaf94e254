from .branches import Branch
from .inventory import Category, InventoryItem, Bundle, BundleComponent
from .workers import Worker, RoleAssignment
from .timekeeping import WorkSession
from .orders import Order, OrderLine
from .discounts import Discount

__all__ = [
    'Branch',
    'Category', 'InventoryItem', 'Bundle', 'BundleComponent',
    'Worker', 'RoleAssignment',
    'WorkSession',
    'Order', 'OrderLine',
    'Discount',
]
