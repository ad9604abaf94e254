from .context import ViewContext
from .base import LiveView
from .inventory import InventoryView
from .store import StoreView
from .workers import WorkersView
from .attendance import AttendanceView
from .sales import SalesView

__all__ = [
    'ViewContext',
    'LiveView',
    'InventoryView',
    'StoreView',
    'WorkersView',
    'AttendanceView',
    'SalesView',
]
