# inventory_dashboard/modules/inventory/__init__.py

from .cache import InventoryCache, InventoryConsumer, InventorySnapshot, InventoryState
from .controller import InventoryController
from .forms import validate_new_material, validate_stock_request
from .model import MaterialsTableModel, MovementsTableModel
from .view import InventoryView

__all__ = [
    "InventoryCache",
    "InventoryConsumer",
    "InventorySnapshot",
    "InventoryState",
    "InventoryController",
    "InventoryView",
    "MaterialsTableModel",
    "MovementsTableModel",
    "validate_new_material",
    "validate_stock_request",
]
