# inventory_dashboard/modules/users/__init__.py

from .controller import UsersController
from .model import ProfilesTableModel
from .view import UsersView

__all__ = ["UsersController", "ProfilesTableModel", "UsersView"]
