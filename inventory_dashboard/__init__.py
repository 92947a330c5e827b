# inventory_dashboard/__init__.py
"""
Inventory dashboard client.

Technicians and admins sign in, browse materials and stock levels, and submit
stock increase / decrease / create requests. Reads go straight to the hosted
backend; every write is handed to the workflow webhook.
"""

__version__ = "0.4.0"
