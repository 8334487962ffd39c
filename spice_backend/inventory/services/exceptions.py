# inventory/services/exceptions.py

"""
INVENTORY SERVICE ERRORS
"""

from inventory.services.units import UnitConversionError


class InventoryServiceError(Exception):
    """Base exception for inventory services."""


class BatchSelectionError(InventoryServiceError):
    """Raised when a selection references an unknown or ineligible batch."""


class BatchDataError(InventoryServiceError):
    """Raised when a back-office batch row cannot be interpreted."""


__all__ = [
    "BatchDataError",
    "BatchSelectionError",
    "InventoryServiceError",
    "UnitConversionError",
]
