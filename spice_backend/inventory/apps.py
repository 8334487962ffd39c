# inventory/apps.py

"""
INVENTORY APP CONFIG

Batch-level stock logic for the billing desk:
- unit conversion table
- FEFO batch selection (allocation proposals)
- post-bill inventory reconciliation (decrements)

Stock rows live in the back office; this app only reads and adjusts them
through backoffice.services.api_client.
"""

from django.apps import AppConfig


class InventoryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
    verbose_name = "Inventory batches"
