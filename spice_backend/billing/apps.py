# billing/apps.py

"""
BILLING APP CONFIG

Caterer bills (distributions):
- line pricing + bill totals
- payment options + reminder step
- mix/combo calculator
- submission to the back office + inventory reconciliation
"""

from django.apps import AppConfig


class BillingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "billing"
    verbose_name = "Caterer billing"
