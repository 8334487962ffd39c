# backoffice/apps.py

"""
BACKOFFICE APP CONFIG

HTTP client for the back-office REST API:
- inventory batches (read + quantity adjustments)
- distributions (caterer bills)
- receipt uploads
- payment reminders
- product average price

The back-office server owns persistence; this app never touches its database.
"""

from django.apps import AppConfig


class BackofficeConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "backoffice"
    verbose_name = "Back-office API client"
