"""
PATH: backend/settings/__init__.py

Nothing is loaded from here. Pick a concrete module with DJANGO_SETTINGS_MODULE:
- backend.settings.dev   local desk + test runs
- backend.settings.prod  deployed service
"""
