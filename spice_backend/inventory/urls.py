# inventory/urls.py
"""
INVENTORY API URLS

Base path (mounted in backend/urls.py):
    /api/inventory/

- POST /api/inventory/batch-plan/
"""

from django.urls import path

from inventory.views.batch_plan import BatchPlanView

app_name = "inventory"

urlpatterns = [
    path("batch-plan/", BatchPlanView.as_view(), name="batch-plan"),
]
