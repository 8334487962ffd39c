# billing/urls.py
"""
BILLING API URLS

Base path (mounted in backend/urls.py):
    /api/billing/

- POST /api/billing/quote/
- POST /api/billing/mix/
- POST /api/billing/submit/
- GET  /api/billing/bill-number/
- GET  /api/billing/products/<name>/average-price/
- POST /api/billing/reminders/<id>/next-reminder/
"""

from django.urls import path

from billing.views.lookups import AveragePriceView, NextReminderView, bill_number
from billing.views.mix import MixCalculatorView
from billing.views.quote import BillQuoteView
from billing.views.submit import BillSubmitView

app_name = "billing"

urlpatterns = [
    path("quote/", BillQuoteView.as_view(), name="bill-quote"),
    path("mix/", MixCalculatorView.as_view(), name="bill-mix"),
    path("submit/", BillSubmitView.as_view(), name="bill-submit"),
    path("bill-number/", bill_number, name="bill-number"),
    path(
        "products/<str:name>/average-price/",
        AveragePriceView.as_view(),
        name="product-average-price",
    ),
    path(
        "reminders/<int:reminder_id>/next-reminder/",
        NextReminderView.as_view(),
        name="reminder-next",
    ),
]
