# billing/services/exceptions.py

"""
BILLING SERVICE ERRORS

Centralized domain errors for caterer-bill services.
Views map these to HTTP status codes; nothing here knows about HTTP.
"""


class BillingError(Exception):
    """Base exception for all billing service failures."""


class BillValidationError(BillingError):
    """
    Raised when a bill cannot be submitted as entered.

    `field` names the offending input (e.g. "items", "caterer_id").
    """

    def __init__(self, message: str, *, field: str = ""):
        super().__init__(message)
        self.field = field


class BatchShortfallNotConfirmed(BillingError):
    """Raised when lines are under-allocated and the biller has not confirmed."""

    def __init__(self, message: str, *, shortfalls=()):
        super().__init__(message)
        self.shortfalls = tuple(shortfalls)


class ReminderRequired(BillingError):
    """Raised when a balance is due and the reminder was neither scheduled nor skipped."""


class DistributionCreationError(BillingError):
    """Raised when the back office refuses or fails to create the distribution."""


class MixAllocationError(BillingError):
    """Raised when a mix cannot be split (no products, non-positive input)."""


class BillSessionError(BillingError):
    """Raised on an invalid bill-editing transition (unknown row, bad value)."""


class SubmissionInProgress(BillingError):
    """Raised when the same bill number is already being submitted."""
